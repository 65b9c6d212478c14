"""
Generator nodes: Produce the turn's answer with the chat model.

generator_node issues the first-round call. regenerator_node issues the
optional second-round call, which sees the first answer plus only the code
snippets the first round did not surface.
"""

import logging
from typing import TYPE_CHECKING, Optional

from repochat.config import settings
from repochat.errors import UpstreamUnavailable
from repochat.retrieval.resources import get_chat_model

if TYPE_CHECKING:
    from repochat.graph.state import AnswerState, ConversationTurn


SYSTEM_PROMPT = """You are an AI assistant specialized in analyzing GitHub repositories. You help developers understand codebases, answer questions about code structure, dependencies, architecture, and provide insights about the repository.

Current Repository: {repository_id}

Instructions:
- Be helpful and informative about the repository
- Keep responses concise but comprehensive
- Focus on practical, actionable advice
- When asked questions not about this repository, give a small response limited to two sentences, and say that you are not an expert in it and that the person should ask somewhere else."""

INDEXING_PENDING_NOTICE = """

Repository access: this repository has not been indexed yet, so you do not have access to its source code. Indexing is pending. Tell the user that your answer is not grounded in the repository's code, and explain what analysis would be possible once indexing completes."""

GROUNDED_NOTICE = """

Repository access: you are given relevant code snippets from this repository with the user's question. Base your answer on them and reference specific files and line numbers."""

NO_MATCHES_NOTICE = """

Repository access: this repository is indexed, but no code matching the question was found. Say so if the answer depends on specific files."""

CITATION_INSTRUCTION = (
    "\n\nWhen answering, cite the file paths and line numbers of the code snippets you use."
)

FOLLOWUP_PROMPT = """Here is additional code from the repository that may fill the gaps in your previous answer:
{context}

Using both the earlier snippets and this additional code, give a complete answer to my original question: {message}
Cite the file paths and line numbers you rely on."""

logger = logging.getLogger(__name__)


def build_system_prompt(repository_id: str, is_indexed: bool, has_context: bool) -> str:
    """Compose the system preamble for the first-round call."""
    prompt = SYSTEM_PROMPT.format(repository_id=repository_id)
    if not is_indexed:
        return prompt + INDEXING_PENDING_NOTICE
    if has_context:
        return prompt + GROUNDED_NOTICE
    return prompt + NO_MATCHES_NOTICE


def recent_history(
    history: list["ConversationTurn"],
    window: int,
) -> list[dict[str, str]]:
    """Return the last `window` turns as plain role/content messages."""
    if window <= 0:
        return []
    return [{"role": turn["role"], "content": turn["content"]} for turn in history[-window:]]


def build_messages(state: "AnswerState") -> list[dict[str, str]]:
    """
    Assemble the first-round message list.

    The grounded path keeps a shorter history window since the code context
    takes up prompt budget.
    """
    context = state.get("context", "")
    is_indexed = state.get("is_indexed", False)
    window = settings.grounded_history_window if context else settings.history_window

    user_content = state.get("message", "")
    if context:
        user_content = f"{user_content}{context}{CITATION_INSTRUCTION}"

    return [
        {
            "role": "system",
            "content": build_system_prompt(state.get("repository_id", ""), is_indexed, bool(context)),
        },
        *recent_history(state.get("conversation_history", []), window),
        {"role": "user", "content": user_content},
    ]


def generator_node(state: "AnswerState") -> "AnswerState":
    """
    Generate the first-round answer.

    Args:
        state: Current graph state with is_indexed and context populated

    Returns:
        Updated state with messages, first_response and generation populated

    Raises:
        UpstreamUnavailable: If the chat model call fails, since there is no
            earlier answer to fall back on
    """
    messages = build_messages(state)
    state["messages"] = messages
    state["generation_calls"] = state.get("generation_calls", 0) + 1

    try:
        response = get_chat_model().chat(
            messages,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    except UpstreamUnavailable:
        raise
    except Exception as e:
        raise UpstreamUnavailable(f"Answer generation failed: {e!s}") from e

    response = response.strip()
    state["first_response"] = response
    state["generation"] = response
    return state


def _followup_messages(state: "AnswerState") -> list[dict[str, str]]:
    return [
        *state.get("messages", []),
        {"role": "assistant", "content": state.get("first_response") or ""},
        {
            "role": "user",
            "content": FOLLOWUP_PROMPT.format(
                context=state.get("additional_context", ""),
                message=state.get("message", ""),
            ),
        },
    ]


def regenerator_node(state: "AnswerState") -> "AnswerState":
    """
    Generate the second-round answer from the incremental context.

    Failures are logged and swallowed; the first-round answer stays final.

    Args:
        state: Current graph state with first_response and additional_context

    Returns:
        Updated state whose generation is the second answer when it succeeded
    """
    state["generation_calls"] = state.get("generation_calls", 0) + 1

    followup: Optional[str] = None
    try:
        followup = get_chat_model().chat(
            _followup_messages(state),
            max_tokens=settings.llm_followup_max_tokens,
            temperature=settings.llm_temperature,
        )
    except Exception as e:
        logger.warning(f"Second-round generation failed, keeping first answer: {e}")
        state["error"] = f"Regenerator error: {e!s}"
        return state

    if followup and followup.strip():
        state["generation"] = followup.strip()
    return state
