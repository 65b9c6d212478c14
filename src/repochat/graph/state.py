"""
Graph state definition for the augmented answer workflow.

The AnswerState TypedDict defines all data that flows through the LangGraph
workflow for one user turn. Each node reads from and writes to this shared
state.
"""

from typing import Literal, Optional, TypedDict

from repochat.retrieval.retriever import RetrievalMatch


class ConversationTurn(TypedDict):
    """A prior chat message supplied by the caller."""

    role: Literal["user", "assistant", "system"]
    content: str


class AnswerState(TypedDict, total=False):
    """
    State schema for the adaptive two-round answer workflow.

    All fields are optional (total=False) to allow incremental population
    as the workflow progresses through nodes.

    Flow:
        1. check_index reads the repository's index status
        2. If indexed: retriever fetches top-k chunks (first_matches, context)
        3. generator produces the first answer
        4. sufficiency_check scans the answer for self-reported gaps
        5. If insufficient: expanded_retriever fetches new chunks only
        6. If any new chunks: regenerator produces the final answer
    """

    # ==========================================================================
    # Input
    # ==========================================================================
    message: str
    """The user's question for this turn."""

    repository_id: str
    """Repository the turn is scoped to ("owner/name")."""

    conversation_history: list[ConversationTurn]
    """Prior turns, oldest first. Read-only."""

    # ==========================================================================
    # Index Status
    # ==========================================================================
    is_indexed: bool
    """Whether the repository's status is 'indexed'."""

    # ==========================================================================
    # First Round
    # ==========================================================================
    query_vector: Optional[list[float]]
    """Embedded message, reused by the second retrieval."""

    first_matches: list[RetrievalMatch]
    """Chunks retrieved for the first round."""

    context: str
    """Formatted first-round context ("" when nothing was retrieved)."""

    messages: list[dict[str, str]]
    """Messages sent to the model in the first round."""

    first_response: Optional[str]
    """The first-round answer."""

    insufficient: bool
    """Whether the first answer reports missing information."""

    # ==========================================================================
    # Second Round
    # ==========================================================================
    additional_matches: list[RetrievalMatch]
    """Second-round chunks not already surfaced in the first round."""

    additional_context: str
    """Formatted second-round context."""

    # ==========================================================================
    # Output
    # ==========================================================================
    generation: Optional[str]
    """The final answer for the turn."""

    generation_calls: int
    """Number of chat model calls made (1 or 2)."""

    retrieval_calls: int
    """Number of vector retrievals made (0, 1 or 2)."""

    # ==========================================================================
    # Metadata
    # ==========================================================================
    error: Optional[str]
    """Last swallowed error, for diagnostics."""

    processing_time_ms: float
    """Total processing time in milliseconds."""

    node_timings: dict[str, float]
    """Timing for each node execution in milliseconds."""


def create_initial_state(
    message: str,
    repository_id: str,
    conversation_history: Optional[list[ConversationTurn]] = None,
) -> AnswerState:
    """
    Create an initial graph state for a user turn.

    Args:
        message: The user's question
        repository_id: "owner/name"
        conversation_history: Prior turns, oldest first

    Returns:
        AnswerState with inputs populated and defaults set
    """
    return AnswerState(
        message=message,
        repository_id=repository_id,
        conversation_history=list(conversation_history or []),
        is_indexed=False,
        query_vector=None,
        first_matches=[],
        context="",
        messages=[],
        first_response=None,
        insufficient=False,
        additional_matches=[],
        additional_context="",
        generation=None,
        generation_calls=0,
        retrieval_calls=0,
        error=None,
        node_timings={},
    )
