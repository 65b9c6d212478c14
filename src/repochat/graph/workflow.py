"""
LangGraph workflow construction and execution.

Defines the adaptive two-round answer graph with conditional routing:
    - Index check decides retrieve vs answer without grounding
    - Sufficiency check can trigger a wider second retrieval
    - A second answer is generated only when new code was found

Graph visualization can be exported via get_graph_visualization().
"""

import logging
import time
from typing import Callable, Literal, Optional

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from repochat.errors import InvalidInput, split_repository_id
from repochat.graph.state import AnswerState, ConversationTurn, create_initial_state
from repochat.nodes import (
    check_index_node,
    expanded_retriever_node,
    generator_node,
    regenerator_node,
    retriever_node,
    sufficiency_check_node,
)

logger = logging.getLogger(__name__)


def create_timed_node(node_func: Callable[[AnswerState], AnswerState], node_name: str) -> Callable[[AnswerState], AnswerState]:
    """
    Wrap a node function with timing instrumentation.

    Tracks execution time and stores it in state['node_timings'].

    Args:
        node_func: The original node function
        node_name: Name of the node for timing tracking

    Returns:
        Wrapped node function with timing
    """
    def timed_node(state: AnswerState) -> AnswerState:
        start_time = time.perf_counter()
        result_state = node_func(state)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        if "node_timings" not in result_state:
            result_state["node_timings"] = {}

        current_time = result_state["node_timings"].get(node_name, 0.0)
        result_state["node_timings"][node_name] = current_time + elapsed_ms

        return result_state

    return timed_node


def should_retrieve(state: AnswerState) -> Literal["retrieve", "generate"]:
    """
    Conditional edge: Only indexed repositories are searched.

    Returns:
        "retrieve" for an indexed repository, "generate" otherwise
    """
    return "retrieve" if state.get("is_indexed") else "generate"


def should_expand(state: AnswerState) -> Literal["expand", "finish"]:
    """
    Conditional edge: Decide if a second retrieval is worth making.

    Expands only when the first answer reports missing information, the
    repository is indexed and the first retrieval found something.

    Returns:
        "expand" to retrieve more context, "finish" to keep the first answer
    """
    if (
        state.get("insufficient")
        and state.get("is_indexed")
        and state.get("first_matches")
    ):
        return "expand"
    return "finish"


def should_regenerate(state: AnswerState) -> Literal["regenerate", "finish"]:
    """
    Conditional edge: Regenerate only when the second retrieval added new chunks.

    Returns:
        "regenerate" to produce the second answer, "finish" to keep the first
    """
    return "regenerate" if state.get("additional_matches") else "finish"


def build_graph() -> CompiledStateGraph:
    """
    Build and compile the augmented answer graph.

    Graph structure:
        START
          │
          ▼
        [check_index]
          │
          ├── generate (not indexed) ──────────┐
          │                                    │
          └── retrieve                         │
                │                              │
                ▼                              │
            [retriever]                        │
                │                              ▼
                └──────────────────────► [generator]
                                               │
                                               ▼
                                      [sufficiency_check]
                                               │
                                               ├── finish ──────────────► END
                                               │
                                               └── expand
                                                     │
                                                     ▼
                                          [expanded_retriever]
                                                     │
                                                     ├── finish ────────► END
                                                     │
                                                     └── regenerate
                                                           │
                                                           ▼
                                                    [regenerator] ──────► END

    Each path makes at most two retrievals and at most two generation calls.

    Returns:
        Compiled LangGraph ready for execution
    """
    workflow = StateGraph(AnswerState)

    workflow.add_node("check_index", create_timed_node(check_index_node, "check_index"))
    workflow.add_node("retriever", create_timed_node(retriever_node, "retriever"))
    workflow.add_node("generator", create_timed_node(generator_node, "generator"))
    workflow.add_node("sufficiency_check", create_timed_node(sufficiency_check_node, "sufficiency_check"))
    workflow.add_node("expanded_retriever", create_timed_node(expanded_retriever_node, "expanded_retriever"))
    workflow.add_node("regenerator", create_timed_node(regenerator_node, "regenerator"))

    workflow.add_edge(START, "check_index")

    workflow.add_conditional_edges(
        "check_index",
        should_retrieve,
        {
            "retrieve": "retriever",
            "generate": "generator",
        },
    )

    workflow.add_edge("retriever", "generator")
    workflow.add_edge("generator", "sufficiency_check")

    workflow.add_conditional_edges(
        "sufficiency_check",
        should_expand,
        {
            "expand": "expanded_retriever",
            "finish": END,
        },
    )

    workflow.add_conditional_edges(
        "expanded_retriever",
        should_regenerate,
        {
            "regenerate": "regenerator",
            "finish": END,
        },
    )

    workflow.add_edge("regenerator", END)

    return workflow.compile()


def run_answer(
    message: str,
    repository_id: str,
    conversation_history: Optional[list[ConversationTurn]] = None,
) -> AnswerState:
    """
    Answer one user turn through the adaptive two-round pipeline.

    Args:
        message: User's natural language question
        repository_id: Repository the turn is scoped to ("owner/name")
        conversation_history: Prior turns, oldest first

    Returns:
        Final graph state with the answer and call counts

    Raises:
        InvalidInput: If the message is blank or the repository id is malformed
        UpstreamUnavailable: If the first-round generation call fails
    """
    if not message or not message.strip():
        raise InvalidInput("Message must not be empty")
    owner, name = split_repository_id(repository_id)

    state = create_initial_state(message, f"{owner}/{name}", conversation_history)

    graph = build_graph()

    start_time = time.perf_counter()
    final_state = graph.invoke(state)
    elapsed_ms = (time.perf_counter() - start_time) * 1000

    final_state["processing_time_ms"] = elapsed_ms
    logger.info(
        f"Answered turn for {owner}/{name} in {elapsed_ms:.0f}ms "
        f"({final_state.get('retrieval_calls', 0)} retrievals, "
        f"{final_state.get('generation_calls', 0)} generations)"
    )

    return final_state


def answer(
    message: str,
    repository_id: str,
    conversation_history: Optional[list[ConversationTurn]] = None,
) -> str:
    """Return only the final answer text for a user turn."""
    return run_answer(message, repository_id, conversation_history).get("generation") or ""


def get_graph_visualization() -> str:
    """
    Generate Mermaid diagram of the workflow.

    Returns:
        Mermaid diagram string for visualization
    """
    graph = build_graph()
    return graph.get_graph().draw_mermaid()
