"""
LangGraph workflow definition and state management.

Components:
    - state: TypedDict defining the graph state schema
    - workflow: Graph construction and compilation
"""

from repochat.graph.state import AnswerState, ConversationTurn
from repochat.graph.workflow import answer, build_graph, run_answer

__all__ = [
    "AnswerState",
    "ConversationTurn",
    "answer",
    "build_graph",
    "run_answer",
]
