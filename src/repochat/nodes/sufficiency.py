"""
Sufficiency node: Detects answers that admit missing information.

A first-round answer is treated as insufficient when it contains any of a
fixed set of phrases (case-insensitive): "need more", "don't have",
"do not have", "can't find", "cannot find", "not available", "missing",
"insufficient". Both straight and typographic apostrophes match.
"""

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repochat.graph.state import AnswerState


INSUFFICIENCY_PATTERN = re.compile(
    r"need more"
    r"|don['’]t have"
    r"|do not have"
    r"|can['’]t find"
    r"|cannot find"
    r"|not available"
    r"|missing"
    r"|insufficient",
    re.IGNORECASE,
)


def is_insufficient(text: str) -> bool:
    """Return True if the answer reports that it lacks information."""
    return bool(text) and INSUFFICIENCY_PATTERN.search(text) is not None


def sufficiency_check_node(state: "AnswerState") -> "AnswerState":
    """
    Flag the first-round answer when it admits missing information.

    Args:
        state: Current graph state with first_response populated

    Returns:
        Updated state with insufficient populated
    """
    state["insufficient"] = is_insufficient(state.get("first_response") or "")
    return state
