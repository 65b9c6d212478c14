"""
Retriever nodes: Fetch repository code chunks for the answer prompt.

retriever_node embeds the user's message once and fetches the top-k chunks
for the first round. expanded_retriever_node reuses the same query vector
with a larger k and keeps only chunks the first round did not surface.

Both nodes treat retrieval as optional enrichment: any failure leaves the
turn without (additional) context instead of failing it.
"""

import logging
from typing import TYPE_CHECKING

from repochat.config import settings
from repochat.retrieval.resources import get_embedder, get_retriever
from repochat.retrieval.retriever import exclude_seen, format_context

if TYPE_CHECKING:
    from repochat.graph.state import AnswerState
    from repochat.retrieval.retriever import RetrievalMatch

logger = logging.getLogger(__name__)


def _query_vector(state: "AnswerState") -> list[float]:
    vector = state.get("query_vector")
    if vector is None:
        vector = get_embedder().embed_query(state.get("message", ""))
        state["query_vector"] = vector
    return vector


def _retrieve(state: "AnswerState", top_k: int) -> list["RetrievalMatch"]:
    repository_id = state.get("repository_id", "")
    try:
        vector = _query_vector(state)
    except Exception as e:
        logger.warning(f"Query embedding failed for {repository_id}: {e}")
        state["error"] = f"Retriever error: {e!s}"
        return []

    state["retrieval_calls"] = state.get("retrieval_calls", 0) + 1
    try:
        return get_retriever().retrieve(vector, repository_id, top_k=top_k)
    except Exception as e:
        logger.warning(f"Retrieval failed for {repository_id}: {e}")
        state["error"] = f"Retriever error: {e!s}"
        return []


def retriever_node(state: "AnswerState") -> "AnswerState":
    """
    Retrieve the first-round chunks for the user's message.

    Args:
        state: Current graph state containing message and repository_id

    Returns:
        Updated state with first_matches and context populated
    """
    matches = _retrieve(state, settings.retrieval_top_k)

    state["first_matches"] = matches
    state["context"] = format_context(matches)
    logger.info(f"First retrieval returned {len(matches)} chunks for {state.get('repository_id')}")
    return state


def expanded_retriever_node(state: "AnswerState") -> "AnswerState":
    """
    Retrieve a wider set of chunks and keep only the unseen ones.

    Args:
        state: Current graph state with first_matches populated

    Returns:
        Updated state with additional_matches and additional_context populated
    """
    matches = _retrieve(state, settings.expanded_top_k)
    fresh = exclude_seen(matches, state.get("first_matches", []))

    state["additional_matches"] = fresh
    state["additional_context"] = format_context(fresh)
    logger.info(f"Expanded retrieval found {len(fresh)} new chunks for {state.get('repository_id')}")
    return state
