"""
Index status node: Decides whether the turn can be grounded in code.

Reads the repository's status from the key/value store. Only a completed
index ("indexed") enables retrieval; an in-flight or absent index sends the
turn straight to generation with the indexing-pending prompt.
"""

import logging
from typing import TYPE_CHECKING

from repochat.retrieval.resources import get_status_store
from repochat.retrieval.status import RepositoryIndexStatus, get_index_status

if TYPE_CHECKING:
    from repochat.graph.state import AnswerState

logger = logging.getLogger(__name__)


def check_index_node(state: "AnswerState") -> "AnswerState":
    """
    Look up the index status for the turn's repository.

    Args:
        state: Current graph state containing repository_id

    Returns:
        Updated state with is_indexed populated
    """
    repository_id = state.get("repository_id", "")

    try:
        status = get_index_status(get_status_store(), repository_id)
    except Exception as e:
        logger.warning(f"Could not read index status for {repository_id}: {e}")
        state["error"] = f"Index status error: {e!s}"
        status = RepositoryIndexStatus.ABSENT

    state["is_indexed"] = status is RepositoryIndexStatus.INDEXED
    logger.debug(f"{repository_id} index status: {status.value}")
    return state
