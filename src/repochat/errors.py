"""
Error taxonomy shared by the indexing and answering pipelines.

    - InvalidInput: malformed repository identifier or message, reported directly
    - UpstreamUnavailable: repository browser or model call failed
    - RepositoryNotFound: the source-control host has no such repository
    - InvalidResponseShape: embedding response matched no known shape
    - RetrievalDegraded: vector query failed, treated as "no context found"
"""

import re

REPOSITORY_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class RepoChatError(Exception):
    """Base class for all repochat errors."""


class InvalidInput(RepoChatError, ValueError):
    """Caller supplied a missing or malformed argument."""


class UpstreamUnavailable(RepoChatError):
    """A remote collaborator (GitHub, model endpoint) could not be reached or failed."""


class RepositoryNotFound(UpstreamUnavailable):
    """The requested repository does not exist or is not visible."""


class InvalidResponseShape(RepoChatError):
    """A model response did not match any supported shape."""


class RetrievalDegraded(RepoChatError):
    """The vector store query failed; callers continue without context."""


def split_repository_id(repository_id: str) -> tuple[str, str]:
    """
    Validate an ``owner/name`` identifier and split it.

    Raises:
        InvalidInput: If the identifier is missing or malformed
    """
    if not repository_id or not REPOSITORY_ID_PATTERN.match(repository_id.strip()):
        raise InvalidInput(
            f"Repository identifier must look like 'owner/name', got {repository_id!r}"
        )
    owner, name = repository_id.strip().split("/", 1)
    return owner, name
