"""Error taxonomy for item listing."""

from typing import Iterable


class QueryError(Exception):
    """Base class for every error raised while planning or running a listing."""


class InvalidSortField(QueryError):
    """Sort path is not in the allow-list. Client error."""

    def __init__(self, path: str, allowed: Iterable[str] = ()):
        self.path = path
        self.allowed = sorted(allowed)
        message = f"Unknown sort field '{path}'"
        if self.allowed:
            message += f". Available fields: {', '.join(self.allowed)}"
        super().__init__(message)


class InvalidPageRequest(QueryError):
    """Page number or page size out of range. Client error."""


class SearchUnavailable(QueryError):
    """Search index call failed. Retryable; never downgraded to an unfiltered listing."""


class StorageError(QueryError):
    """Storage query failed. Propagated as-is; retry policy belongs to the caller."""
