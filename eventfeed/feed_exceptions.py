"""Exception hierarchy for the event feed."""

from typing import Any, Optional


class EventFeedError(Exception):
    """Pipeline-level failure that is reported to HTTP clients.

    Attributes:
        message: User-facing message placed in the error envelope
        details: Diagnostic detail that is logged but never sent to clients
    """

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Structured form used for logging."""
        return {"message": self.message, "details": self.details}


class FeedFetchError(Exception):
    """Base exception for upstream fetch errors."""


class FeedTimeoutError(FeedFetchError):
    """Upstream request exceeded its timeout."""


class FeedStatusError(FeedFetchError):
    """Upstream answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SpaceRegistryError(Exception):
    """Location registry document is not in the expected shape."""
