"""Exceptions raised by the aggregation pipeline.

Upstream failures other than an expired token are not wrapped: a
``spotipy.SpotifyException`` for a 404 or 429 reaches the caller unchanged.
"""

from typing import Any, Optional


class CallwrapperError(Exception):
    """Base exception for callwrapper errors."""

    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class CredentialsExchangeError(CallwrapperError):
    """Raised when the client-credentials exchange fails.

    Fatal for the request in progress. The token manager never retries it.
    """

    def __init__(
        self,
        message: str = "Client credentials exchange failed",
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code


class UpstreamAuthError(CallwrapperError):
    """Raised when a freshly refreshed token is rejected again."""

    def __init__(self, description: str) -> None:
        super().__init__(
            f"Upstream rejected the refreshed token for {description}"
        )
        self.description = description


class PaginationLimitError(CallwrapperError):
    """Raised when a paged endpoint needs more pages than allowed."""

    def __init__(self, max_pages: int, total: int) -> None:
        super().__init__(
            f"Stopped after {max_pages} pages without reaching total {total}"
        )
        self.max_pages = max_pages
        self.total = total


class DeadlineExceededError(CallwrapperError):
    """Raised when a request runs past its deadline."""

    def __init__(self, budget_seconds: float) -> None:
        super().__init__(f"Request exceeded its {budget_seconds:g}s deadline")
        self.budget_seconds = budget_seconds
