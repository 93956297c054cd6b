"""
Exceptions raised across component boundaries.
"""

from __future__ import annotations


class CompetitorMonitorError(Exception):
    """Base exception for the competitor monitor."""


class FetchError(CompetitorMonitorError):
    """Base exception for page retrieval failures."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


class FetchTimeoutError(FetchError):
    """Raised when navigation exceeds its hard timeout."""


class FetchNavigationError(FetchError):
    """Raised when navigation fails before a response is available."""


class FetchHTTPError(FetchError):
    """Raised when the page responds with a non-2xx status."""

    def __init__(self, url: str, status_code: int | None) -> None:
        super().__init__(url, f"HTTP {status_code}")
        self.status_code = status_code


class BrowserUnavailableError(FetchError):
    """Raised when the shared browser cannot be launched."""


class LLMUnavailableError(CompetitorMonitorError):
    """Raised when every configured LLM provider has failed."""


class CircuitOpenError(CompetitorMonitorError):
    """Raised when a call is refused by an open circuit breaker."""
