"""
Split Analytics — exception types.
"""

from __future__ import annotations


class SplitAnalyticsError(Exception):
    """Base class for every error raised by split_analytics."""


class ConfigurationError(SplitAnalyticsError, ValueError):
    """Tracker configuration is missing or invalid."""


class InvalidUrlError(SplitAnalyticsError, ValueError):
    """A request URL could not be parsed into a domain and path."""

    def __init__(self, url: str, reason: str = "") -> None:
        self.url = url
        message = f"[split-analytics] invalid request URL {url!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# 4xx statuses that are still worth retrying
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


class APIError(SplitAnalyticsError):
    """The collector answered with a non-2xx status."""

    def __init__(self, status_code: int, status_text: str = "") -> None:
        self.status_code = status_code
        self.status_text = status_text
        super().__init__(f"API error: {status_code} {status_text}".rstrip())

    @property
    def retryable(self) -> bool:
        """Client errors (bad key, bad payload) won't fix themselves."""
        if 400 <= self.status_code < 500:
            return self.status_code in RETRYABLE_CLIENT_STATUSES
        return True
