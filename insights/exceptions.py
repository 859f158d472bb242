"""
Exceptions raised while building insight cards.
"""
from datetime import datetime
from typing import Optional


class InsightsError(Exception):
    """Base exception for the insights app."""


class UpstreamError(InsightsError):
    """A mandatory upstream fetch failed for ``username``."""

    def __init__(self, username: str, message: str):
        self.username = username
        self.message = message
        super().__init__(message)


class NotFound(UpstreamError):
    """The profile does not exist upstream."""

    def __init__(self, username: str, message: Optional[str] = None):
        super().__init__(
            username,
            message or f"User '{username}' not found on GitHub",
        )


class RateLimited(UpstreamError):
    """GitHub is throttling requests."""

    def __init__(
        self,
        username: str,
        message: str,
        reset_at: Optional[datetime] = None,
        has_token: bool = False,
    ):
        super().__init__(username, message)
        self.reset_at = reset_at
        self.has_token = has_token


class TransportError(UpstreamError):
    """Network failure, timeout, or an unparseable response."""


class RenderError(InsightsError):
    """The renderer could not serialize a card. Always a programming defect."""
