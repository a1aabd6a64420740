"""Exceptions raised by ClaudeSync."""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class ClaudeSyncError(Exception):
    """Base exception for all ClaudeSync errors."""


class ClaudeSyncConfigError(ClaudeSyncError):
    """A required configuration value is missing or the config file is invalid."""


class ClaudeSyncSessionKeyError(ClaudeSyncError):
    """No usable session key is stored for the provider."""


class ClaudeSyncIOError(ClaudeSyncError):
    """Reading the local file tree failed."""


class ClaudeSyncAPIError(ClaudeSyncError):
    """Base exception for errors reported by the remote service."""


class ClaudeSyncForbiddenError(ClaudeSyncAPIError):
    """HTTP 403, usually an expired or invalid session key."""


class ClaudeSyncRateLimitError(ClaudeSyncAPIError):
    """HTTP 429, the message limit was exceeded."""

    def __init__(self, message: str, reset_at: Optional[datetime] = None):
        super().__init__(message)
        self.reset_at = reset_at


class ClaudeSyncRequestError(ClaudeSyncAPIError):
    """Any other non-2xx response."""

    def __init__(self, message: str, status_code: int, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ClaudeSyncProtocolError(ClaudeSyncAPIError):
    """The response body could not be decoded as expected."""


class ClaudeSyncNetworkError(ClaudeSyncAPIError):
    """The request never produced an HTTP response."""


class ClaudeSyncNotFoundError(ClaudeSyncAPIError):
    """A looked-up remote resource does not exist."""
