"""ClaudeSync - synchronize local files with Claude.ai projects."""

from .api import ClaudeAIClient, get_provider
from .config import ConfigManager
from .exceptions import (
    ClaudeSyncAPIError,
    ClaudeSyncConfigError,
    ClaudeSyncError,
    ClaudeSyncForbiddenError,
    ClaudeSyncIOError,
    ClaudeSyncNetworkError,
    ClaudeSyncNotFoundError,
    ClaudeSyncProtocolError,
    ClaudeSyncRateLimitError,
    ClaudeSyncRequestError,
    ClaudeSyncSessionKeyError,
)
from .models import MessageEvent, MessageEventKind
from .streaming import MessageStream, parse_event_stream

__all__ = [
    "ClaudeAIClient",
    "ConfigManager",
    "MessageEvent",
    "MessageEventKind",
    "MessageStream",
    "get_provider",
    "parse_event_stream",
    "ClaudeSyncAPIError",
    "ClaudeSyncConfigError",
    "ClaudeSyncError",
    "ClaudeSyncForbiddenError",
    "ClaudeSyncIOError",
    "ClaudeSyncNetworkError",
    "ClaudeSyncNotFoundError",
    "ClaudeSyncProtocolError",
    "ClaudeSyncRateLimitError",
    "ClaudeSyncRequestError",
    "ClaudeSyncSessionKeyError",
]
