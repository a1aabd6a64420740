"""Utility functions for ClaudeSync."""

import hashlib
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

DEFAULT_PROVIDER: str = "claude.ai"

DEFAULT_API_URL: str = "https://claude.ai/api"

# Directory holding the global config (under $HOME) and the local config
# (under the project root)
CONFIG_DIR_NAME: str = ".claudesync"

GLOBAL_CONFIG_FILE: str = "config.json"

LOCAL_CONFIG_FILE: str = "config.local.json"

SESSION_KEY_SUFFIX: str = "_session_key"

DEFAULT_TIMEZONE: str = "UTC"

# Some deployments reject requests that do not look like a browser
USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:129.0) "
    "Gecko/20100101 Firefox/129.0"
)


# =============================================================================
# Timestamp utilities
# =============================================================================


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp as returned by the Claude.ai API.

    Args:
        timestamp_str: ISO format timestamp (e.g., "2024-07-01T10:30:00.123456Z")

    Returns:
        Timezone-aware datetime (naive input is taken as UTC), or None if
        parsing fails
    """
    if not timestamp_str:
        return None

    # The 'Z' suffix indicates UTC time
    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(timestamp_str)
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as an ISO 8601 instant with seconds precision.

    Examples:
        >>> format_timestamp(datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc))
        '2023-11-14T22:13:20+00:00'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat(timespec="seconds")


def parse_expiry(value: str) -> datetime:
    """Parse a session key expiry entered by the user.

    Accepts RFC 1123 ("Tue, 01 Oct 2024 12:00:00 GMT") as shown by browser
    cookie inspectors, or ISO 8601.

    Raises:
        ValueError: If the value matches neither format
    """
    value = value.strip()
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        dt = None
    if dt is None:
        dt = parse_iso_timestamp(value)
    if dt is None:
        raise ValueError(f"Invalid expiry time format: {value}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_http_date(dt: datetime) -> str:
    """Format a datetime the way HTTP headers do (RFC 1123, UTC)."""
    return dt.astimezone(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S UTC")


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_md5(data: bytes) -> str:
    """Return the lowercase hex MD5 digest of ``data``.

    Examples:
        >>> calculate_md5(b"hello")
        '5d41402abc4b2a76b9719d911017c592'
    """
    return hashlib.md5(data).hexdigest()


def calculate_content_hash(content: str) -> str:
    """Return the MD5 fingerprint of text content, encoded as UTF-8."""
    return calculate_md5(content.encode("utf-8"))
