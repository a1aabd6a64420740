"""Session key helpers shared by CLI commands."""

import logging
from datetime import datetime
from typing import Any

from .api import ClaudeAIClient, get_provider
from .config import ConfigManager
from .exceptions import ClaudeSyncError
from .models import Organization
from .output import OutputFormatter

logger = logging.getLogger(__name__)

SESSION_KEY_INSTRUCTIONS = """\
A session key is required to call the Claude.ai API.
To obtain your session key:
  1. Open https://claude.ai in your web browser and log in
  2. Open the browser developer tools (F12 or Ctrl+Shift+I / Cmd+Option+I)
  3. Go to the 'Application' tab (Chrome/Edge) or 'Storage' tab (Firefox)
  4. Expand 'Cookies' and select 'https://claude.ai'
  5. Copy the value of the 'sessionKey' cookie (not URL-encoded)"""


def require_client(ctx: Any, out: OutputFormatter) -> ClaudeAIClient:
    """Build the API client for the active provider, or exit with an error."""
    config: ConfigManager = ctx.obj["config"]
    provider_name = config.get("active_provider")
    try:
        return get_provider(provider_name, config)
    except ClaudeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, ctx.exit raises


def login(
    config: ConfigManager,
    provider_name: str,
    session_key: str,
    expiry: datetime,
) -> list[Organization]:
    """Verify a session key against the provider and store it globally.

    The candidate key is sent explicitly with the probe request, so the stored
    configuration only changes once the key has been accepted.

    Returns:
        Organizations visible to the new key

    Raises:
        ClaudeSyncError: If the provider is unknown or rejects the key
    """
    with get_provider(provider_name, config) as client:
        organizations = client.verify_session_key(session_key)
    config.set_session_key(provider_name, session_key, expiry)
    logger.debug("Stored session key for %s", provider_name)
    return organizations
