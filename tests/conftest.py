"""Shared test fixtures for claudesync."""

from datetime import datetime, timezone

import httpx
import pytest

from claudesync.api import ClaudeAIClient
from claudesync.config import ConfigManager

API_URL = "https://claude.test/api"
SESSION_KEY = "sk-ant-test"


@pytest.fixture
def config(tmp_path):
    """Config store isolated in a temporary directory, with a session key."""
    repo = tmp_path / "repo"
    (repo / ".claudesync").mkdir(parents=True)
    config = ConfigManager(global_dir=tmp_path / "home", start_dir=repo)
    config.set_session_key(
        "claude.ai", SESSION_KEY, datetime(2030, 1, 1, tzinfo=timezone.utc)
    )
    return config


@pytest.fixture
def make_client(config):
    """Build a ClaudeAIClient whose requests are answered by ``handler``."""
    clients = []

    def _make(handler):
        client = ClaudeAIClient(
            config, api_url=API_URL, transport=httpx.MockTransport(handler)
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
