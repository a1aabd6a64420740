"""Unit tests for the ClaudeSync CLI commands."""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from claudesync.cli import main
from claudesync.exceptions import ClaudeSyncForbiddenError
from claudesync.models import (
    ChatConversation,
    MessageEvent,
    Organization,
    Project,
)

from .conftest import SESSION_KEY


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_client():
    """Patch provider lookup so every command gets the same mock client."""
    client = MagicMock()
    client.__enter__.return_value = client
    client.get_organizations.return_value = [
        Organization.from_api_response({"uuid": "org-1", "name": "Acme"})
    ]
    client.verify_session_key.return_value = client.get_organizations.return_value
    client.list_files.return_value = []
    with patch("claudesync.auth.get_provider", return_value=client):
        yield client


@pytest.fixture
def invoke(runner, config):
    """Invoke the CLI against the isolated config store."""

    def _invoke(args, **kwargs):
        return runner.invoke(main, args, obj={"config": config}, **kwargs)

    return _invoke


@pytest.fixture
def active_project(config):
    config.set_active_organization("org-1")
    config.set_active_project("proj-1", "Docs")
    config.set("local_path", ".", local=True)
    return config


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, runner):
        """Test main help shows all command groups."""
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("auth", "config", "organization", "project", "chat", "push"):
            assert command in result.output

    def test_verbose_flag(self, invoke):
        """Test that --verbose is accepted."""
        result = invoke(["--verbose", "auth", "ls"])
        assert result.exit_code == 0


class TestAuthCommands:
    """Tests for auth login/logout/ls."""

    def test_login_stores_verified_key(self, invoke, config, mock_client):
        """Test that a verified key is stored with its expiry."""
        result = invoke(
            [
                "auth",
                "login",
                "--session-key",
                "sk-ant-new",
                "--expires",
                "Wed, 01 Jan 2031 00:00:00 GMT",
            ]
        )

        assert result.exit_code == 0, result.output
        mock_client.verify_session_key.assert_called_once_with("sk-ant-new")
        key, expiry = config.get_session_key("claude.ai")
        assert key == "sk-ant-new"
        assert expiry.year == 2031

    def test_login_prompts_for_missing_values(self, invoke, config, mock_client):
        """Test the interactive flow."""
        result = invoke(
            ["auth", "login"], input="sk-ant-typed\n2031-01-01T00:00:00Z\n"
        )

        assert result.exit_code == 0, result.output
        assert "sessionKey" in result.output
        assert config.get_session_key("claude.ai")[0] == "sk-ant-typed"

    def test_login_rejected_key_is_not_stored(self, invoke, config, mock_client):
        """Test that a failed verification leaves the old key in place."""
        mock_client.verify_session_key.side_effect = ClaudeSyncForbiddenError(
            "Received a 403 Forbidden error."
        )

        result = invoke(
            ["auth", "login", "--session-key", "bad", "--expires", "2031-01-01"]
        )

        assert result.exit_code == 1
        assert "verification failed" in result.output
        assert config.get_session_key("claude.ai")[0] == SESSION_KEY

    def test_login_invalid_expiry(self, invoke, mock_client):
        """Test that an unparseable expiry is rejected before verification."""
        result = invoke(
            ["auth", "login", "--session-key", "sk", "--expires", "soon"]
        )

        assert result.exit_code == 1
        mock_client.verify_session_key.assert_not_called()

    def test_logout_clears_keys(self, invoke, config):
        """Test that logout removes every stored session key."""
        result = invoke(["auth", "logout"])

        assert result.exit_code == 0
        assert config.get_providers_with_session_keys() == []

    def test_ls_json(self, invoke):
        """Test listing providers as JSON."""
        result = invoke(["--json", "auth", "ls"])

        assert result.exit_code == 0
        assert json.loads(result.output) == ["claude.ai"]


class TestConfigCommands:
    """Tests for config set/get."""

    def test_set_local_and_get(self, invoke, config):
        """Test that a local value is written and read back."""
        result = invoke(["config", "set", "local_path", "src", "--local"])
        assert result.exit_code == 0
        assert config.local_config["local_path"] == "src"

        result = invoke(["config", "get", "local_path"])
        assert "local_path: src" in result.output

    def test_set_bracketed_value(self, invoke, config):
        """Test that values that look like rich markup are stored and echoed."""
        result = invoke(["config", "set", "note", "see [/docs]"])

        assert result.exit_code == 0, result.output
        assert "see [/docs]" in result.output
        assert config.get("note") == "see [/docs]"

    def test_get_unset(self, invoke):
        """Test reading a key that is not set."""
        result = invoke(["config", "get", "nothing_here"])
        assert result.exit_code == 0
        assert "not set" in result.output


class TestOrganizationCommands:
    """Tests for organization ls/set."""

    def test_set_by_id_clears_project(self, invoke, active_project, mock_client):
        """Test that changing organization drops the active project."""
        result = invoke(["organization", "set", "--org-id", "org-1"])

        assert result.exit_code == 0, result.output
        assert active_project.get("active_organization_id") == "org-1"
        assert active_project.get("active_project_id") is None
        assert active_project.get("active_project_name") is None

    def test_set_unknown_id(self, invoke, mock_client):
        """Test selecting an organization that does not exist."""
        result = invoke(["organization", "set", "--org-id", "missing"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_set_interactive(self, invoke, config, mock_client):
        """Test picking an organization from the numbered list."""
        result = invoke(["organization", "set"], input="1\n")

        assert result.exit_code == 0, result.output
        assert config.get("active_organization_id") == "org-1"

    def test_ls(self, invoke, mock_client):
        """Test listing organizations as JSON."""
        result = invoke(["--json", "organization", "ls"])

        assert result.exit_code == 0
        assert json.loads(result.output) == [{"id": "org-1", "name": "Acme"}]


class TestProjectCommands:
    """Tests for project commands."""

    def test_ls(self, invoke, active_project, mock_client):
        """Test listing projects of the active organization."""
        mock_client.get_projects.return_value = [
            Project.from_api_response({"uuid": "proj-1", "name": "Docs"})
        ]

        result = invoke(["--json", "project", "ls"])

        assert result.exit_code == 0
        mock_client.get_projects.assert_called_once_with("org-1", include_archived=False)
        assert json.loads(result.output)[0]["status"] == "Active"

    def test_ls_without_organization(self, invoke, mock_client):
        """Test that a missing organization is reported."""
        result = invoke(["project", "ls"])
        assert result.exit_code == 1

    def test_set(self, invoke, config, mock_client):
        """Test selecting a project by ID."""
        config.set_active_organization("org-1")
        mock_client.get_projects.return_value = [
            Project.from_api_response({"uuid": "proj-2", "name": "Notes"})
        ]

        result = invoke(["project", "set", "--project-id", "proj-2"])

        assert result.exit_code == 0, result.output
        assert config.get("active_project_id") == "proj-2"
        assert config.get("active_project_name") == "Notes"


class TestPushCommand:
    """Tests for the push command."""

    def test_push_uploads_local_file(self, invoke, active_project, mock_client):
        """Test pushing a directory with one new file."""
        (active_project.local_root / "notes.md").write_text("hi")

        result = invoke(["push"])

        assert result.exit_code == 0, result.output
        mock_client.list_files.assert_called_once_with("org-1", "proj-1")
        mock_client.upload_file.assert_called_once_with(
            "org-1", "proj-1", "notes.md", "hi"
        )

    def test_push_dry_run(self, invoke, active_project, mock_client):
        """Test that a dry run does not upload."""
        (active_project.local_root / "notes.md").write_text("hi")

        result = invoke(["--json", "push", "--dry-run"])

        assert result.exit_code == 0, result.output
        mock_client.upload_file.assert_not_called()
        assert json.loads(result.output)["uploads"] == 1

    def test_push_missing_local_path(self, invoke, active_project, mock_client):
        """Test that a local path that does not exist fails cleanly."""
        active_project.set("local_path", "missing-dir", local=True)

        result = invoke(["push"])

        assert result.exit_code == 1
        assert "Sync failed" in result.output
        mock_client.list_files.assert_not_called()

    def test_push_without_organization(self, invoke, mock_client):
        """Test that push fails when no organization is selected."""
        result = invoke(["push"])

        assert result.exit_code == 1
        assert "Sync failed" in result.output
        mock_client.list_files.assert_not_called()


class TestChatCommands:
    """Tests for chat commands."""

    def test_message_streams_reply(self, invoke, active_project, mock_client):
        """Test that completion deltas are printed in order."""
        stream = MagicMock()
        stream.__enter__.return_value = [
            MessageEvent.completion("Hel"),
            MessageEvent.completion("lo"),
            MessageEvent.done(),
        ]
        mock_client.send_message.return_value = stream

        result = invoke(["chat", "message", "--chat", "c1", "Say", "hello"])

        assert result.exit_code == 0, result.output
        assert "Hello" in result.output
        mock_client.send_message.assert_called_once_with("org-1", "c1", "Say hello", "UTC")
        mock_client.create_chat.assert_not_called()

    def test_message_creates_chat(self, invoke, active_project, mock_client):
        """Test that a chat is created in the active project when none is given."""
        mock_client.create_chat.return_value = ChatConversation(uuid="new", name="")
        stream = MagicMock()
        stream.__enter__.return_value = [MessageEvent.done()]
        mock_client.send_message.return_value = stream

        result = invoke(["chat", "message", "Hi"])

        assert result.exit_code == 0, result.output
        mock_client.create_chat.assert_called_once_with("org-1", "", "proj-1")
        assert mock_client.send_message.call_args[0][1] == "new"

    def test_message_error_event(self, invoke, active_project, mock_client):
        """Test that an in-band error exits non-zero."""
        stream = MagicMock()
        stream.__enter__.return_value = [MessageEvent.error("Message limit exceeded")]
        mock_client.send_message.return_value = stream

        result = invoke(["chat", "message", "--chat", "c1", "Hi"])

        assert result.exit_code == 1
        assert "Message limit" in result.output

    def test_message_error_event_with_brackets(
        self, invoke, active_project, mock_client
    ):
        """Test that a server error body containing tags is printed literally."""
        stream = MagicMock()
        stream.__enter__.return_value = [MessageEvent.error("server said [/b] oops")]
        mock_client.send_message.return_value = stream

        result = invoke(["chat", "message", "--chat", "c1", "Hi"])

        assert result.exit_code == 1
        assert "[/b] oops" in result.output

    def test_ls_filters_by_project(self, invoke, active_project, mock_client):
        """Test that only chats of the active project are listed."""
        mock_client.get_chat_conversations.return_value = [
            ChatConversation(uuid="c1", name="Mine", project_uuid="proj-1"),
            ChatConversation(uuid="c2", name="Other", project_uuid="proj-9"),
        ]

        result = invoke(["--json", "chat", "ls"])

        assert result.exit_code == 0
        assert [c["uuid"] for c in json.loads(result.output)] == ["c1"]

    def test_rm_with_yes(self, invoke, active_project, mock_client):
        """Test deleting chats by UUID."""
        result = invoke(["chat", "rm", "c1", "c2", "--yes"])

        assert result.exit_code == 0, result.output
        mock_client.delete_chats.assert_called_once_with("org-1", ["c1", "c2"])
