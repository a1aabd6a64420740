"""Tests for pulling chats and artifacts to disk."""

import json
from unittest.mock import Mock

import pytest

from claudesync.api import ClaudeAIClient
from claudesync.chat_pull import ChatPuller, extract_artifacts, sanitize_name
from claudesync.models import ChatConversation
from claudesync.output import OutputFormatter

ASSISTANT_TEXT = """Here you go.

<antArtifact identifier="hello-script" type="application/vnd.ant.code" language="python" title="Hello">
print("hello")
</antArtifact>

And a document:
<antArtifact identifier="notes" type="text/markdown" title="Notes">
# Notes
</antArtifact>
"""


def conversation(uuid, project_uuid, messages=()):
    return ChatConversation.from_api_response(
        {
            "uuid": uuid,
            "name": f"Chat {uuid}",
            "project_uuid": project_uuid,
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-01-02T00:00:00Z",
            "chat_messages": list(messages),
        }
    )


@pytest.fixture
def client():
    client = Mock(spec=ClaudeAIClient)
    summaries = [conversation("c1", "proj"), conversation("c2", "other")]
    details = {
        "c1": conversation(
            "c1",
            "proj",
            [
                {"uuid": "m1", "text": "Write a script", "sender": "human", "index": 0},
                {"uuid": "m2", "text": ASSISTANT_TEXT, "sender": "assistant", "index": 1},
            ],
        ),
        "c2": conversation(
            "c2", "other", [{"uuid": "m3", "text": "hi", "sender": "human", "index": 0}]
        ),
    }
    client.get_chat_conversations.return_value = summaries
    client.get_chat_conversation.side_effect = lambda org, uuid: details[uuid]
    return client


class TestExtractArtifacts:
    """Test artifact extraction from message text."""

    def test_extracts_all_blocks(self):
        """Test identifiers, extensions and content of each artifact."""
        artifacts = extract_artifacts(ASSISTANT_TEXT)

        assert [a.file_name for a in artifacts] == ["hello-script.py", "notes.md"]
        assert artifacts[0].content == 'print("hello")'
        assert artifacts[1].title == "Notes"

    def test_no_artifacts(self):
        """Test plain text."""
        assert extract_artifacts("just text") == []

    def test_unknown_type_falls_back_to_txt(self):
        """Test the default extension."""
        text = '<antArtifact identifier="x" type="application/unknown">y</antArtifact>'
        assert extract_artifacts(text)[0].file_name == "x.txt"

    def test_sanitize_name(self):
        """Test filesystem-safe names."""
        assert sanitize_name("my artifact/v2") == "my-artifact-v2"
        assert sanitize_name("///") == "untitled"


class TestChatPuller:
    """Test ChatPuller.pull."""

    def test_pull_project_chats(self, client, tmp_path):
        """Test that only the project's conversations are written."""
        puller = ChatPuller(client, tmp_path, OutputFormatter(quiet=True))

        stats = puller.pull("org", "proj")

        assert stats == {"conversations": 1, "messages": 2, "artifacts": 2}
        assert not (tmp_path / "c2").exists()
        client.get_chat_conversation.assert_called_once_with("org", "c1")

        metadata = json.loads((tmp_path / "c1" / "metadata.json").read_text())
        assert metadata["name"] == "Chat c1"
        assert metadata["project_uuid"] == "proj"

        message = json.loads((tmp_path / "c1" / "m1.json").read_text())
        assert message["sender"] == "human"
        assert message["text"] == "Write a script"

        script = tmp_path / "c1" / "artifacts" / "hello-script.py"
        assert script.read_text() == 'print("hello")'

    def test_pull_all_chats(self, client, tmp_path):
        """Test pulling without a project filter."""
        stats = ChatPuller(client, tmp_path, OutputFormatter(quiet=True)).pull("org")

        assert stats["conversations"] == 2
        assert (tmp_path / "c2" / "m3.json").exists()
        assert not (tmp_path / "c2" / "artifacts").exists()
