"""Pull chat conversations and their artifacts into a local directory.

Layout of the output directory::

    <output_dir>/<conversation uuid>/metadata.json
    <output_dir>/<conversation uuid>/<message uuid>.json
    <output_dir>/<conversation uuid>/artifacts/<identifier>.<ext>
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .api import ClaudeAIClient
from .exceptions import ClaudeSyncIOError
from .models import ChatConversation
from .output import OutputFormatter

logger = logging.getLogger(__name__)

ARTIFACT_PATTERN = re.compile(r"<antArtifact([^>]*)>(.*?)</antArtifact>", re.DOTALL)
ATTRIBUTE_PATTERN = re.compile(r'(\w+)="([^"]*)"')

ARTIFACT_EXTENSIONS = {
    "text/markdown": "md",
    "text/html": "html",
    "image/svg+xml": "svg",
    "application/vnd.ant.mermaid": "mmd",
    "application/vnd.ant.react": "jsx",
}

LANGUAGE_EXTENSIONS = {
    "python": "py",
    "javascript": "js",
    "typescript": "ts",
    "bash": "sh",
    "shell": "sh",
    "markdown": "md",
}


@dataclass
class Artifact:
    """An artifact embedded in an assistant message."""

    identifier: str
    type: str
    title: str
    content: str
    language: Optional[str] = None

    @property
    def extension(self) -> str:
        if self.type == "application/vnd.ant.code" and self.language:
            return LANGUAGE_EXTENSIONS.get(self.language, self.language)
        return ARTIFACT_EXTENSIONS.get(self.type, "txt")

    @property
    def file_name(self) -> str:
        return f"{sanitize_name(self.identifier)}.{self.extension}"


def sanitize_name(name: str) -> str:
    """Convert an identifier to a filesystem-safe name.

    Examples:
        >>> sanitize_name("my artifact/v2")
        'my-artifact-v2'
    """
    name = re.sub(r"[^A-Za-z0-9._-]+", "-", name).strip("-.")
    return name or "untitled"


def extract_artifacts(text: str) -> list[Artifact]:
    """Find every ``<antArtifact ...>`` block in a message text."""
    artifacts = []
    for match in ARTIFACT_PATTERN.finditer(text):
        attributes = dict(ATTRIBUTE_PATTERN.findall(match.group(1)))
        identifier = attributes.get("identifier")
        if not identifier:
            logger.debug("Skipping artifact without identifier")
            continue
        artifacts.append(
            Artifact(
                identifier=identifier,
                type=attributes.get("type", ""),
                title=attributes.get("title", ""),
                content=match.group(2).strip("\n"),
                language=attributes.get("language"),
            )
        )
    return artifacts


class ChatPuller:
    """Writes the conversations of a project to disk."""

    def __init__(
        self,
        client: ClaudeAIClient,
        output_dir: Path,
        output: Optional[OutputFormatter] = None,
    ):
        self.client = client
        self.output_dir = output_dir
        self.output = output or OutputFormatter()

    def pull(self, organization_id: str, project_id: Optional[str] = None) -> dict:
        """Fetch conversations and store them under ``output_dir``.

        Args:
            organization_id: Organization to pull from
            project_id: Only pull conversations of this project (all if None)

        Returns:
            Dictionary with counts of conversations, messages and artifacts
        """
        stats = {"conversations": 0, "messages": 0, "artifacts": 0}
        for summary in self.client.get_chat_conversations(organization_id):
            if project_id is not None and summary.project_uuid != project_id:
                continue
            conversation = self.client.get_chat_conversation(
                organization_id, summary.uuid
            )
            messages, artifacts = self._save_conversation(conversation)
            stats["conversations"] += 1
            stats["messages"] += messages
            stats["artifacts"] += artifacts
            self.output.info(
                f"Pulled chat: {conversation.name or conversation.uuid} "
                f"({messages} message(s), {artifacts} artifact(s))"
            )
        return stats

    def _save_conversation(self, conversation: ChatConversation) -> tuple[int, int]:
        chat_dir = self.output_dir / conversation.uuid
        self._write_json(chat_dir / "metadata.json", conversation.to_metadata())

        artifact_count = 0
        for message in conversation.messages:
            self._write_json(chat_dir / f"{message.uuid}.json", message.to_dict())
            if message.sender != "assistant":
                continue
            for artifact in extract_artifacts(message.text):
                self._write_text(chat_dir / "artifacts" / artifact.file_name, artifact.content)
                artifact_count += 1
        return len(conversation.messages), artifact_count

    def _write_json(self, path: Path, data: Any) -> None:
        self._write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")

    def _write_text(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ClaudeSyncIOError(f"Failed to write {path}: {e}") from e
