"""Data models for Claude.ai API responses."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .utils import parse_iso_timestamp


def _uuid_of(data: dict[str, Any]) -> str:
    return str(data.get("uuid") or data.get("id") or "")


@dataclass
class Organization:
    """An organization the session key has access to."""

    id: str
    name: str
    capabilities: list[str] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Organization":
        return cls(
            id=_uuid_of(data),
            name=data.get("name", ""),
            capabilities=list(data.get("capabilities") or []),
        )


@dataclass
class Project:
    """A remote project holding documents and conversations."""

    id: str
    name: str
    description: str = ""
    archived_at: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_archived(self) -> bool:
        """True once the project has been archived (soft-deleted)."""
        return self.archived_at is not None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Project":
        return cls(
            id=_uuid_of(data),
            name=data.get("name", ""),
            description=data.get("description") or "",
            archived_at=data.get("archived_at"),
            created_at=data.get("created_at"),
        )


@dataclass
class Document:
    """A text document stored in a project.

    Identity across local and remote is the ``file_name``; the ``uuid`` is
    only used to delete the document.
    """

    uuid: str
    file_name: str
    content: str = ""
    created_at: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Document":
        return cls(
            uuid=_uuid_of(data),
            file_name=data.get("file_name", ""),
            content=data.get("content") or "",
            created_at=data.get("created_at"),
        )


@dataclass
class ChatMessage:
    """A single stored message of a conversation."""

    uuid: str
    text: str
    sender: str
    created_at: Optional[str] = None
    index: int = 0

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ChatMessage":
        return cls(
            uuid=_uuid_of(data),
            text=data.get("text") or "",
            sender=data.get("sender", ""),
            created_at=data.get("created_at"),
            index=int(data.get("index") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "uuid": self.uuid,
            "text": self.text,
            "sender": self.sender,
            "created_at": self.created_at,
            "index": self.index,
        }


@dataclass
class ChatConversation:
    """A chat conversation, optionally attached to a project."""

    uuid: str
    name: str
    project_uuid: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    messages: list[ChatMessage] = field(default_factory=list)

    @property
    def updated(self) -> Optional[datetime]:
        return parse_iso_timestamp(self.updated_at or self.created_at)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ChatConversation":
        project_uuid = data.get("project_uuid")
        if project_uuid is None and isinstance(data.get("project"), dict):
            project_uuid = data["project"].get("uuid")
        messages = [
            ChatMessage.from_api_response(m) for m in data.get("chat_messages") or []
        ]
        return cls(
            uuid=_uuid_of(data),
            name=data.get("name") or "",
            project_uuid=project_uuid,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            messages=messages,
        )

    def to_metadata(self) -> dict[str, Any]:
        """Conversation fields without messages, for local persistence."""
        return {
            "uuid": self.uuid,
            "name": self.name,
            "project_uuid": self.project_uuid,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class PublishedArtifact:
    """Published output of a conversation."""

    uuid: str
    content: str = ""
    title: str = ""
    created_at: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "PublishedArtifact":
        return cls(
            uuid=str(
                data.get("published_artifact_uuid")
                or data.get("uuid")
                or data.get("id")
                or ""
            ),
            content=data.get("content") or "",
            title=data.get("title") or "",
            created_at=data.get("created_at"),
        )


class MessageEventKind(str, Enum):
    """Kinds of events on a streamed completion."""

    COMPLETION = "completion"
    """Incremental completion text"""

    ERROR = "error"
    """Error reported by the server or the transport"""

    DONE = "done"
    """Terminal marker, nothing follows"""


@dataclass(frozen=True)
class MessageEvent:
    """One event of a streamed reply."""

    kind: MessageEventKind
    text: str = ""

    @classmethod
    def completion(cls, text: str) -> "MessageEvent":
        return cls(MessageEventKind.COMPLETION, text)

    @classmethod
    def error(cls, text: str) -> "MessageEvent":
        return cls(MessageEventKind.ERROR, text)

    @classmethod
    def done(cls) -> "MessageEvent":
        return cls(MessageEventKind.DONE)

    @property
    def is_done(self) -> bool:
        return self.kind is MessageEventKind.DONE

    @property
    def is_error(self) -> bool:
        return self.kind is MessageEventKind.ERROR
