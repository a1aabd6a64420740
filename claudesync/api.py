"""API client for Claude.ai."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

import httpx

from .exceptions import (
    ClaudeSyncAPIError,
    ClaudeSyncConfigError,
    ClaudeSyncForbiddenError,
    ClaudeSyncNetworkError,
    ClaudeSyncNotFoundError,
    ClaudeSyncProtocolError,
    ClaudeSyncRateLimitError,
    ClaudeSyncRequestError,
)
from .models import (
    ChatConversation,
    Document,
    Organization,
    Project,
    PublishedArtifact,
)
from .streaming import MessageStream
from .utils import DEFAULT_PROVIDER, DEFAULT_TIMEZONE, USER_AGENT, format_http_date

if TYPE_CHECKING:
    from .config import ConfigManager

logger = logging.getLogger(__name__)


def decode_body(body: bytes) -> str:
    """Decode an error body as UTF-8, falling back to ISO-8859-1."""
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError:
        return body.decode("iso-8859-1")


def parse_rate_limit_reset(body: str) -> Optional[datetime]:
    """Extract the reset instant from a 429 response body.

    The service nests a JSON document inside the ``error.message`` string,
    so the body is decoded twice:

        {"error": {"message": "{\\"resetsAt\\": 1700000000}"}}

    Returns:
        The reset instant (UTC), or None if any step of parsing fails
    """
    try:
        message = json.loads(body)["error"]["message"]
        resets_at = json.loads(message)["resetsAt"]
    except (ValueError, KeyError, TypeError):
        return None
    if isinstance(resets_at, bool) or not isinstance(resets_at, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(int(resets_at), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def classify_http_error(status_code: int, body: bytes) -> ClaudeSyncAPIError:
    """Map a non-2xx response to the matching ClaudeSync exception."""
    content = decode_body(body)
    logger.debug("HTTP error %d: %s", status_code, content)

    if status_code == 403:
        return ClaudeSyncForbiddenError(
            "Received a 403 Forbidden error. Please check your session key, "
            "it may be invalid or expired."
        )
    if status_code == 429:
        reset_at = parse_rate_limit_reset(content)
        if reset_at is not None:
            return ClaudeSyncRateLimitError(
                f"Message limit exceeded. Try again after {format_http_date(reset_at)}",
                reset_at=reset_at,
            )
        return ClaudeSyncRateLimitError(
            "HTTP 429: Too Many Requests. Failed to parse error response"
        )
    return ClaudeSyncRequestError(
        f"API request failed with status code {status_code}: {content}",
        status_code=status_code,
        body=content,
    )


class ClaudeAIClient:
    """Client for the Claude.ai web API, authenticated by session cookie."""

    provider_name = DEFAULT_PROVIDER

    def __init__(
        self,
        config: ConfigManager,
        api_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the Claude.ai API client.

        Args:
            config: Configuration store the session key is read from
            api_url: Optional API base URL (uses claude_api_url if not provided)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.api_url = (api_url or config.get("claude_api_url")).rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": USER_AGENT,
                    "Accept-Encoding": "gzip",
                },
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ClaudeAIClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _session_key(self) -> str:
        session_key, _ = self.config.get_session_key(self.provider_name)
        return session_key

    def _build_headers(self, session_key: Optional[str]) -> dict[str, str]:
        # Resolved on every request so a new login takes effect immediately
        key = session_key if session_key is not None else self._session_key()
        return {"Cookie": f"sessionKey={key}"}

    def _request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        session_key: Optional[str] = None,
    ) -> Any:
        """Make an API request.

        Args:
            method: HTTP method
            endpoint: API endpoint path, appended to the base URL
            data: Optional JSON-serializable request body
            session_key: Explicit session key (defaults to the stored one)

        Returns:
            Decoded JSON body, or None for an empty success response

        Raises:
            ClaudeSyncSessionKeyError: If no session key is stored
            ClaudeSyncAPIError: If the request fails
        """
        url = f"{self.api_url}{endpoint}"
        headers = self._build_headers(session_key)
        content = json.dumps(data).encode("utf-8") if data is not None else None

        logger.debug("Making request: %s %s", method, url)
        try:
            response = self._get_client().request(
                method, url, content=content, headers=headers
            )
        except httpx.DecodingError as e:
            raise ClaudeSyncProtocolError(f"Could not decode response body: {e}") from e
        except httpx.HTTPError as e:
            raise ClaudeSyncNetworkError(f"Network error: {e}") from e
        logger.debug("Received response: %d", response.status_code)

        if response.status_code >= 400:
            raise classify_http_error(response.status_code, response.content)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ClaudeSyncProtocolError(
                f"Invalid JSON response from {endpoint}"
            ) from e

    def _request_list(self, method: str, endpoint: str, **kwargs: Any) -> list[Any]:
        result = self._request(method, endpoint, **kwargs)
        if not isinstance(result, list):
            raise ClaudeSyncProtocolError(
                f"Expected a list from {endpoint}, got {type(result).__name__}"
            )
        return result

    def _request_object(self, method: str, endpoint: str, **kwargs: Any) -> dict:
        result = self._request(method, endpoint, **kwargs)
        if not isinstance(result, dict):
            raise ClaudeSyncProtocolError(
                f"Expected an object from {endpoint}, got {type(result).__name__}"
            )
        return result

    # =========================
    # Organizations
    # =========================

    def get_organizations(self, session_key: Optional[str] = None) -> list[Organization]:
        """List the organizations visible to the session key."""
        return [
            Organization.from_api_response(item)
            for item in self._request_list(
                "GET", "/organizations", session_key=session_key
            )
        ]

    def verify_session_key(self, session_key: str) -> list[Organization]:
        """Check a candidate session key without storing it.

        Raises:
            ClaudeSyncAPIError: If the service rejects the key
        """
        return self.get_organizations(session_key=session_key)

    # =========================
    # Projects
    # =========================

    def get_projects(
        self, organization_id: str, include_archived: bool = False
    ) -> list[Project]:
        """List projects of an organization.

        Args:
            organization_id: Organization ID
            include_archived: Whether to include archived projects
        """
        projects = [
            Project.from_api_response(item)
            for item in self._request_list(
                "GET", f"/organizations/{organization_id}/projects"
            )
        ]
        if not include_archived:
            projects = [p for p in projects if not p.is_archived]
        return projects

    def create_project(
        self, organization_id: str, name: str, description: str = ""
    ) -> Project:
        """Create a private project."""
        payload = {"name": name, "description": description, "is_private": True}
        result = self._request_object(
            "POST", f"/organizations/{organization_id}/projects", data=payload
        )
        return Project.from_api_response(result)

    def archive_project(self, organization_id: str, project_id: str) -> None:
        self._request(
            "PUT",
            f"/organizations/{organization_id}/projects/{project_id}",
            data={"is_archived": True},
        )

    # =========================
    # Project documents
    # =========================

    def list_files(self, organization_id: str, project_id: str) -> list[Document]:
        """List the documents of a project, including their content."""
        return [
            Document.from_api_response(item)
            for item in self._request_list(
                "GET", f"/organizations/{organization_id}/projects/{project_id}/docs"
            )
        ]

    def upload_file(
        self, organization_id: str, project_id: str, file_name: str, content: str
    ) -> Any:
        return self._request(
            "POST",
            f"/organizations/{organization_id}/projects/{project_id}/docs",
            data={"file_name": file_name, "content": content},
        )

    def delete_file(self, organization_id: str, project_id: str, file_uuid: str) -> None:
        self._request(
            "DELETE",
            f"/organizations/{organization_id}/projects/{project_id}/docs/{file_uuid}",
        )

    # =========================
    # Chat conversations
    # =========================

    def get_chat_conversations(self, organization_id: str) -> list[ChatConversation]:
        """List conversations (without messages) of an organization."""
        return [
            ChatConversation.from_api_response(item)
            for item in self._request_list(
                "GET", f"/organizations/{organization_id}/chat_conversations"
            )
        ]

    def get_chat_conversation(
        self, organization_id: str, conversation_id: str
    ) -> ChatConversation:
        """Fetch one conversation including its messages."""
        result = self._request_object(
            "GET",
            f"/organizations/{organization_id}/chat_conversations/"
            f"{conversation_id}?rendering_mode=raw",
        )
        return ChatConversation.from_api_response(result)

    def create_chat(
        self, organization_id: str, chat_name: str = "", project_uuid: Optional[str] = None
    ) -> ChatConversation:
        payload = {"name": chat_name, "project_uuid": project_uuid}
        result = self._request_object(
            "POST", f"/organizations/{organization_id}/chat_conversations", data=payload
        )
        return ChatConversation.from_api_response(result)

    def delete_chats(self, organization_id: str, conversation_uuids: list[str]) -> Any:
        return self._request(
            "POST",
            f"/organizations/{organization_id}/chat_conversations/delete_many",
            data={"conversation_uuids": conversation_uuids},
        )

    # =========================
    # Artifacts
    # =========================

    def get_published_artifacts(self, organization_id: str) -> list[PublishedArtifact]:
        return [
            PublishedArtifact.from_api_response(item)
            for item in self._request_list(
                "GET", f"/organizations/{organization_id}/published_artifacts"
            )
        ]

    def get_artifact_content(self, organization_id: str, artifact_uuid: str) -> str:
        """Return the content of a published artifact.

        Raises:
            ClaudeSyncNotFoundError: If no published artifact has that UUID
        """
        for artifact in self.get_published_artifacts(organization_id):
            if artifact.uuid == artifact_uuid:
                return artifact.content
        raise ClaudeSyncNotFoundError(f"Artifact with UUID {artifact_uuid} not found")

    # =========================
    # Completions
    # =========================

    def send_message(
        self,
        organization_id: str,
        chat_id: str,
        prompt: str,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> MessageStream:
        """Send a prompt and stream the reply.

        Nothing is sent until the returned stream is iterated. Use it as a
        context manager (or call ``close()``) when not draining it fully.

        Examples:
            >>> with client.send_message(org_id, chat_id, "Hello") as stream:
            ...     for event in stream:
            ...         print(event.text, end="")
        """
        url = (
            f"{self.api_url}/organizations/{organization_id}"
            f"/chat_conversations/{chat_id}/completion"
        )
        payload = {
            "prompt": prompt,
            "timezone": timezone,
            "attachments": [],
            "files": [],
        }

        def build_headers() -> dict[str, str]:
            headers = self._build_headers(None)
            headers["Accept"] = "text/event-stream"
            return headers

        return MessageStream(
            self._get_client(),
            url,
            payload,
            build_headers,
            classify_error=classify_http_error,
        )


PROVIDERS: dict[str, type[ClaudeAIClient]] = {
    DEFAULT_PROVIDER: ClaudeAIClient,
}


def get_provider(provider_name: str, config: ConfigManager) -> ClaudeAIClient:
    """Return the API client for a provider name.

    Raises:
        ClaudeSyncConfigError: If the provider is not supported
    """
    provider_class = PROVIDERS.get(provider_name)
    if provider_class is None:
        raise ClaudeSyncConfigError(f"Unsupported provider: {provider_name}")
    return provider_class(config)
