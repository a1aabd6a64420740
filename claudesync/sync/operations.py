"""Sync operations wrapper around the API client."""

import logging
from pathlib import Path
from typing import Any

from ..api import ClaudeAIClient
from ..exceptions import ClaudeSyncIOError
from ..models import Document

logger = logging.getLogger(__name__)


def read_document_content(root: Path, file_name: str) -> str:
    """Read a local file as document text.

    Line endings are kept as-is so the uploaded text fingerprints the same
    as the file on disk; undecodable bytes are replaced.

    Raises:
        ClaudeSyncIOError: If the file cannot be read
    """
    file_path = root / file_name
    try:
        data = file_path.read_bytes()
    except OSError as e:
        raise ClaudeSyncIOError(f"Failed to read local file {file_path}: {e}") from e
    return data.decode("utf-8", errors="replace")


class SyncOperations:
    """Upload and delete operations bound to one project."""

    def __init__(
        self,
        client: ClaudeAIClient,
        organization_id: str,
        project_id: str,
        root: Path,
    ):
        """Initialize sync operations.

        Args:
            client: Claude.ai API client
            organization_id: Organization owning the project
            project_id: Project receiving the documents
            root: Local directory file names are relative to
        """
        self.client = client
        self.organization_id = organization_id
        self.project_id = project_id
        self.root = root

    def upload_file(self, file_name: str) -> Any:
        """Read ``<root>/<file_name>`` and upload it as a project document."""
        content = read_document_content(self.root, file_name)
        logger.debug("Uploading %s (%d chars)", file_name, len(content))
        return self.client.upload_file(
            self.organization_id, self.project_id, file_name, content
        )

    def delete_remote(self, remote_doc: Document) -> None:
        """Delete a project document by its UUID."""
        logger.debug("Deleting %s (%s)", remote_doc.file_name, remote_doc.uuid)
        self.client.delete_file(self.organization_id, self.project_id, remote_doc.uuid)
