"""File comparison logic for push operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import Document
from ..utils import calculate_content_hash


class SyncAction(str, Enum):
    """Actions that can be taken during a push."""

    UPLOAD = "upload"
    """Upload a local file that has no remote document"""

    UPDATE = "update"
    """Upload a local file whose remote document differs"""

    DELETE = "delete"
    """Delete a remote document that has no local file"""

    SKIP = "skip"
    """Skip file (no action needed)"""


@dataclass
class SyncDecision:
    """Represents a decision about how to sync a file."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    file_name: str
    """Relative path of the file, the document identity"""

    remote_doc: Optional[Document] = None
    """Remote document (if exists)"""


class FileComparator:
    """Compares a LocalMap against the remote document list."""

    def compare(
        self,
        local_files: dict[str, str],
        remote_docs: list[Document],
    ) -> list[SyncDecision]:
        """Determine the actions needed to make remote mirror local.

        All upload/update/skip decisions come before any delete decision, so
        executing them in order never leaves the project emptier than needed
        (a rename uploads the new name before deleting the old one).

        Args:
            local_files: Mapping of relative path to hex MD5 fingerprint
            remote_docs: Documents currently stored in the project

        Returns:
            List of SyncDecision objects
        """
        remote_by_name = {doc.file_name: doc for doc in remote_docs}
        decisions = [
            self._compare_local_file(name, fingerprint, remote_by_name.get(name))
            for name, fingerprint in sorted(local_files.items())
        ]

        for doc in remote_docs:
            if doc.file_name not in local_files:
                decisions.append(
                    SyncDecision(
                        action=SyncAction.DELETE,
                        reason="File no longer exists locally",
                        file_name=doc.file_name,
                        remote_doc=doc,
                    )
                )
        return decisions

    def _compare_local_file(
        self, file_name: str, fingerprint: str, remote_doc: Optional[Document]
    ) -> SyncDecision:
        if remote_doc is None:
            return SyncDecision(
                action=SyncAction.UPLOAD,
                reason="File only exists locally",
                file_name=file_name,
            )

        # Remote documents carry the full text, so fingerprint it the same way
        if calculate_content_hash(remote_doc.content) != fingerprint:
            return SyncDecision(
                action=SyncAction.UPDATE,
                reason="Local content differs from remote",
                file_name=file_name,
                remote_doc=remote_doc,
            )

        return SyncDecision(
            action=SyncAction.SKIP,
            reason="Files are identical",
            file_name=file_name,
            remote_doc=remote_doc,
        )
