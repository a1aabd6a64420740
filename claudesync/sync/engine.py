"""Core sync engine that pushes a local directory into a project."""

import logging
import time
from pathlib import Path
from typing import Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..api import ClaudeAIClient
from ..exceptions import ClaudeSyncIOError
from ..models import Document
from ..output import OutputFormatter
from ..utils import CONFIG_DIR_NAME
from .comparator import FileComparator, SyncAction, SyncDecision
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalMap

logger = logging.getLogger(__name__)


def filter_local_files(local_files: LocalMap) -> LocalMap:
    """Drop files that belong to ClaudeSync itself (local config, pulled chats)."""
    prefix = f"{CONFIG_DIR_NAME}/"
    return {
        name: fingerprint
        for name, fingerprint in local_files.items()
        if not name.startswith(prefix)
    }


class SyncEngine:
    """Makes the document set of a remote project mirror a local directory."""

    def __init__(
        self,
        client: ClaudeAIClient,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Claude.ai API client
            output: Output formatter for displaying progress/status
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.comparator = FileComparator()

    def push(
        self,
        organization_id: str,
        project_id: str,
        root: Path,
        dry_run: bool = False,
    ) -> dict:
        """Scan ``root`` and sync it into the project.

        Args:
            organization_id: Organization owning the project
            project_id: Target project
            root: Local directory to push
            dry_run: If True, only show what would be done

        Returns:
            Dictionary with sync statistics

        Examples:
            >>> engine = SyncEngine(client)
            >>> stats = engine.push(org_id, project_id, Path("."), dry_run=True)
            >>> print(f"Would upload {stats['uploads']} files")
        """
        if not root.exists():
            raise ClaudeSyncIOError(f"Local directory does not exist: {root}")
        if not root.is_dir():
            raise ClaudeSyncIOError(f"Local path is not a directory: {root}")

        start_time = time.time()
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=self.output.quiet or self.output.json_output,
        ) as progress:
            task = progress.add_task("Scanning local directory...", total=None)
            local_files = filter_local_files(DirectoryScanner().scan_local(root))
            progress.update(task, description=f"Found {len(local_files)} local file(s)")

            task = progress.add_task("Listing remote documents...", total=None)
            remote_docs = self.client.list_files(organization_id, project_id)
            progress.update(
                task, description=f"Found {len(remote_docs)} remote document(s)"
            )
        logger.debug("Scan took %.2fs", time.time() - start_time)

        return self.sync(
            local_files,
            remote_docs,
            organization_id,
            project_id,
            root,
            dry_run=dry_run,
        )

    def sync(
        self,
        local_files: LocalMap,
        remote_docs: list[Document],
        organization_id: str,
        project_id: str,
        root: Path,
        dry_run: bool = False,
    ) -> dict:
        """Reconcile the remote documents with the local file map.

        Uploads and updates all run before any delete. The first failing
        operation aborts the sync and propagates; operations already done
        stay applied.

        Returns:
            Dictionary with sync statistics
        """
        decisions = self.comparator.compare(local_files, remote_docs)
        stats = self._categorize_decisions(decisions)

        if dry_run:
            self._display_plan(decisions)
        else:
            operations = SyncOperations(self.client, organization_id, project_id, root)
            for decision in decisions:
                self._execute_decision(decision, operations)

        if not self.output.quiet:
            self._display_summary(stats, dry_run)
        return stats

    def _execute_decision(
        self, decision: SyncDecision, operations: SyncOperations
    ) -> None:
        if decision.action == SyncAction.UPLOAD:
            operations.upload_file(decision.file_name)
            self.output.info(f"Uploaded new file: {decision.file_name}")
        elif decision.action == SyncAction.UPDATE:
            operations.upload_file(decision.file_name)
            self.output.info(f"Updated file: {decision.file_name}")
        elif decision.action == SyncAction.DELETE and decision.remote_doc is not None:
            operations.delete_remote(decision.remote_doc)
            self.output.info(f"Deleted file: {decision.file_name}")
        else:
            logger.debug("Skipping %s: %s", decision.file_name, decision.reason)

    def _categorize_decisions(self, decisions: list[SyncDecision]) -> dict:
        stats = {"uploads": 0, "updates": 0, "deletes": 0, "skips": 0}
        keys = {
            SyncAction.UPLOAD: "uploads",
            SyncAction.UPDATE: "updates",
            SyncAction.DELETE: "deletes",
            SyncAction.SKIP: "skips",
        }
        for decision in decisions:
            stats[keys[decision.action]] += 1
        return stats

    def _display_plan(self, decisions: list[SyncDecision]) -> None:
        labels = {
            SyncAction.UPLOAD: "Would upload",
            SyncAction.UPDATE: "Would update",
            SyncAction.DELETE: "Would delete",
        }
        for decision in decisions:
            label = labels.get(decision.action)
            if label:
                self.output.info(f"{label}: {decision.file_name} ({decision.reason})")

    def _display_summary(self, stats: dict, dry_run: bool) -> None:
        prefix = "Dry run" if dry_run else "Sync completed"
        self.output.success(
            f"{prefix}: {stats['uploads']} uploaded, {stats['updates']} updated, "
            f"{stats['deletes']} deleted, {stats['skips']} unchanged"
        )
