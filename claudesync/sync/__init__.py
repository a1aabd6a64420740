"""Sync engine for ClaudeSync - push a local directory into a project."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .engine import SyncEngine, filter_local_files
from .operations import SyncOperations, read_document_content
from .scanner import DirectoryScanner, LocalMap, compute_file_hash, scan_local_files

__all__ = [
    "SyncEngine",
    "SyncOperations",
    "DirectoryScanner",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "LocalMap",
    "compute_file_hash",
    "filter_local_files",
    "read_document_content",
    "scan_local_files",
]
