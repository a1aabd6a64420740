"""Directory scanning for push operations."""

import logging
from pathlib import Path

from ..exceptions import ClaudeSyncIOError
from ..utils import calculate_md5

logger = logging.getLogger(__name__)

LocalMap = dict[str, str]
"""Relative POSIX path -> hex MD5 fingerprint of the file content."""


def compute_file_hash(file_path: Path) -> str:
    """Return the hex MD5 fingerprint of a file's bytes.

    Raises:
        OSError: If the file cannot be read
    """
    return calculate_md5(file_path.read_bytes())


class DirectoryScanner:
    """Builds a LocalMap from a directory tree.

    Regular files are fingerprinted; symbolic links are skipped rather than
    followed and empty directories contribute nothing. Any read error aborts
    the whole scan.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_local(Path("/home/user/project"))
        >>> files["docs/readme.md"]
        '9e107d9d372bb6826bd81d3542a419d6'
    """

    def scan_local(self, directory: Path) -> LocalMap:
        """Recursively scan a local directory.

        Args:
            directory: Root of the scan

        Returns:
            LocalMap keyed by paths relative to ``directory``

        Raises:
            ClaudeSyncIOError: If the directory or any file cannot be read
        """
        files: LocalMap = {}
        try:
            self._scan_into(directory, directory, files)
        except OSError as e:
            raise ClaudeSyncIOError(f"Failed to scan {directory}: {e}") from e
        logger.debug("Scanned %d file(s) under %s", len(files), directory)
        return files

    def _scan_into(self, directory: Path, base_path: Path, files: LocalMap) -> None:
        for item in directory.iterdir():
            if item.is_symlink():
                logger.debug("Skipping symlink: %s", item)
                continue
            if item.is_dir():
                self._scan_into(item, base_path, files)
            elif item.is_file():
                # Use as_posix() to ensure forward slashes on all platforms
                relative_path = item.relative_to(base_path).as_posix()
                files[relative_path] = compute_file_hash(item)


def scan_local_files(root: Path) -> LocalMap:
    """Fingerprint every regular file under ``root``."""
    return DirectoryScanner().scan_local(root)
