"""
Recursive classification of a music directory tree.

Every visited directory ends up in exactly one state. Scans and logs
subdirectories are claimed by their parent album and never visited on
their own; a directory holding both files and other subdirectories is
rejected as mixed without looking further down.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from filesystem.file_ops import FileSystemOperations
from filesystem.file_types import (
    DirectoryListing, FileSet, classify_files, is_scans_directory, is_logs_directory
)
from utils.exceptions import FileClassificationError

logger = logging.getLogger(__name__)


class DirectoryState(Enum):
    MIXED = "mixed"
    RECURSE = "recurse"
    EMPTY = "empty"
    LEAF = "leaf"
    FAILED = "failed"


@dataclass
class ClassifiedDirectory:
    """Classification result for one visited directory."""

    path: Path
    state: DirectoryState
    fileset: Optional[FileSet] = None
    scans_dir: Optional[str] = None
    logs_dir: Optional[str] = None
    error: Optional[FileClassificationError] = None

    @property
    def is_leaf(self) -> bool:
        return self.state is DirectoryState.LEAF


class TreeClassifier:
    """Walks a directory tree depth first and classifies every directory."""

    def __init__(self, filesystem_ops: FileSystemOperations):
        self.filesystem_ops = filesystem_ops

    def walk(self, root_dir: Path) -> Iterator[ClassifiedDirectory]:
        """
        Classify root_dir and, where allowed, everything below it.

        Results are produced lazily: the walk does not go on to the next
        directory until the consumer asks for it, so a leaf album is fully
        processed before its siblings are even listed.

        Args:
            root_dir: Directory to start from

        Yields:
            ClassifiedDirectory for every visited directory, parents first

        Raises:
            FilesystemError: If a directory cannot be listed
        """
        yield from self._visit(root_dir, self.filesystem_ops.list_directory(root_dir))

    def _visit(self, path: Path, listing: DirectoryListing) -> Iterator[ClassifiedDirectory]:
        files = list(listing.files)
        dirs = list(listing.subdirectories)

        scans_dir = self._claim_subdirectory(path, dirs, is_scans_directory)
        logs_dir = self._claim_subdirectory(path, dirs, is_logs_directory)

        if files and dirs:
            yield ClassifiedDirectory(path, DirectoryState.MIXED, scans_dir=scans_dir, logs_dir=logs_dir)
            return

        if dirs:
            yield ClassifiedDirectory(path, DirectoryState.RECURSE, scans_dir=scans_dir, logs_dir=logs_dir)
            for name in dirs:
                child = path / name
                yield from self._visit(child, self.filesystem_ops.list_directory(child))
            return

        if not files:
            yield ClassifiedDirectory(path, DirectoryState.EMPTY, scans_dir=scans_dir, logs_dir=logs_dir)
            return

        try:
            fileset = classify_files(files)
        except FileClassificationError as e:
            yield ClassifiedDirectory(path, DirectoryState.FAILED, error=e)
            return

        yield ClassifiedDirectory(path, DirectoryState.LEAF, fileset=fileset, scans_dir=scans_dir, logs_dir=logs_dir)

    def _claim_subdirectory(self, path: Path, dirs: list, predicate) -> Optional[str]:
        """Remove and return the first subdirectory whose listing satisfies predicate."""
        for index, name in enumerate(dirs):
            if predicate(self.filesystem_ops.list_directory(path / name)):
                logger.debug(f"{path / name} claimed by {predicate.__name__}")
                return dirs.pop(index)
        return None
