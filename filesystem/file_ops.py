"""
Filesystem operations using pathlib.

This module is the only place where the arranger touches directories and
files directly: listing a directory level, creating destination folders
and copying or moving album content.
"""

import shutil
from enum import Enum
from pathlib import Path
from typing import Iterable
import logging

from filesystem.file_types import DirectoryListing
from utils.exceptions import FilesystemError

logger = logging.getLogger(__name__)


class TransferMode(Enum):
    COPY = "copy"
    MOVE = "move"


class FileSystemOperations:
    """Handles all filesystem operations with proper error handling."""

    def __init__(self, ignored_names: Iterable[str] = ()):
        """
        Initialize filesystem operations.

        Args:
            ignored_names: Entry names to leave out of directory listings
        """
        self.ignored_names = {name.lower() for name in ignored_names}

    def list_directory(self, path: Path) -> DirectoryListing:
        """
        List the files and subdirectories directly inside a directory.

        Args:
            path: Directory to list

        Returns:
            DirectoryListing with both name lists sorted

        Raises:
            FilesystemError: If the path is not a readable directory
        """
        if not path.is_dir():
            raise FilesystemError(str(path), "list", "Path is not a directory")

        files = []
        subdirectories = []
        try:
            for entry in path.iterdir():
                if entry.name.lower() in self.ignored_names:
                    logger.debug(f"Ignoring {entry}")
                    continue
                if entry.is_dir():
                    subdirectories.append(entry.name)
                else:
                    files.append(entry.name)
        except PermissionError as e:
            raise FilesystemError(str(path), "list", f"Permission denied: {e}")
        except OSError as e:
            raise FilesystemError(str(path), "list", f"OS error: {e}")

        return DirectoryListing(files=tuple(sorted(files)), subdirectories=tuple(sorted(subdirectories)))

    def make_directory(self, path: Path) -> None:
        """
        Create a directory and any missing parents.

        Raises:
            FilesystemError: If the directory cannot be created
        """
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(str(path), "mkdir", str(e))

    def copy_or_move(self, source: Path, destination: Path, mode: TransferMode) -> None:
        """
        Copy or move a file or a whole directory tree.

        The destination must not exist yet; its parent is created on demand.

        Args:
            source: Source file or directory
            destination: Full destination path (not the parent directory)
            mode: Whether to copy or move

        Raises:
            FilesystemError: If the operation fails
        """
        operation = mode.value
        if not source.exists():
            raise FilesystemError(str(source), operation, "Source does not exist")
        if destination.exists():
            raise FilesystemError(str(destination), operation, "Destination already exists")

        try:
            self.make_directory(destination.parent)

            if mode is TransferMode.MOVE:
                shutil.move(str(source), str(destination))
            elif source.is_dir():
                shutil.copytree(str(source), str(destination))
            else:
                shutil.copy2(str(source), str(destination))

            logger.debug(f"{operation.capitalize()}: {source} -> {destination}")

        except PermissionError as e:
            raise FilesystemError(str(source), operation, f"Permission denied: {e}")
        except (OSError, shutil.Error) as e:
            raise FilesystemError(str(source), operation, f"OS error: {e}")

    def remove_empty_directory(self, path: Path) -> bool:
        """
        Remove a directory if nothing but ignored entries is left inside it.

        Ignored entries (OS junk never listed nor transferred) are deleted
        along with the directory.

        Returns:
            True if the directory was removed
        """
        try:
            entries = list(path.iterdir())
            if any(entry.name.lower() not in self.ignored_names for entry in entries):
                return False
            for entry in entries:
                if entry.is_dir():
                    shutil.rmtree(str(entry))
                else:
                    entry.unlink()
            path.rmdir()
            logger.debug(f"Removed empty source directory: {path}")
            return True
        except OSError as e:
            raise FilesystemError(str(path), "rmdir", str(e))

    def sanitize_path_component(self, text: str, replacement: str = "_") -> str:
        """
        Make a tag value usable as a single path component.

        Args:
            text: Tag value such as an artist, album or title
            replacement: String substituted for path separators

        Returns:
            The value with '/' and '\\' replaced
        """
        for char in '/\\':
            text = text.replace(char, replacement)

        # A bare '.' or '..' would escape the destination layout
        if text.strip() in ('', '.', '..'):
            text = text.replace('.', replacement) or replacement

        return text
