"""
File role classification by extension.

Every file found in an album directory is bucketed into one of a closed
set of roles. Unknown or missing extensions are errors, never ignored.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from utils.exceptions import MissingExtensionError, UnknownExtensionError


class FileRole(Enum):
    """Role of a file inside an album directory."""

    MP3 = "mp3"
    FLAC = "flac"
    APE = "ape"
    CUE = "cue"
    TEXT = "text"
    IMAGE = "image"

    @property
    def is_audio(self) -> bool:
        return self in (FileRole.MP3, FileRole.FLAC, FileRole.APE)


EXTENSION_ROLES = {
    'mp3': FileRole.MP3,
    'flac': FileRole.FLAC,
    'ape': FileRole.APE,
    'cue': FileRole.CUE,
    'log': FileRole.TEXT,
    'txt': FileRole.TEXT,
    'jpg': FileRole.IMAGE,
    'bmp': FileRole.IMAGE,
    'png': FileRole.IMAGE,
    'tif': FileRole.IMAGE,
}

IMAGE_EXTENSIONS = frozenset(ext for ext, role in EXTENSION_ROLES.items() if role is FileRole.IMAGE)
TEXT_EXTENSIONS = frozenset(ext for ext, role in EXTENSION_ROLES.items() if role is FileRole.TEXT)

_EXTENSION_PATTERN = re.compile(r"\.([a-z0-9]+)$", re.IGNORECASE)


@dataclass(frozen=True)
class DirectoryListing:
    """Files and subdirectories found directly inside one directory."""

    files: tuple = ()
    subdirectories: tuple = ()


@dataclass
class FileSet:
    """Files of one directory grouped by role, each group in name order."""

    buckets: Dict[FileRole, List[str]] = field(default_factory=dict)

    def get(self, role: FileRole) -> List[str]:
        return self.buckets.get(role, [])

    def count(self, role: FileRole) -> int:
        return len(self.buckets.get(role, []))


def file_extension(file_name: str) -> Optional[str]:
    """Return the lower-cased extension of a file name, or None if it has none."""
    match = _EXTENSION_PATTERN.search(file_name)
    return match.group(1).lower() if match else None


def classify_file(file_name: str) -> FileRole:
    """
    Determine the role of a single file by its extension.

    Raises:
        MissingExtensionError: If the name has no extension
        UnknownExtensionError: If the extension is not a known one
    """
    extension = file_extension(file_name)
    if extension is None:
        raise MissingExtensionError(file_name)

    role = EXTENSION_ROLES.get(extension)
    if role is None:
        raise UnknownExtensionError(file_name, extension)

    return role


def classify_files(file_names: Iterable[str]) -> FileSet:
    """
    Bucket file names by role.

    The first file that cannot be classified aborts the whole set.

    Args:
        file_names: Names of the files found in one directory

    Returns:
        FileSet with the names of each role in sorted order
    """
    fileset = FileSet()
    for name in sorted(file_names):
        fileset.buckets.setdefault(classify_file(name), []).append(name)
    return fileset


def _all_extensions_in(listing: DirectoryListing, extensions: frozenset) -> bool:
    if listing.subdirectories or not listing.files:
        return False
    return all(file_extension(name) in extensions for name in listing.files)


def is_scans_directory(listing: DirectoryListing) -> bool:
    """A scans directory holds at least one file, only images, and no subdirectories."""
    return _all_extensions_in(listing, IMAGE_EXTENSIONS)


def is_logs_directory(listing: DirectoryListing) -> bool:
    """A logs directory holds at least one file, only txt/log files, and no subdirectories."""
    return _all_extensions_in(listing, TEXT_EXTENSIONS)
