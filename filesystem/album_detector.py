"""
Album layout detection for leaf directories.

A leaf directory's files are matched against a closed set of album
layouts. Only multi-track FLAC albums are arranged; the other known
layouts are recognized and rejected with their own diagnostic.
"""

from enum import Enum
import logging

from filesystem.file_types import FileRole, FileSet

logger = logging.getLogger(__name__)


class AlbumFormat(Enum):
    """Recognized album layouts, value is the diagnostic code."""

    MP3 = "MP3"
    FLAC_CUE = "FLAC+CUE"
    APE_CUE = "APE+CUE"
    FLAC_TRACKS = "FLAC"
    UNKNOWN = "FAILDETECT"

    @property
    def supported(self) -> bool:
        return self is AlbumFormat.FLAC_TRACKS

    @property
    def track_role(self):
        """File role of the audio tracks handed to the validator."""
        return FileRole.FLAC if self is AlbumFormat.FLAC_TRACKS else None


def detect_album_format(fileset: FileSet) -> AlbumFormat:
    """
    Determine the album layout of a classified leaf fileset.

    Rules are ordered and the first match wins.

    Args:
        fileset: Files of the leaf directory grouped by role

    Returns:
        The detected AlbumFormat
    """
    mp3 = fileset.count(FileRole.MP3)
    flac = fileset.count(FileRole.FLAC)
    ape = fileset.count(FileRole.APE)
    cue = fileset.count(FileRole.CUE)

    if mp3 and not cue and not flac and not ape:
        album_format = AlbumFormat.MP3
    elif not mp3 and flac == 1 and cue == 1 and not ape:
        album_format = AlbumFormat.FLAC_CUE
    elif not mp3 and ape == 1 and cue == 1 and not flac:
        album_format = AlbumFormat.APE_CUE
    elif not mp3 and flac > 1 and not ape:
        album_format = AlbumFormat.FLAC_TRACKS
    else:
        album_format = AlbumFormat.UNKNOWN

    logger.debug(f"Detected layout {album_format.name} (mp3={mp3}, flac={flac}, ape={ape}, cue={cue})")
    return album_format
