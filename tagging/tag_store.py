"""
Tag storage backends.

The validator and the relocation planner only talk to the TagStore
interface. MutagenTagStore reads and writes the Vorbis comments of FLAC
files with mutagen and keeps tag names in the case they were stored.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict
import logging

import mutagen
from mutagen.flac import FLAC

from utils.exceptions import TagReadError, TagWriteError

logger = logging.getLogger(__name__)


class TagStore(ABC):
    """Reads, writes and deletes named string tags on single audio files."""

    @abstractmethod
    def get_tags(self, file_path: Path) -> Dict[str, str]:
        """
        Read all tags of a file.

        Raises:
            TagReadError: If the file is missing, corrupt or unreadable
        """

    @abstractmethod
    def set_tag(self, file_path: Path, key: str, value: str) -> None:
        """
        Set a tag, replacing any value stored under exactly this key.

        Raises:
            TagWriteError: If the tag cannot be written
        """

    @abstractmethod
    def delete_tag(self, file_path: Path, key: str) -> None:
        """
        Delete the tag stored under exactly this key.

        Raises:
            TagWriteError: If the tag cannot be removed
        """


class MutagenTagStore(TagStore):
    """TagStore for FLAC files backed by mutagen."""

    def _load(self, file_path: Path) -> FLAC:
        try:
            return FLAC(str(file_path))
        except (mutagen.MutagenError, OSError) as e:
            raise TagReadError(str(file_path), str(e))

    def get_tags(self, file_path: Path) -> Dict[str, str]:
        audio_file = self._load(file_path)

        tags = {}
        if audio_file.tags is None:
            logger.debug(f"No Vorbis comment block in {file_path}")
            return tags

        # VCommentDict folds case on lookup; iterate the raw pairs instead
        for key, value in audio_file.tags:
            if key in tags:
                logger.debug(f"Ignoring extra value for {key} in {file_path}: {value}")
                continue
            tags[key] = value

        return tags

    def set_tag(self, file_path: Path, key: str, value: str) -> None:
        try:
            audio_file = self._load(file_path)
        except TagReadError as e:
            raise TagWriteError(str(file_path), key, e.reason)

        if audio_file.tags is None:
            audio_file.add_tags()

        self._remove_exact(audio_file, key)
        audio_file.tags.append((key, value))
        self._save(audio_file, file_path, key)

    def delete_tag(self, file_path: Path, key: str) -> None:
        try:
            audio_file = self._load(file_path)
        except TagReadError as e:
            raise TagWriteError(str(file_path), key, e.reason)

        if audio_file.tags is None or not self._remove_exact(audio_file, key):
            return

        self._save(audio_file, file_path, key)

    def _remove_exact(self, audio_file: FLAC, key: str) -> int:
        """Remove the pairs stored under exactly this key, leaving other casings alone."""
        matches = [pair for pair in audio_file.tags if pair[0] == key]
        for pair in matches:
            audio_file.tags.remove(pair)
        return len(matches)

    def _save(self, audio_file: FLAC, file_path: Path, key: str) -> None:
        try:
            audio_file.save()
        except (mutagen.MutagenError, OSError, ValueError) as e:
            raise TagWriteError(str(file_path), key, str(e))
