import struct
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from tagging.tag_store import TagStore
from utils.config_loader import ArrangeOptions
from utils.exceptions import TagReadError, TagWriteError


class InMemoryTagStore(TagStore):
    """TagStore keeping tags in a dict keyed by file path, recording every write."""

    def __init__(self):
        self.files: Dict[Path, Dict[str, str]] = {}
        self.unreadable = set()
        self.writes: List[tuple] = []
        self.fail_on: Optional[Path] = None

    def add(self, path: Path, tags: Dict[str, str]):
        self.files[Path(path)] = dict(tags)

    def get_tags(self, file_path):
        file_path = Path(file_path)
        if file_path in self.unreadable or file_path not in self.files:
            raise TagReadError(str(file_path), "not a FLAC file")
        return dict(self.files[file_path])

    def set_tag(self, file_path, key, value):
        self._write(Path(file_path), key)
        self.writes.append(("set", Path(file_path), key, value))
        self.files[Path(file_path)][key] = value

    def delete_tag(self, file_path, key):
        self._write(Path(file_path), key)
        self.writes.append(("delete", Path(file_path), key, None))
        self.files[Path(file_path)].pop(key, None)

    def _write(self, file_path, key):
        if file_path == self.fail_on:
            self.fail_on = None
            raise TagWriteError(str(file_path), key, "disk full")


def track_tags(number: int, total: Optional[int] = None, **overrides) -> Dict[str, str]:
    """Consistent tags for one track of the standard test album."""
    tags = {
        "TITLE": f"Song {number}",
        "ARTIST": "X",
        "ALBUM": "Y",
        "DATE": "2001",
        "GENRE": "Rock",
        "TRACKNUMBER": str(number),
    }
    if total is not None:
        tags["TRACKTOTAL"] = str(total)
    tags.update(overrides)
    return {key: value for key, value in tags.items() if value is not None}


def make_album(store: InMemoryTagStore, album_dir: Path, tag_list: List[Dict[str, str]],
               extra_files: List[str] = (), subdirs: Dict[str, List[str]] = None) -> List[str]:
    """Create an album directory on disk and register its track tags; returns the track names."""
    album_dir.mkdir(parents=True, exist_ok=True)
    names = []
    for index, tags in enumerate(tag_list, 1):
        name = f"{index:02d}.flac"
        (album_dir / name).write_bytes(b"flac")
        store.add(album_dir / name, tags)
        names.append(name)
    for name in extra_files:
        (album_dir / name).write_text(name)
    for subdir, files in (subdirs or {}).items():
        (album_dir / subdir).mkdir()
        for name in files:
            (album_dir / subdir / name).write_text(name)
    return names


def write_minimal_flac(path: Path):
    """Write a FLAC stream holding nothing but a STREAMINFO block."""
    sample_rate, channels, bits_per_sample, total_samples = 44100, 2, 16, 0
    packed = (sample_rate << 44) | ((channels - 1) << 41) | ((bits_per_sample - 1) << 36) | total_samples
    streaminfo = struct.pack(">HH", 4096, 4096) + bytes(3) + bytes(3) + packed.to_bytes(8, "big") + bytes(16)
    header = bytes([0x80]) + len(streaminfo).to_bytes(3, "big")
    path.write_bytes(b"fLaC" + header + streaminfo)


@pytest.fixture
def store():
    return InMemoryTagStore()


@pytest.fixture
def options():
    return ArrangeOptions()
