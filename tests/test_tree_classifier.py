from pathlib import Path

import pytest

from filesystem.file_ops import FileSystemOperations
from filesystem.file_types import FileRole
from pipeline.tree_classifier import DirectoryState, TreeClassifier
from utils.exceptions import FilesystemError


def touch(path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"")


@pytest.fixture
def classifier():
    return TreeClassifier(FileSystemOperations(ignored_names=[".DS_Store"]))


def states(results, root):
    return [(str(r.path.relative_to(root)), r.state) for r in results]


def test_leaf_with_scans_and_logs_subdirectories(classifier, tmp_path):
    album = tmp_path / "album"
    touch(album / "01.flac")
    touch(album / "02.flac")
    touch(album / "Artwork" / "front.jpg")
    touch(album / "Artwork" / "back.png")
    touch(album / "Rip" / "rip.log")

    results = list(classifier.walk(album))

    assert len(results) == 1
    leaf = results[0]
    assert leaf.state is DirectoryState.LEAF
    assert leaf.scans_dir == "Artwork"
    assert leaf.logs_dir == "Rip"
    assert leaf.fileset.get(FileRole.FLAC) == ["01.flac", "02.flac"]


def test_only_the_first_scans_directory_is_claimed(classifier, tmp_path):
    album = tmp_path / "album"
    touch(album / "01.flac")
    touch(album / "a_scans" / "1.jpg")
    touch(album / "b_scans" / "2.jpg")

    results = list(classifier.walk(album))

    assert [r.state for r in results] == [DirectoryState.MIXED]
    assert results[0].scans_dir == "a_scans"


def test_mixed_directory_is_not_descended(classifier, tmp_path):
    root = tmp_path / "root"
    touch(root / "01.flac")
    touch(root / "bonus" / "01.flac")
    touch(root / "bonus" / "02.flac")

    results = list(classifier.walk(root))

    assert states(results, root) == [(".", DirectoryState.MIXED)]


def test_recursion_is_depth_first_and_sorted(classifier, tmp_path):
    root = tmp_path / "root"
    touch(root / "b_artist" / "album" / "01.flac")
    touch(root / "a_artist" / "second" / "01.flac")
    touch(root / "a_artist" / "first" / "01.flac")
    (root / "c_empty").mkdir()

    results = list(classifier.walk(root))

    assert states(results, root) == [
        (".", DirectoryState.RECURSE),
        ("a_artist", DirectoryState.RECURSE),
        ("a_artist/first", DirectoryState.LEAF),
        ("a_artist/second", DirectoryState.LEAF),
        ("b_artist", DirectoryState.RECURSE),
        ("b_artist/album", DirectoryState.LEAF),
        ("c_empty", DirectoryState.EMPTY),
    ]


def test_scans_only_directory_yields_no_album(classifier, tmp_path):
    root = tmp_path / "root"
    touch(root / "scans" / "front.jpg")

    results = list(classifier.walk(root))

    assert [r.state for r in results] == [DirectoryState.EMPTY]
    assert results[0].scans_dir == "scans"


def test_bad_extension_fails_the_directory_only(classifier, tmp_path):
    root = tmp_path / "root"
    touch(root / "bad" / "01.flac")
    touch(root / "bad" / "playlist.m3u")
    touch(root / "good" / "01.flac")
    touch(root / "good" / "02.flac")

    results = list(classifier.walk(root))

    assert states(results, root) == [
        (".", DirectoryState.RECURSE),
        ("bad", DirectoryState.FAILED),
        ("good", DirectoryState.LEAF),
    ]
    assert results[1].error.code == "BAD_EXT"
    assert results[1].error.file_name == "playlist.m3u"


def test_missing_extension_fails_the_directory(classifier, tmp_path):
    album = tmp_path / "album"
    touch(album / "01.flac")
    touch(album / "NOTES")

    results = list(classifier.walk(album))

    assert results[0].state is DirectoryState.FAILED
    assert results[0].error.code == "NO_EXT"


def test_ignored_names_do_not_count_as_files(classifier, tmp_path):
    root = tmp_path / "root"
    touch(root / ".DS_Store")
    touch(root / "album" / "01.flac")
    touch(root / "album" / "02.flac")

    results = list(classifier.walk(root))

    assert [r.state for r in results] == [DirectoryState.RECURSE, DirectoryState.LEAF]


def test_walk_is_lazy(classifier, tmp_path):
    root = tmp_path / "root"
    touch(root / "a" / "01.flac")
    touch(root / "b" / "01.flac")

    walk = classifier.walk(root)
    assert next(walk).state is DirectoryState.RECURSE
    first = next(walk)
    assert first.path.name == "a"

    # Siblings are listed only once the consumer moves on
    touch(root / "b" / "02.flac")
    second = next(walk)
    assert second.fileset.get(FileRole.FLAC) == ["01.flac", "02.flac"]


def test_missing_root_is_fatal(classifier, tmp_path):
    with pytest.raises(FilesystemError):
        list(classifier.walk(tmp_path / "missing"))
