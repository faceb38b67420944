from pathlib import Path

import pytest

from filesystem.file_ops import FileSystemOperations, TransferMode
from filesystem.file_types import classify_files
from pipeline.relocation import RelocationPlanner
from utils.config_loader import ArrangeOptions
from utils.exceptions import OrganizationError

from conftest import make_album, track_tags


def planner_for(store, dest, **option_values):
    return RelocationPlanner(store, FileSystemOperations(), ArrangeOptions(**option_values), dest)


def test_album_directory_layout(store, tmp_path):
    planner = planner_for(store, tmp_path / "dest")

    tags = track_tags(1, total=2)
    assert planner.album_directory(tags) == tmp_path / "dest" / "X" / "2001 - Y"

    tags["DISCNUMBER"] = "2"
    assert planner.album_directory(tags) == tmp_path / "dest" / "X" / "2001 - Y" / "CD2"


def test_path_separators_in_tags_are_replaced(store, tmp_path):
    planner = planner_for(store, tmp_path / "dest", unsafe_char_replacement="-")

    tags = track_tags(4, ARTIST="AC/DC", TITLE="Back\\In Black")
    assert planner.album_directory(tags).parent.name == "AC-DC"
    assert planner.track_file_name(tags, "04.FLAC") == "04 - Back-In Black.flac"


def test_track_numbers_are_padded_to_the_album_size(store, tmp_path):
    planner = planner_for(store, tmp_path / "dest")

    assert planner.track_file_name(track_tags(7), "07.flac") == "07 - Song 7.flac"
    assert planner.track_file_name(track_tags(7), "07.flac", width=3) == "007 - Song 7.flac"


def test_plan_copies_tracks_scans_logs_and_cues(store, tmp_path):
    source = tmp_path / "src" / "album"
    names = make_album(
        store, source, [track_tags(n, total=2) for n in (1, 2)],
        extra_files=["album.cue", "rip.log", "front.jpg"], subdirs={"Artwork": ["back.jpg"]},
    )
    fileset = classify_files(sorted(p.name for p in source.iterdir() if p.is_file()))
    planner = planner_for(store, tmp_path / "dest")

    plan = planner.plan(source, fileset, names, scans_dir="Artwork")

    album_dir = tmp_path / "dest" / "X" / "2001 - Y"
    assert plan.mode is TransferMode.COPY
    assert plan.album_dir == album_dir
    assert [(t.source.name, t.destination.relative_to(album_dir).as_posix()) for t in plan.transfers] == [
        ("01.flac", "01 - Song 1.flac"),
        ("02.flac", "02 - Song 2.flac"),
        ("Artwork", "scans"),
        ("front.jpg", "scans/front.jpg"),
        ("rip.log", "logs/rip.log"),
        ("album.cue", "album.cue"),
    ]


def test_relocate_copy_keeps_the_source(store, tmp_path):
    source = tmp_path / "src" / "album"
    names = make_album(store, source, [track_tags(n, total=2) for n in (1, 2)], subdirs={"scans": ["a.jpg"]})
    planner = planner_for(store, tmp_path / "dest")

    planner.relocate(source, classify_files(names), names, scans_dir="scans")

    album_dir = tmp_path / "dest" / "X" / "2001 - Y"
    assert sorted(p.name for p in album_dir.iterdir()) == ["01 - Song 1.flac", "02 - Song 2.flac", "scans"]
    assert (album_dir / "scans" / "a.jpg").read_text() == "a.jpg"
    assert (source / "01.flac").exists()


def test_relocate_move_removes_the_emptied_source(store, tmp_path):
    source = tmp_path / "src" / "album"
    names = make_album(store, source, [track_tags(n, total=2) for n in (1, 2)], extra_files=["rip.log"])
    planner = planner_for(store, tmp_path / "dest", remove_source=True)

    plan = planner.relocate(source, classify_files(names + ["rip.log"]), names)

    assert plan.mode is TransferMode.MOVE
    assert not source.exists()
    assert (plan.album_dir / "logs" / "rip.log").exists()


def test_existing_destination_aborts_before_any_transfer(store, tmp_path):
    source = tmp_path / "src" / "album"
    names = make_album(store, source, [track_tags(n, total=2) for n in (1, 2)])
    album_dir = tmp_path / "dest" / "X" / "2001 - Y"
    album_dir.mkdir(parents=True)
    (album_dir / "02 - Song 2.flac").write_bytes(b"other")
    planner = planner_for(store, tmp_path / "dest")

    with pytest.raises(OrganizationError):
        planner.relocate(source, classify_files(names), names)

    assert not (album_dir / "01 - Song 1.flac").exists()
    assert (album_dir / "02 - Song 2.flac").read_bytes() == b"other"


def test_colliding_titles_are_rejected(store, tmp_path):
    source = tmp_path / "src" / "album"
    names = make_album(store, source, [track_tags(1, total=2), track_tags(1, total=2, TITLE="Song 1")])
    planner = planner_for(store, tmp_path / "dest")

    with pytest.raises(OrganizationError):
        planner.plan(source, classify_files(names), names)


def test_unreadable_tags_abort_planning(store, tmp_path):
    source = tmp_path / "src" / "album"
    names = make_album(store, source, [track_tags(n) for n in (1, 2)])
    store.unreadable.add(Path(source / "01.flac"))
    planner = planner_for(store, tmp_path / "dest")

    with pytest.raises(OrganizationError):
        planner.plan(source, classify_files(names), names)


@pytest.mark.parametrize(
    "subdir,target,loose_name",
    [("Artwork", "scans", "front.jpg"), ("Rip", "logs", "rip.log")],
)
def test_loose_file_clashing_with_claimed_subdirectory_is_rejected(store, tmp_path, subdir, target, loose_name):
    source = tmp_path / "src" / "album"
    names = make_album(store, source, [track_tags(n, total=2) for n in (1, 2)],
                       extra_files=[loose_name], subdirs={subdir: [loose_name]})
    planner = planner_for(store, tmp_path / "dest", remove_source=True)
    kwargs = {"scans_dir": subdir} if target == "scans" else {"logs_dir": subdir}

    with pytest.raises(OrganizationError):
        planner.relocate(source, classify_files(names + [loose_name]), names, **kwargs)

    assert not (tmp_path / "dest").exists()
    assert sorted(p.name for p in source.iterdir()) == sorted(names + [loose_name, subdir])


def test_move_removes_source_left_with_only_ignored_junk(store, tmp_path):
    source = tmp_path / "src" / "album"
    names = make_album(store, source, [track_tags(n, total=2) for n in (1, 2)], extra_files=[".DS_Store"])
    planner = RelocationPlanner(store, FileSystemOperations(ignored_names=[".DS_Store"]),
                                ArrangeOptions(remove_source=True), tmp_path / "dest")

    plan = planner.relocate(source, classify_files(names), names)

    assert not source.exists()
    assert sorted(p.name for p in plan.album_dir.iterdir()) == ["01 - Song 1.flac", "02 - Song 2.flac"]
