"""
Relocation of validated albums into the destination library.

Layout:

    <dest>/<ARTIST>/<DATE> - <ALBUM>[/CD<DISCNUMBER>]/<NN> - <TITLE>.<ext>
                                                    /scans/...
                                                    /logs/...
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from filesystem.file_ops import FileSystemOperations, TransferMode
from filesystem.file_types import FileRole, FileSet, file_extension
from tagging.tag_store import TagStore
from utils.config_loader import ArrangeOptions
from utils.exceptions import FilesystemError, OrganizationError, TagReadError

logger = logging.getLogger(__name__)

SCANS_DIR_NAME = "scans"
LOGS_DIR_NAME = "logs"


@dataclass
class PlannedTransfer:
    source: Path
    destination: Path


@dataclass
class RelocationPlan:
    """Everything that will be copied or moved for one album."""

    source_dir: Path
    album_dir: Path
    mode: TransferMode
    transfers: List[PlannedTransfer] = field(default_factory=list)
    # Paths created inside the album as part of a whole-directory transfer
    implied: List[Path] = field(default_factory=list)


class RelocationPlanner:
    """Builds destination paths from tags and carries out the transfers."""

    def __init__(
        self,
        tag_store: TagStore,
        filesystem_ops: FileSystemOperations,
        options: ArrangeOptions,
        dest_root: Path
    ):
        self.tag_store = tag_store
        self.filesystem_ops = filesystem_ops
        self.options = options
        self.dest_root = dest_root

    @property
    def mode(self) -> TransferMode:
        return TransferMode.MOVE if self.options.remove_source else TransferMode.COPY

    def album_directory(self, tags: Dict[str, str]) -> Path:
        """Destination directory of an album from the tags of any of its tracks."""
        artist = self._safe(tags.get("ARTIST", ""))
        date = self._safe(tags.get("DATE", ""))
        album = self._safe(tags.get("ALBUM", ""))

        album_dir = self.dest_root / artist / f"{date} - {album}"

        disc = tags.get("DISCNUMBER", "").strip()
        if disc:
            album_dir = album_dir / f"CD{self._safe(disc)}"

        return album_dir

    def track_file_name(self, tags: Dict[str, str], source_name: str, width: int = 2) -> str:
        """Destination file name of one track, e.g. '03 - Title.flac'."""
        number = int(tags["TRACKNUMBER"])
        title = self._safe(tags.get("TITLE", ""))
        extension = file_extension(source_name) or ""
        return f"{number:0{width}d} - {title}.{extension}"

    def plan(
        self,
        source_dir: Path,
        fileset: FileSet,
        track_files: Sequence[str],
        scans_dir: Optional[str] = None,
        logs_dir: Optional[str] = None
    ) -> RelocationPlan:
        """
        Compute every transfer needed to relocate an album.

        Tags are read again from the tag store so the layout reflects what
        is actually stored in the files.

        Raises:
            OrganizationError: If tags cannot be read or a destination is taken
        """
        tracks = []
        for name in sorted(track_files):
            try:
                tracks.append((name, self.tag_store.get_tags(source_dir / name)))
            except TagReadError as e:
                raise OrganizationError(str(source_dir), str(self.dest_root), str(e))

        if not tracks:
            raise OrganizationError(str(source_dir), str(self.dest_root), "Album has no tracks")

        album_dir = self.album_directory(tracks[0][1])
        width = max(2, len(str(len(tracks))))
        plan = RelocationPlan(source_dir=source_dir, album_dir=album_dir, mode=self.mode)

        for name, tags in tracks:
            plan.transfers.append(
                PlannedTransfer(source_dir / name, album_dir / self.track_file_name(tags, name, width))
            )

        try:
            self._plan_extras(plan, fileset.get(FileRole.IMAGE), scans_dir, SCANS_DIR_NAME)
            self._plan_extras(plan, fileset.get(FileRole.TEXT), logs_dir, LOGS_DIR_NAME)
        except FilesystemError as e:
            raise OrganizationError(str(source_dir), str(album_dir), str(e))
        for name in fileset.get(FileRole.CUE):
            plan.transfers.append(PlannedTransfer(source_dir / name, album_dir / name))

        destinations = [transfer.destination for transfer in plan.transfers] + plan.implied
        if len(set(destinations)) != len(destinations):
            raise OrganizationError(str(source_dir), str(album_dir), "Several files map to the same destination")

        taken = [str(destination) for destination in destinations if destination.exists()]
        if taken:
            raise OrganizationError(str(source_dir), str(album_dir), f"Destination already exists: {taken[0]}")

        return plan

    def execute(self, plan: RelocationPlan) -> None:
        """
        Carry out a plan.

        Raises:
            OrganizationError: If any copy or move fails; later transfers are skipped
        """
        try:
            self.filesystem_ops.make_directory(plan.album_dir)
            for transfer in plan.transfers:
                self.filesystem_ops.copy_or_move(transfer.source, transfer.destination, plan.mode)

            if plan.mode is TransferMode.MOVE:
                self.filesystem_ops.remove_empty_directory(plan.source_dir)

        except FilesystemError as e:
            raise OrganizationError(str(plan.source_dir), str(plan.album_dir), str(e))

        logger.debug(f"Relocated {len(plan.transfers)} items ({plan.mode.value}) to {plan.album_dir}")

    def relocate(
        self,
        source_dir: Path,
        fileset: FileSet,
        track_files: Sequence[str],
        scans_dir: Optional[str] = None,
        logs_dir: Optional[str] = None
    ) -> RelocationPlan:
        """Plan and execute the relocation of one album."""
        plan = self.plan(source_dir, fileset, track_files, scans_dir, logs_dir)
        self.execute(plan)
        return plan

    def _plan_extras(self, plan: RelocationPlan, loose_files: List[str], subdir: Optional[str], target: str):
        """Scans or logs: the dedicated subdirectory first, then loose files into the same folder."""
        if subdir:
            plan.transfers.append(PlannedTransfer(plan.source_dir / subdir, plan.album_dir / target))
            listing = self.filesystem_ops.list_directory(plan.source_dir / subdir)
            plan.implied.extend(plan.album_dir / target / name for name in listing.files)
        for name in loose_files:
            plan.transfers.append(PlannedTransfer(plan.source_dir / name, plan.album_dir / target / name))

    def _safe(self, value: str) -> str:
        return self.filesystem_ops.sanitize_path_component(value, self.options.unsafe_char_replacement)
