"""
Album tag validation.

The validator reads the tags of every track of an album, checks them
against the library conventions and sorts every problem into one of two
tiers:

* critical issues (missing tags, values that differ between tracks, gaps
  in the track numbering, ...) leave the album untouched;
* recoverable issues (unneeded or miscased tags, padded track numbers,
  missing TRACKTOTAL, ...) are corrected when tag fixing is enabled.

Corrections are first applied to in-memory copies of the records. They
reach the files only after the corrected album passes a second,
complete validation, so an album is never left half-tagged.
"""

import logging
import re
from collections import Counter
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from tagging.schemas import (
    TagRecord, ValidationIssue, ValidationReport, Severity, ReportStatus
)
from tagging.tag_store import TagStore
from utils.config_loader import ArrangeOptions
from utils.exceptions import TagReadError, TagWriteError

logger = logging.getLogger(__name__)

REQUIRED_TAGS = ("TITLE", "ARTIST", "ALBUM", "DATE", "GENRE", "TRACKNUMBER")
SIGNIFICANT_TAGS = frozenset(REQUIRED_TAGS + ("TRACKTOTAL", "DISCNUMBER", "COMPOSER"))
CROSS_FILE_TAGS = ("ARTIST", "ALBUM", "DATE", "GENRE", "DISCNUMBER")
LEGACY_TOTAL_TAG = "TOTALTRACKS"

# Disc folders such as "CD1" or "cd 2 - bonus"
DISC_DIR_PATTERN = re.compile(r"(?i)^\s*cd\s*\d+(?![0-9])[\s._-]*")
YEAR_PATTERN = re.compile(r"^\s*[\[(]?(\d{4})(?![0-9])")
TRACKNUMBER_PATTERN = re.compile(r"^(\d+)(?:/(\d+))?$")

# (operation, key, value) with operation "delete" or "set"
TagEdit = Tuple[str, str, Optional[str]]


def parse_count(value: str) -> Optional[int]:
    """Parse a track number or total, tolerating padding and whitespace."""
    value = (value or "").strip()
    if not value.isdigit():
        return None
    return int(value)


def guess_year(album_path: Path) -> Optional[str]:
    """
    Guess the release year of an album from its directory name.

    A disc folder ("CD1") defers to its parent directory, and a leading
    "CD<n>" segment is stripped from the name before looking for the year.

    Args:
        album_path: Album (leaf) directory

    Returns:
        Four-digit year, or None if the name does not start with one
    """
    name = album_path.name
    if DISC_DIR_PATTERN.sub("", name).strip() == "":
        name = album_path.parent.name

    match = YEAR_PATTERN.match(DISC_DIR_PATTERN.sub("", name, count=1))
    return match.group(1) if match else None


def normalize_track_number(value: str) -> Optional[str]:
    """
    Return the canonical form of a TRACKNUMBER value.

    "3" and "03" are canonical already; "003" becomes "3", "3/12"
    becomes "3". None means the value is not a usable track number.
    """
    match = TRACKNUMBER_PATTERN.match(value.strip())
    if not match or int(match.group(1)) == 0:
        return None

    digits = match.group(1)
    if match.group(2) is None and value == digits and (not digits.startswith("0") or len(digits) == 2):
        return value
    return digits.lstrip("0")


def diff_tags(current: dict, target: dict) -> List[TagEdit]:
    """Edits turning the current tag mapping into the target, deletions first."""
    edits = [("delete", key, None) for key in current if key not in target]
    edits.extend(("set", key, value) for key, value in target.items() if current.get(key) != value)
    return edits


class AlbumValidator:
    """Validates and, when allowed, corrects the tags of one album at a time."""

    def __init__(self, tag_store: TagStore, options: ArrangeOptions):
        self.tag_store = tag_store
        self.options = options

    def validate(self, album_path: Path, track_files: Sequence[str]) -> ValidationReport:
        """
        Validate the tags of an album's tracks.

        Args:
            album_path: Directory holding the tracks
            track_files: Track file names, in album order

        Returns:
            ValidationReport; only a VALID report with corrected=True
            means tags were written
        """
        records = []
        for file_name in sorted(track_files):
            try:
                tags = self.tag_store.get_tags(album_path / file_name)
            except TagReadError as e:
                issue = self._critical("UNREADABLE_TAGS", file_name, f"Cannot read tags: {e.reason or e}")
                return ValidationReport(album_path=album_path, status=ReportStatus.CRITICAL, issues=[issue])
            records.append(TagRecord(file_name=file_name, tags=tags))

        originals = [record.working_copy() for record in records]
        issues = self._check_batch(album_path, records)

        if any(issue.is_critical for issue in issues):
            return ValidationReport(
                album_path=album_path, status=ReportStatus.CRITICAL, issues=issues, records=originals
            )

        if not issues:
            return ValidationReport(album_path=album_path, status=ReportStatus.VALID, records=originals)

        if not self.options.fix_tags:
            return ValidationReport(
                album_path=album_path, status=ReportStatus.RECOVERABLE, issues=issues, records=originals
            )

        # The corrected album has to stand on its own before anything is written
        leftovers = self._check_batch(album_path, [record.working_copy() for record in records])
        if leftovers:
            issues.append(self._critical("UNFIXABLE", None, "Corrections did not converge"))
            issues.extend(leftovers)
            return ValidationReport(
                album_path=album_path, status=ReportStatus.CRITICAL, issues=issues, records=originals
            )

        try:
            self._commit(album_path, originals, records)
        except TagWriteError as e:
            issues.append(self._critical("TAG_WRITE_FAILED", Path(e.file_path).name, str(e)))
            return ValidationReport(
                album_path=album_path, status=ReportStatus.CRITICAL, issues=issues, records=originals
            )

        return ValidationReport(
            album_path=album_path, status=ReportStatus.VALID, issues=issues, records=records, corrected=True
        )

    def _check_batch(self, album_path: Path, records: List[TagRecord]) -> List[ValidationIssue]:
        """Run every check over the batch, fixing recoverable issues in memory."""
        issues = []
        reference = None

        for record in records:
            record_issues = self._check_record(album_path, record)
            issues.extend(record_issues)
            if any(issue.is_critical for issue in record_issues):
                continue

            if reference is None:
                reference = record
            else:
                issues.extend(self._compare_records(reference, record))

        # Totals and numbering only make sense once every record is usable
        if any(issue.is_critical for issue in issues):
            return issues

        expected_total = len(records)
        issues.extend(self._reconcile_track_totals(records, expected_total))
        issues.extend(self._check_continuity(records, expected_total))
        return issues

    def _check_record(self, album_path: Path, record: TagRecord) -> List[ValidationIssue]:
        issues = []
        name = record.file_name

        casings = {}
        for key in record.tags:
            casings.setdefault(key.upper(), []).append(key)
        for upper, keys in casings.items():
            if len(keys) > 1:
                issues.append(self._critical(
                    "DUPLICATE_TAG", name, f"Tag {upper} is stored under several keys: {', '.join(keys)}"
                ))
        if issues:
            return issues

        if self.options.guess_year and not record.value("DATE").strip():
            year = guess_year(album_path)
            if year:
                issues.append(self._recoverable("GUESSED_DATE", name, f"DATE guessed from directory name: {year}"))
                record.set_value("DATE", year)

        legacy_key = record.find_key(LEGACY_TOTAL_TAG)
        if legacy_key is not None and record.find_key("TRACKTOTAL") is None:
            issues.append(self._recoverable("LEGACY_TOTALTRACKS", name, f"{legacy_key} renamed to TRACKTOTAL"))
            record.rename(legacy_key, "TRACKTOTAL")

        for tag in REQUIRED_TAGS:
            if not record.value(tag).strip():
                issues.append(self._critical(f"MISSING_TAG_{tag}", name, f"Required tag {tag} is missing"))

        for key in list(record.tags):
            if key in SIGNIFICANT_TAGS:
                continue
            upper = key.upper()
            if upper in SIGNIFICANT_TAGS:
                issues.append(self._recoverable("MISCASED_TAG", name, f"Tag {key} renamed to {upper}"))
                record.rename(key, upper)
            elif upper == LEGACY_TOTAL_TAG:
                continue
            else:
                issues.append(self._recoverable("UNNEEDED_TAG", name, f"Tag {key} removed"))
                del record.tags[key]

        track_number = record.tags.get("TRACKNUMBER")
        if track_number and track_number.strip():
            normalized = normalize_track_number(track_number)
            if normalized is None:
                issues.append(self._critical("BAD_TRACKNUMBER", name, f"Unusable TRACKNUMBER: {track_number!r}"))
            elif normalized != track_number:
                issues.append(self._recoverable(
                    "TRACKNUMBER_PADDING", name, f"TRACKNUMBER {track_number!r} rewritten as {normalized!r}"
                ))
                record.tags["TRACKNUMBER"] = normalized

        return issues

    def _compare_records(self, reference: TagRecord, record: TagRecord) -> List[ValidationIssue]:
        issues = []

        for tag in CROSS_FILE_TAGS:
            expected = reference.value(tag)
            actual = record.value(tag)
            if expected != actual:
                issues.append(self._critical(
                    f"TAG_MISMATCH_{tag}", record.file_name,
                    f"{tag} is {actual!r} but {reference.file_name} has {expected!r}"
                ))

        expected = reference.value("TRACKTOTAL").strip()
        actual = record.value("TRACKTOTAL").strip()
        if expected and actual and expected != actual:
            if parse_count(expected) is None or parse_count(expected) != parse_count(actual):
                issues.append(self._critical(
                    "TAG_MISMATCH_TRACKTOTAL", record.file_name,
                    f"TRACKTOTAL is {actual!r} but {reference.file_name} has {expected!r}"
                ))

        return issues

    def _reconcile_track_totals(self, records: List[TagRecord], expected_total: int) -> List[ValidationIssue]:
        issues = []
        canonical = str(expected_total)

        for record in records:
            value = record.tags.get("TRACKTOTAL", "")
            if not value.strip():
                issues.append(self._recoverable(
                    "MISSING_TRACKTOTAL", record.file_name, f"TRACKTOTAL set to {canonical}"
                ))
                record.tags["TRACKTOTAL"] = canonical
            elif value == canonical:
                continue
            elif parse_count(value) == expected_total:
                issues.append(self._recoverable(
                    "TRACKTOTAL_MARKUP", record.file_name, f"TRACKTOTAL {value!r} rewritten as {canonical!r}"
                ))
                record.tags["TRACKTOTAL"] = canonical
            else:
                issues.append(self._critical(
                    "TRACKTOTAL_CONFLICT", record.file_name,
                    f"TRACKTOTAL is {value!r} but the album has {expected_total} tracks"
                ))

        return issues

    def _check_continuity(self, records: List[TagRecord], expected_total: int) -> List[ValidationIssue]:
        issues = []
        numbers = [int(record.tags["TRACKNUMBER"]) for record in records]
        counts = Counter(numbers)

        duplicates = sorted(number for number, count in counts.items() if count > 1)
        if duplicates:
            issues.append(self._critical(
                "DUPLICATE_TRACKS", None, f"Duplicate track numbers: {_join(duplicates)}", duplicates
            ))

        unexpected = sorted(number for number in counts if number > expected_total)
        if unexpected:
            issues.append(self._critical(
                "UNEXPECTED_TRACKS", None,
                f"Track numbers beyond the {expected_total} tracks found: {_join(unexpected)}", unexpected
            ))

        missing = sorted(set(range(1, expected_total + 1)) - set(numbers))
        if missing:
            issues.append(self._critical("MISSING_TRACKS", None, f"Missing tracks: {_join(missing)}", missing))

        return issues

    def _commit(self, album_path: Path, originals: List[TagRecord], records: List[TagRecord]) -> None:
        """Write the corrected tags, restoring already written files if a write fails."""
        written = []
        try:
            for original, record in zip(originals, records):
                edits = diff_tags(original.tags, record.tags)
                if not edits:
                    continue
                file_path = album_path / record.file_name
                written.append((file_path, original, record))
                self._apply_edits(file_path, edits)
                logger.debug(f"Wrote {len(edits)} tag edits to {file_path}")
        except TagWriteError:
            for file_path, original, record in written:
                try:
                    self._apply_edits(file_path, diff_tags(record.tags, original.tags))
                except TagWriteError as rollback_error:
                    logger.error(f"Could not restore original tags of {file_path}: {rollback_error}")
            raise

    def _apply_edits(self, file_path: Path, edits: List[TagEdit]) -> None:
        for operation, key, value in edits:
            if operation == "delete":
                self.tag_store.delete_tag(file_path, key)
            else:
                self.tag_store.set_tag(file_path, key, value)

    def _critical(self, code: str, file_name: Optional[str], message: str,
                  tracks: Optional[List[int]] = None) -> ValidationIssue:
        return ValidationIssue(
            code=code, severity=Severity.CRITICAL, file_name=file_name, message=message, tracks=tracks or []
        )

    def _recoverable(self, code: str, file_name: Optional[str], message: str) -> ValidationIssue:
        return ValidationIssue(code=code, severity=Severity.RECOVERABLE, file_name=file_name, message=message)


def _join(numbers: List[int]) -> str:
    return ", ".join(str(number) for number in numbers)
