"""
Album-level pipeline orchestrator.

Walks the source tree, hands every leaf directory to layout detection and
tag validation, and relocates the albums that come out valid. Every
rejected directory gets a one-line diagnostic; the walk always carries on
with the next directory.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from filesystem.album_detector import AlbumFormat, detect_album_format
from filesystem.file_ops import FileSystemOperations
from pipeline.relocation import RelocationPlanner
from pipeline.tree_classifier import ClassifiedDirectory, DirectoryState, TreeClassifier
from tagging.schemas import AlbumProcessingResult, ReportStatus, ValidationReport
from tagging.tag_store import TagStore
from tagging.validator import AlbumValidator
from utils.config_loader import ArrangeOptions
from utils.exceptions import ConfigurationError, OrganizationError
from utils.logging_config import format_diagnostic

logger = logging.getLogger(__name__)


class AlbumArrangePipeline:
    """
    Album-level arrange pipeline orchestrator.
    """

    def __init__(
        self,
        options: ArrangeOptions,
        tag_store: TagStore,
        dest_root: Optional[Path] = None,
        filesystem_ops: Optional[FileSystemOperations] = None
    ):
        """Initialize the pipeline components for one run."""
        self.options = options
        self.dest_root = dest_root

        self.filesystem_ops = filesystem_ops or FileSystemOperations(ignored_names=options.ignored_names)
        self.tree_classifier = TreeClassifier(self.filesystem_ops)
        self.validator = AlbumValidator(tag_store, options)

        if options.relocate:
            if dest_root is None:
                raise ConfigurationError("A destination directory is required to relocate albums")
            self.planner = RelocationPlanner(tag_store, self.filesystem_ops, options, dest_root)
        else:
            self.planner = None

        self._root = None
        self.stats = {
            'directories_visited': 0,
            'albums_found': 0,
            'albums_arranged': 0,
            'albums_validated': 0,
            'albums_corrected': 0,
            'albums_rejected': 0,
            'albums_unsupported': 0,
            'mixed_directories': 0,
            'unclassified_directories': 0,
            'relocation_failures': 0,
            'rejection_reasons': {},
        }

    def process_library(self, music_dir: Path) -> Dict[str, Any]:
        """
        Process an entire source tree.

        Args:
            music_dir: Root directory of the source tree

        Returns:
            Dictionary with processing statistics and per-album results

        Raises:
            FilesystemError: If a directory of the tree cannot be listed
        """
        logger.info(f"Starting album arrangement: {music_dir}")
        start_time = time.time()
        self._root = music_dir

        results: List[AlbumProcessingResult] = []
        for directory in self.tree_classifier.walk(music_dir):
            self.stats['directories_visited'] += 1

            if directory.state is DirectoryState.MIXED:
                self.stats['mixed_directories'] += 1
                logger.error(format_diagnostic("MIXED_CONTENTS", self._display(directory.path)))

            elif directory.state is DirectoryState.FAILED:
                self.stats['unclassified_directories'] += 1
                error = directory.error
                logger.error(format_diagnostic(error.code, self._display(directory.path, error.file_name)))

            elif directory.is_leaf:
                results.append(self.process_single_album(directory))

        processing_time = time.time() - start_time
        logger.info(f"Album processing completed in {processing_time:.2f} seconds")

        summary = dict(self.stats)
        summary['total_time'] = processing_time
        summary['results'] = results
        return summary

    def process_single_album(self, directory: ClassifiedDirectory) -> AlbumProcessingResult:
        """
        Detect, validate and relocate the album held by one leaf directory.

        Args:
            directory: Leaf directory produced by the tree classifier

        Returns:
            AlbumProcessingResult with the outcome
        """
        path = directory.path
        location = self._display(path)
        album_format = detect_album_format(directory.fileset)

        if not album_format.supported:
            if album_format is AlbumFormat.UNKNOWN:
                self._reject(album_format.value)
                logger.error(format_diagnostic(album_format.value, location))
            else:
                self.stats['albums_unsupported'] += 1
                logger.warning(format_diagnostic(album_format.value, location))
            return AlbumProcessingResult(
                album_path=path,
                album_format=album_format.value,
                success=False,
                pipeline_stage_completed="detected",
                error_message=f"Unsupported album layout: {album_format.value}"
            )

        self.stats['albums_found'] += 1
        logger.info(format_diagnostic(album_format.value, location))

        track_files = directory.fileset.get(album_format.track_role)
        report = self.validator.validate(path, track_files)
        self._log_report(report)

        if not report.is_valid:
            self._reject(report.reason or report.status.value.upper())
            return AlbumProcessingResult(
                album_path=path,
                album_format=album_format.value,
                success=False,
                pipeline_stage_completed="detected",
                report=report,
                error_message=report.reason or "Tags need fixing (report-only mode)"
            )

        self.stats['albums_validated'] += 1
        if report.corrected:
            self.stats['albums_corrected'] += 1
            logger.info(f"    fixed {len(report.recoverable_issues)} tag issues")

        if self.planner is None:
            return AlbumProcessingResult(
                album_path=path,
                album_format=album_format.value,
                success=True,
                pipeline_stage_completed="validated",
                report=report
            )

        try:
            plan = self.planner.relocate(
                path, directory.fileset, track_files, directory.scans_dir, directory.logs_dir
            )
        except OrganizationError as e:
            self.stats['relocation_failures'] += 1
            logger.error(format_diagnostic("RELOCATION_FAILED", location))
            logger.error(f"    {e}")
            return AlbumProcessingResult(
                album_path=path,
                album_format=album_format.value,
                success=False,
                pipeline_stage_completed="validated",
                report=report,
                error_message=str(e)
            )

        self.stats['albums_arranged'] += 1
        logger.info(f"    -> {plan.album_dir}")
        return AlbumProcessingResult(
            album_path=path,
            album_format=album_format.value,
            success=True,
            pipeline_stage_completed="relocated",
            report=report,
            destination=plan.album_dir
        )

    def _log_report(self, report: ValidationReport):
        """Emit one diagnostic line per issue of a validation report."""
        for issue in report.issues:
            line = f"{format_diagnostic(issue.code, self._display(report.album_path, issue.file_name))}  ({issue.message})"
            if issue.is_critical:
                logger.error(line)
            elif report.status is ReportStatus.RECOVERABLE:
                # Report-only mode: corrections were needed but not allowed
                logger.warning(line)
            else:
                logger.debug(line)

    def _reject(self, reason: str):
        self.stats['albums_rejected'] += 1
        reasons = self.stats['rejection_reasons']
        reasons[reason] = reasons.get(reason, 0) + 1

    def _display(self, path: Path, file_name: Optional[str] = None) -> str:
        """Path relative to the source root, the way diagnostics show it."""
        try:
            shown = str(path.relative_to(self._root)) if self._root else str(path)
        except ValueError:
            shown = str(path)
        return f"{shown}/{file_name}" if file_name else shown


def print_summary(summary: Dict[str, Any]):
    """Print the end-of-run summary."""
    print(f"\nALBUM ARRANGEMENT SUMMARY")
    print(f"Directories visited: {summary['directories_visited']}")
    print(f"FLAC albums found: {summary['albums_found']}")
    print(f"Validated: {summary['albums_validated']} ({summary['albums_corrected']} with corrected tags)")
    print(f"Arranged: {summary['albums_arranged']}")
    print(f"Rejected: {summary['albums_rejected']}")
    print(f"Unsupported layouts: {summary['albums_unsupported']}")
    print(f"Mixed directories: {summary['mixed_directories']}")
    print(f"Unclassified directories: {summary['unclassified_directories']}")
    if summary['relocation_failures']:
        print(f"Relocation failures: {summary['relocation_failures']}")
    if summary['rejection_reasons']:
        print(f"\nRejection reasons:")
        for reason, count in sorted(summary['rejection_reasons'].items()):
            print(f"  {reason}: {count}")
