#!/usr/bin/env python3
"""
music-arrange: fixes audio tags and sorts albums into a clean library.

Only albums whose tags are complete and consistent are ever renamed or
moved; everything else is reported and left exactly as it was.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from utils.logging_config import setup_logging, configure_library_logging
from utils.config_loader import ArrangeOptions, load_config
from pipeline.album_orchestrator import AlbumArrangePipeline, print_summary
from tagging.tag_store import MutagenTagStore
from utils.exceptions import MusicOrganizerError


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        description="Fix audio tags and arrange valid albums into ARTIST/DATE - ALBUM folders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s /path/to/rips /path/to/library                  # Fix tags and copy valid albums
  %(prog)s /path/to/rips /path/to/library --remove-source  # Move instead of copy
  %(prog)s /path/to/rips --no-fix-tags                     # Only report problems
  %(prog)s /path/to/rips --no-output-to-destdir            # Fix tags in place
        """
    )

    parser.add_argument(
        "source_directory",
        type=Path,
        help="Directory tree to scan for albums"
    )

    parser.add_argument(
        "destination_directory",
        type=Path,
        nargs="?",
        help="Library root to arrange valid albums into"
    )

    parser.add_argument(
        "--remove-source", "-r",
        action="store_true",
        default=None,
        help="Move albums instead of copying them, removing emptied source directories"
    )

    parser.add_argument(
        "--no-fix-tags",
        dest="fix_tags",
        action="store_false",
        default=None,
        help="Report tag problems without fixing them (implies no relocation)"
    )

    parser.add_argument(
        "--no-output-to-destdir",
        dest="output_to_destdir",
        action="store_false",
        default=None,
        help="Validate and fix tags but leave albums where they are"
    )

    parser.add_argument(
        "--guess-year",
        action="store_true",
        default=None,
        help="Take a missing DATE from a leading year in the album directory name"
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: ./config.yaml next to this script)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write diagnostics to this file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser


def resolve_options(args: argparse.Namespace, config: dict) -> ArrangeOptions:
    """Merge configuration defaults and command line switches into run options."""
    return ArrangeOptions.from_config(
        config,
        remove_source=args.remove_source,
        fix_tags=args.fix_tags,
        output_to_destdir=args.output_to_destdir,
        guess_year=args.guess_year,
    )


def validate_source_directory(path: Path) -> None:
    """Validate that the source directory exists and is accessible."""
    if not path.exists():
        raise MusicOrganizerError(f"Source directory does not exist: {path}")

    if not path.is_dir():
        raise MusicOrganizerError(f"Source path is not a directory: {path}")

    if not os.access(path, os.R_OK):
        raise MusicOrganizerError(f"Cannot read source directory: {path}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config_path = args.config or Path(__file__).parent / "config.yaml"
        config = load_config(config_path)
        options = resolve_options(args, config)

        if options.relocate and args.destination_directory is None:
            parser.error("destination_directory is required unless --no-fix-tags or --no-output-to-destdir is given")

        log_level = "DEBUG" if args.verbose else config['logging']['level']
        log_file = args.log_file or (Path(config['logging']['file']).expanduser() if config['logging']['file'] else None)
        logger = setup_logging(log_level, log_file)
        configure_library_logging()

        source_dir = args.source_directory.resolve()
        validate_source_directory(source_dir)
        dest_dir = args.destination_directory.resolve() if options.relocate else None

        logger.info(f"Source directory: {source_dir}")
        if dest_dir:
            logger.info(f"Destination directory: {dest_dir} ({'move' if options.remove_source else 'copy'})")
        logger.info(f"Fix tags: {options.fix_tags}, guess year: {options.guess_year}")

        pipeline = AlbumArrangePipeline(
            options=options,
            tag_store=MutagenTagStore(),
            dest_root=dest_dir
        )

        summary = pipeline.process_library(source_dir)
        print_summary(summary)

        return 0

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 1
    except MusicOrganizerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
