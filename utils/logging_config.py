"""
Logging configuration for the album arranger.

Diagnostics about rejected or relocated albums go through the standard
logging machinery; this module wires up the handlers and formats.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = 'music-arrange'

# Width of the diagnostic code column in per-directory report lines
DIAGNOSTIC_CODE_WIDTH = 15


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = True
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
        log_file: Path to log file (optional)
        max_file_size: Maximum log file size in bytes before rotation
        backup_count: Number of backup files to keep
        console_output: Whether to output logs to console

    Returns:
        Configured logger instance
    """
    # Clear any existing handlers
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    root_logger.setLevel(numeric_level)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Diagnostics belong on stderr, the summary is printed on stdout
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter('%(levelname)-8s %(message)s'))
        root_logger.addHandler(console_handler)

    # File handler with rotation
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(numeric_level)

    app_logger.debug(f"Logging initialized - Level: {level}")
    if log_file:
        app_logger.info(f"Log file: {log_file}")

    return app_logger


def format_diagnostic(code: str, location: str) -> str:
    """
    Format a one-line directory diagnostic.

    Args:
        code: Diagnostic code such as MIXED_CONTENTS or FAILDETECT
        location: Directory or file the diagnostic refers to

    Returns:
        Line with the code padded into a fixed-width column
    """
    return f"{code:<{DIAGNOSTIC_CODE_WIDTH}} {location}"


def configure_library_logging():
    """Configure logging for external libraries to reduce noise."""
    for lib_name in ('mutagen',):
        logging.getLogger(lib_name).setLevel(logging.WARNING)
