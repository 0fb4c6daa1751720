"""
Logging setup for the CLI and server entry points.

Console output stays with logging.basicConfig; this adds a rotating file
handler under the configured log directory and applies the verbosity level.
"""

import logging
import logging.handlers
import os
from pathlib import Path

LOG_FILE_NAME = "cadence.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def verbosity_level(verbose: int) -> int:
    """0 = warnings only, 1 = info, 2+ = debug."""
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(log_dir: Path, verbose: int = 1) -> Path | None:
    """
    Set the root level from `verbose` and attach a rotating log file.

    Safe to call repeatedly: a handler for the same file is only added once.
    Returns the log file path, or None if the directory cannot be created.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(verbosity_level(verbose))

    log_file = Path(log_dir) / LOG_FILE_NAME
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"File logging disabled, cannot create {log_file.parent}: {e}")
        return None

    for handler in root_logger.handlers:
        if (
            isinstance(handler, logging.handlers.RotatingFileHandler)
            and handler.baseFilename == os.path.abspath(log_file)
        ):
            return log_file

    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(file_handler)
    return log_file
