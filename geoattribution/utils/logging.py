"""
Diagnostic logging for re-attribution runs.

loguru carries provider selection, page fetches and failures. What the
operator watches during a run (summary, progress, completion) is printed on
a rich console by the pipeline and never passes through here.
"""

import os
import sys
from pathlib import Path

from loguru import logger

from geoattribution.config import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def add_file_sink(
    log_file: Path,
    level: str,
    rotation: str = "10 MB",
    retention: str = "1 week",
) -> int:
    """Log to ``log_file`` as well, rotating and gzipping old files. Returns the sink id."""
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    return logger.add(
        log_file,
        level=level,
        format=FILE_FORMAT,
        rotation=rotation,
        retention=retention,
        compression="gz",
    )


def setup_logging(
    level: str | None = None,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
) -> None:
    """
    Replace loguru's handlers with a stderr sink and an optional file sink.

    Args:
        level: Log level; defaults to LOG_LEVEL from settings
        log_file: Optional log file; defaults to LOG_FILE from settings
        rotation: When to start a new log file (e.g. "10 MB", "1 day")
        retention: How long old log files are kept (e.g. "1 week", "10 files")
    """
    level = (level or settings.pipeline.log_level).upper()
    log_file = log_file or settings.pipeline.log_file

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        add_file_sink(log_file, level, rotation, retention)

    logger.debug(f"Logging configured: level={level} file={log_file or '-'}")


if os.environ.get("DISABLE_LOGGING") != "1":
    setup_logging()
