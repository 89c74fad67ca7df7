"""Loguru sinks for the harvester: coloured console plus numbered log files."""

import os
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

DEFAULT_KEEP = 9


def rotate_numbered_logs(directory: Path, base_name: str, extension: str, max_index: int = DEFAULT_KEEP) -> Path:
    """Shift `base-N.ext` to `base-(N+1).ext` and free up `base-1.ext`.

    The run before last ends up as `base-2.ext`; anything past `max_index`
    is overwritten.
    """
    def numbered(index: int) -> Path:
        return directory / f"{base_name}-{index}{extension}"

    for index in range(max_index - 1, 0, -1):
        current = numbered(index)
        if current.exists():
            os.replace(current, numbered(index + 1))

    newest = numbered(1)
    if newest.exists():
        newest.unlink()
    return newest


def _keep_count(max_index: Optional[int]) -> int:
    raw = max_index or os.getenv("COURT_LOG_MAX_INDEX") or DEFAULT_KEEP
    try:
        return max(1, int(raw))
    except ValueError:
        return DEFAULT_KEEP


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_base: Optional[str] = None,
    max_index: Optional[int] = None,
) -> None:
    """Replace loguru's default sink with the harvester sinks.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        log_file: where file logs go; the actual file is `<stem>-1<suffix>`
            and earlier runs are kept as `-2`, `-3`, ...
        log_base: overrides the file stem used for numbering
        max_index: how many numbered files to keep
    """
    logger.remove()
    logger.add(sys.stdout, level=log_level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        base = log_base or os.getenv("COURT_LOG_BASE_NAME") or path.stem
        target = rotate_numbered_logs(path.parent, base, path.suffix or ".log", _keep_count(max_index))
        logger.add(target, level=log_level, format=FILE_FORMAT, encoding="utf-8")

    logger.info("Logging initialized with level: {}", log_level)


def get_logger() -> Any:
    """Shared loguru logger used by every harvester module."""
    return logger
