"""Logging initialization utilities using loguru."""

from __future__ import annotations

import os
from pathlib import Path
import sys

from loguru import logger


def get_log_directory() -> str:
    """Get the default log directory path for the current platform."""
    local_app_data = os.environ.get("LOCALAPPDATA")
    if os.name == "nt" and local_app_data:
        return os.path.join(local_app_data, "PhotoLibrary", "logs")
    return str(Path.home() / ".local" / "state" / "photo-library" / "logs")


def init_logging(log_dir: str | None = None, level: str = "INFO", console: bool = False) -> None:
    """Initialize rotating file logging under the given directory.

    Args:
        log_dir: Target directory; defaults to `get_log_directory()`.
        level: Minimum level for the file sink.
        console: Also log warnings and errors to stderr.
    """
    log_path = Path(log_dir or get_log_directory())
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / "library_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level=level,
    )
    if console:
        logger.add(sys.stderr, level="WARNING", format="{level}: {message}")
