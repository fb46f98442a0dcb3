"""
Logging configuration for the Pomodoro Tasks application.
Console output for interactive runs plus a full log file in the
application data directory.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

LOG_LEVEL_ENV = 'POMODORO_LOG_LEVEL'
LOG_FILE_NAME = 'pomodoro.log'


class _ConsoleNoiseFilter(logging.Filter):
    """Let our own records through; third-party records only from WARNING up."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(('core.', 'ui.', '__main__')):
            return True
        return record.levelno >= logging.WARNING


def _level_from_env(default: int) -> int:
    raw = os.environ.get(LOG_LEVEL_ENV, '').strip().upper()
    if not raw:
        return default
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def setup_logging(
    log_dir: Optional[Union[str, Path]] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
):
    """
    Configure the root logger.

    Call this once, early in main(), before the first log record.

    Args:
        log_dir: Directory for the log file; no file handler when None.
        console_level: Console threshold, overridden by POMODORO_LOG_LEVEL.
        file_level: File threshold.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates
    for handler in list(root.handlers):
        root.removeHandler(handler)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(_level_from_env(console_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_dir / LOG_FILE_NAME), encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    logging.captureWarnings(True)
