# src/taskflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taskflow.log"

# HTTP client libraries log one INFO line per chat request.
_QUIET_LIBRARIES: tuple[str, ...] = ("httpx", "httpcore")


class _ConsoleNoiseFilter(logging.Filter):
    """
    The console shares the terminal with streamed chat replies, so only our
    own records get through; everything else must be ERROR or worse.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "taskflow" or record.name.startswith("taskflow."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Send logs to stderr (filtered) and to ``<log_dir>/taskflow.log`` (everything
    at ``file_level``). Replaces any handlers already on the root logger.

    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    # warnings.warn(...) ends up as 'py.warnings' records.
    logging.captureWarnings(True)

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
