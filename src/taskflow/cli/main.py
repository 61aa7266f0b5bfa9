# src/taskflow/cli/main.py

"""
`taskflow` console script.

Order matters: logging first (so store/bootstrap problems are recorded), then
the application state, then the REPL until /exit or EOF.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _console_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=_console_level(settings.log_level))
    logger.info("Starting %s (store=%s, log=%s).", settings.app_name, settings.store_path, log_file)

    state = create_initial_state(settings=settings)
    if not state.tasks.available:
        logger.warning("Running without persistence; changes will be lost on exit.")

    try:
        run_console_loop(state)
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
