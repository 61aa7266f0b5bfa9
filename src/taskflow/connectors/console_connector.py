# src/taskflow/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..errors import TaskflowError, friendly_error_message
from ..tasks import task_api

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console started (storage=%s).", state.tasks.available)
    _print_ts("[CONSOLE] Use /help for commands, /exit to quit. Anything else goes to the assistant.\n")

    app_name = str(getattr(getattr(state, "settings", None), "app_name", "taskflow"))

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            cmd_response = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            print(f"[{_ts_local()}] {cmd_response}")
            continue

        # Chat: the session yields the running reply; print only the new tail.
        printed = 0
        try:
            for text in task_api.stream_chat(state, user_input):
                if printed == 0:
                    print(f"[{_ts_local()}] <<< {app_name}: ", end="", flush=True)
                print(text[printed:], end="", flush=True)
                printed = len(text)
        except TaskflowError as e:
            if printed:
                print()
            msg = friendly_error_message(e)
            logger.info("Chat error: %s", msg)
            _print_ts(f"[CHAT] {msg}")
            continue
        except Exception:
            if printed:
                print()
            logger.exception("Chat request crashed.")
            _print_ts("[CHAT] Internal error while talking to the assistant. See the log file.")
            continue

        if printed == 0:
            _print_ts("[CHAT] No output (model produced no content).")
            continue

        print("\n")

    logger.info("Console finished.")
