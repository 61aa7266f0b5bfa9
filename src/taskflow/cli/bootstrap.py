# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the key-value store and chat client into AppState.
"""

from __future__ import annotations

import logging
import sqlite3

from ..config import get_settings
from ..core.ports import ChatClient, KeyValueBackend
from ..core.state import AppState, build_state
from ..llm.offline import OfflineChatClient
from ..llm.stream import ChatStreamClient
from ..storage.kv_store import SqliteKeyValueStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def _open_backend(settings) -> KeyValueBackend | None:
    try:
        return SqliteKeyValueStore(settings.store_path)
    except (sqlite3.Error, OSError):
        # Without a store the app still runs; nothing is persisted.
        logger.exception("Key-value store unavailable at %s; running without persistence.", settings.store_path)
        return None


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    chat_client: ChatClient
    if getattr(settings, "offline_chat", False):
        chat_client = OfflineChatClient()
    else:
        chat_client = ChatStreamClient.from_settings(settings)

    return build_state(settings, _open_backend(settings), chat_client)
