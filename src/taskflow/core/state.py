# src/taskflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..storage.persistent import (
    CATEGORIES_KEY,
    TASKS_KEY,
    USER_SETTINGS_KEY,
    PersistentValue,
    decode_categories,
    decode_tasks,
    decode_user_settings,
    encode_categories,
    encode_tasks,
    encode_user_settings,
)
from ..tasks.debounce import Debouncer
from .chat import ChatSession
from .models import Category, Task, UserSettings, ViewState, default_categories
from .ports import ChatClient, KeyValueBackend


@dataclass
class AppState:
    """
    Explicit application-state container passed to every consumer.

    The three durable collections are only changed through the functions in
    ``taskflow.tasks.task_api``; ``view`` holds the transient selections.
    """

    settings: Any

    tasks: PersistentValue[list[Task]]
    categories: PersistentValue[list[Category]]
    user_settings: PersistentValue[UserSettings]

    chat: ChatSession
    view: ViewState = field(default_factory=ViewState)

    # Set lazily by task_api.type_search_text (needs a running event loop).
    search_debouncer: Debouncer | None = None


def build_state(settings: Any, backend: KeyValueBackend | None, chat_client: ChatClient) -> AppState:
    """Wire the persisted values onto ``backend`` and restore view prefs from user settings."""
    state = AppState(
        settings=settings,
        tasks=PersistentValue(backend, TASKS_KEY, [], decode=decode_tasks, encode=encode_tasks),
        categories=PersistentValue(
            backend,
            CATEGORIES_KEY,
            default_categories(),
            decode=decode_categories,
            encode=encode_categories,
        ),
        user_settings=PersistentValue(
            backend,
            USER_SETTINGS_KEY,
            UserSettings(),
            decode=decode_user_settings,
            encode=encode_user_settings,
        ),
        chat=ChatSession(chat_client),
    )

    prefs = state.user_settings.read()
    state.view.active_view = prefs.default_view
    state.view.sidebar_collapsed = prefs.sidebar_collapsed
    return state
