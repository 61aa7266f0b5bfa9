# src/taskflow/tasks/task_api.py

"""
Entry points the presentation layer calls.

Every mutation builds a new collection from the current one and writes it
through the owning PersistentValue, so readers never see a partial update and
writes are applied in the order they are dispatched.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from dataclasses import replace
from datetime import date, datetime

from ..core.models import ActiveView, Category, Task, TaskFilter, TaskTab, UserSettings
from ..core.persona import build_task_context
from ..core.state import AppState
from .debounce import Debouncer
from .query import apply_tab, filter_tasks, search_suggestions

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


# ---- tasks ----


def list_tasks(state: AppState) -> list[Task]:
    return list(state.tasks.read())


def find_task(state: AppState, task_id: str) -> Task | None:
    for t in state.tasks.read():
        if t.id == task_id:
            return t
    return None


def add_task(
    state: AppState,
    *,
    title: str,
    description: str = "",
    category_id: str | None = None,
    due_date: datetime | None = None,
    important: bool = False,
    now: datetime | None = None,
) -> Task:
    """Create a task and prepend it (most recent first)."""
    if not title or not title.strip():
        raise ValueError("title is required")

    task = Task(
        id=new_id(),
        title=title.strip(),
        description=description or "",
        completed=False,
        important=important,
        category_id=category_id or None,
        due_date=due_date,
        created_at=now if now is not None else datetime.now().astimezone(),
    )
    state.tasks.update(lambda tasks: [task, *tasks])
    logger.debug("Task added id=%s category=%s due=%s", task.id, task.category_id, task.due_date)
    return task


def update_task(state: AppState, updated: Task) -> bool:
    """Replace the task with the same id. ``created_at`` of the stored task is kept."""
    existing = find_task(state, updated.id)
    if existing is None:
        return False
    updated = replace(updated, created_at=existing.created_at)
    state.tasks.update(lambda tasks: [updated if t.id == updated.id else t for t in tasks])
    return True


def delete_task(state: AppState, task_id: str) -> bool:
    if find_task(state, task_id) is None:
        return False
    state.tasks.update(lambda tasks: [t for t in tasks if t.id != task_id])
    logger.debug("Task deleted id=%s", task_id)
    return True


def toggle_task_completion(state: AppState, task_id: str) -> Task | None:
    task = find_task(state, task_id)
    if task is None:
        return None
    toggled = replace(task, completed=not task.completed)
    state.tasks.update(lambda tasks: [toggled if t.id == task_id else t for t in tasks])
    return toggled


def toggle_task_importance(state: AppState, task_id: str) -> Task | None:
    task = find_task(state, task_id)
    if task is None:
        return None
    toggled = replace(task, important=not task.important)
    state.tasks.update(lambda tasks: [toggled if t.id == task_id else t for t in tasks])
    return toggled


# ---- categories ----


def list_categories(state: AppState) -> list[Category]:
    return list(state.categories.read())


def find_category(state: AppState, category_id: str) -> Category | None:
    for c in state.categories.read():
        if c.id == category_id:
            return c
    return None


def add_category(state: AppState, *, name: str, color: str) -> Category:
    if not name or not name.strip():
        raise ValueError("name is required")
    category = Category(id=new_id(), name=name.strip(), color=color)
    state.categories.update(lambda cats: [*cats, category])
    return category


def update_category(state: AppState, updated: Category) -> bool:
    if find_category(state, updated.id) is None:
        return False
    state.categories.update(lambda cats: [updated if c.id == updated.id else c for c in cats])
    return True


def delete_category(state: AppState, category_id: str) -> bool:
    """Delete a category; tasks that referenced it become uncategorized."""
    if find_category(state, category_id) is None:
        return False

    state.tasks.update(
        lambda tasks: [replace(t, category_id=None) if t.category_id == category_id else t for t in tasks]
    )
    state.categories.update(lambda cats: [c for c in cats if c.id != category_id])

    if state.view.active_filter == category_id:
        state.view.active_filter = None

    logger.debug("Category deleted id=%s", category_id)
    return True


# ---- user settings ----


def get_user_settings(state: AppState) -> UserSettings:
    return state.user_settings.read()


def save_user_settings(state: AppState, settings: UserSettings) -> None:
    """Overwrite the whole settings record."""
    state.user_settings.write(settings)


def set_active_view(state: AppState, view: ActiveView | str) -> None:
    """Switch the active view; it is remembered as the default view only when it changes."""
    view = ActiveView.parse(str(view))
    if state.view.active_view == view:
        return
    state.view.active_view = view
    state.user_settings.update(lambda s: replace(s, default_view=view))


def set_sidebar_collapsed(state: AppState, collapsed: bool) -> None:
    if state.view.sidebar_collapsed == collapsed:
        return
    state.view.sidebar_collapsed = collapsed
    state.user_settings.update(lambda s: replace(s, sidebar_collapsed=collapsed))


def effective_chat_settings(state: AppState) -> UserSettings:
    """User settings with empty chat fields filled from the environment."""
    prefs = state.user_settings.read()
    env = state.settings
    return replace(
        prefs,
        openai_api_key=prefs.openai_api_key or getattr(env, "openai_api_key", "") or "",
        openai_base_url=prefs.openai_base_url or getattr(env, "openai_base_url", "") or "",
        openai_model=prefs.openai_model or getattr(env, "openai_model", "") or "",
    )


# ---- view selections ----


def select_filter(state: AppState, active_filter: str | None) -> None:
    """Set the sidebar filter and keep the tab in sync."""
    view = state.view
    view.active_filter = active_filter or None

    if active_filter == TaskFilter.COMPLETED:
        view.active_tab = TaskTab.COMPLETED
    elif active_filter == TaskFilter.TODAY or not active_filter:
        view.active_tab = TaskTab.ALL


def select_tab(state: AppState, tab: TaskTab | str) -> None:
    """Set the tab and keep the sidebar filter in sync."""
    view = state.view
    tab = TaskTab.parse(str(tab))
    view.active_tab = tab

    if tab is TaskTab.COMPLETED:
        view.active_filter = TaskFilter.COMPLETED.value
    elif view.active_filter == TaskFilter.COMPLETED:
        view.active_filter = None


def select_date(state: AppState, day: date | None) -> None:
    """Pick a calendar day; a concrete day jumps back to the full task list."""
    state.view.selected_date = day
    if day is not None:
        set_active_view(state, ActiveView.TASKS)
        state.view.active_filter = None
        state.view.active_tab = TaskTab.ALL


def set_search_text(state: AppState, text: str) -> None:
    """Apply search text immediately and refresh the suggestions."""
    state.view.search_text = text
    state.view.suggestions = search_suggestions(state.tasks.read(), state.categories.read(), text)


def type_search_text(state: AppState, text: str) -> None:
    """
    Keystroke entry point: the search is applied once typing settles.

    Each call restarts the settle timer; must run inside an event loop.
    """
    if state.search_debouncer is None:
        delay = float(getattr(state.settings, "search_debounce_seconds", 0.3))
        state.search_debouncer = Debouncer(delay, lambda t: set_search_text(state, t))
    state.search_debouncer.schedule(text)


def get_visible_tasks(state: AppState, *, today: date | None = None) -> list[Task]:
    view = state.view
    result = filter_tasks(
        state.tasks.read(),
        state.categories.read(),
        search_text=view.search_text,
        active_filter=view.active_filter,
        selected_date=view.selected_date,
        today=today,
    )
    return apply_tab(result, view.active_tab)


# ---- chat ----


def chat_context(state: AppState) -> str:
    return build_task_context(state.tasks.read(), state.categories.read())


def stream_chat(state: AppState, user_text: str) -> Iterator[str]:
    """Stream a reply to ``user_text`` with a snapshot of the current tasks as context."""
    return state.chat.stream_reply(
        user_text,
        settings=effective_chat_settings(state),
        context=chat_context(state),
    )
