# src/taskflow/tasks/query.py

"""
Task query engine.

Pure functions deriving the visible task subset from the full collection and
the current view selections. Narrowing happens in a fixed order and never
reorders tasks:

1. search text (plain text or a ``category:`` prefixed category search)
2. active sidebar filter (completed / important / today / overdue / category id)
3. selected calendar date

The tab sub-filter (all / pending / completed) is applied on top by
``apply_tab``. Day comparisons use calendar-day precision in local time.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime

from ..core.models import Category, Task, TaskFilter, TaskTab

CATEGORY_PREFIX = "category:"

MAX_TITLE_SUGGESTIONS = 3
MAX_CATEGORY_SUGGESTIONS = 2


def local_day(value: datetime) -> date:
    """Truncate a timestamp to its calendar day in local time."""
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.date()


def due_day(task: Task) -> date | None:
    return local_day(task.due_date) if task.due_date is not None else None


def is_due_on(task: Task, day: date) -> bool:
    d = due_day(task)
    return d is not None and d == day


def is_overdue(task: Task, today: date) -> bool:
    if task.completed:
        return False
    d = due_day(task)
    return d is not None and d < today


def split_category_search(search_text: str) -> str | None:
    """Return the category part of a ``category:<name>`` search, or None."""
    if search_text.casefold().startswith(CATEGORY_PREFIX):
        return search_text[len(CATEGORY_PREFIX):]
    return None


def matching_category_ids(categories: Iterable[Category], name_part: str) -> set[str]:
    needle = name_part.casefold()
    return {c.id for c in categories if needle in c.name.casefold()}


def search_tasks(tasks: Iterable[Task], categories: Iterable[Category], search_text: str) -> list[Task]:
    if not search_text:
        return list(tasks)

    name_part = split_category_search(search_text)
    if name_part is not None:
        ids = matching_category_ids(categories, name_part)
        return [t for t in tasks if t.category_id is not None and t.category_id in ids]

    needle = search_text.casefold()
    return [t for t in tasks if needle in t.title.casefold() or needle in t.description.casefold()]


def apply_filter(tasks: Iterable[Task], active_filter: str | None, today: date) -> list[Task]:
    if not active_filter:
        return list(tasks)

    if active_filter == TaskFilter.COMPLETED:
        return [t for t in tasks if t.completed]
    if active_filter == TaskFilter.IMPORTANT:
        return [t for t in tasks if t.important]
    if active_filter == TaskFilter.TODAY:
        return [t for t in tasks if is_due_on(t, today)]
    if active_filter == TaskFilter.OVERDUE:
        return [t for t in tasks if is_overdue(t, today)]

    # Anything else is a category id.
    return [t for t in tasks if t.category_id == active_filter]


def apply_selected_date(tasks: Iterable[Task], selected_date: date | None) -> list[Task]:
    if selected_date is None:
        return list(tasks)
    return [t for t in tasks if is_due_on(t, selected_date)]


def filter_tasks(
    tasks: Sequence[Task],
    categories: Sequence[Category],
    *,
    search_text: str = "",
    active_filter: str | None = None,
    selected_date: date | None = None,
    today: date | None = None,
) -> list[Task]:
    if today is None:
        today = date.today()

    result = search_tasks(tasks, categories, search_text)
    result = apply_filter(result, active_filter, today)
    result = apply_selected_date(result, selected_date)
    return result


def apply_tab(tasks: Iterable[Task], tab: TaskTab | str) -> list[Task]:
    tab = TaskTab.parse(str(tab))
    if tab is TaskTab.PENDING:
        return [t for t in tasks if not t.completed]
    if tab is TaskTab.COMPLETED:
        return [t for t in tasks if t.completed]
    return list(tasks)


def count_for_filter(tasks: Sequence[Task], active_filter: str, today: date | None = None) -> int:
    """Badge count for one sidebar entry, computed over the whole collection."""
    if today is None:
        today = date.today()
    return len(apply_filter(tasks, active_filter, today))


def search_suggestions(tasks: Sequence[Task], categories: Sequence[Category], search_text: str) -> list[str]:
    """
    Autocomplete entries for the search box.

    Up to three task titles that contain the text without starting with it,
    then up to two ``category:<name>`` entries. Duplicates are dropped and
    the order is stable.
    """
    if len(search_text) <= 1:
        return []

    needle = search_text.casefold()

    titles = [
        t.title
        for t in tasks
        if needle in t.title.casefold() and not t.title.casefold().startswith(needle)
    ][:MAX_TITLE_SUGGESTIONS]

    category_entries = [
        f"{CATEGORY_PREFIX}{c.name}" for c in categories if needle in c.name.casefold()
    ][:MAX_CATEGORY_SUGGESTIONS]

    return list(dict.fromkeys([*titles, *category_entries]))
