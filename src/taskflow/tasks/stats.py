# src/taskflow/tasks/stats.py

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from ..core.models import Category, Task
from .query import is_due_on, is_overdue, local_day

UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_COLOR = "#94a3b8"

WEEKDAY_NAMES: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True, slots=True)
class Bucket:
    name: str
    total: int
    completed: int
    color: str | None = None

    @property
    def rate(self) -> int:
        return percent(self.completed, self.total)


def percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round(part * 100 / whole)


def _bucket(name: str, tasks: Sequence[Task], color: str | None = None) -> Bucket:
    return Bucket(name=name, total=len(tasks), completed=sum(1 for t in tasks if t.completed), color=color)


def completion_rate(tasks: Sequence[Task]) -> int:
    return percent(sum(1 for t in tasks if t.completed), len(tasks))


def tasks_by_category(tasks: Sequence[Task], categories: Sequence[Category]) -> list[Bucket]:
    """
    Per-category totals, followed by an "Uncategorized" bucket.

    Tasks without a category and tasks pointing at a deleted category both
    land in "Uncategorized". Empty buckets are dropped.
    """
    known = {c.id for c in categories}
    out = [_bucket(c.name, [t for t in tasks if t.category_id == c.id], c.color) for c in categories]
    out.append(
        _bucket(
            UNCATEGORIZED_NAME,
            [t for t in tasks if t.category_id is None or t.category_id not in known],
            UNCATEGORIZED_COLOR,
        )
    )
    return [b for b in out if b.total > 0]


def tasks_by_weekday(tasks: Sequence[Task]) -> list[Bucket]:
    """Monday..Sunday buckets keyed by the due date's weekday."""
    out: list[Bucket] = []
    for index, name in enumerate(WEEKDAY_NAMES):
        day_tasks = [t for t in tasks if t.due_date is not None and local_day(t.due_date).weekday() == index]
        out.append(_bucket(name, day_tasks))
    return out


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def tasks_by_month(tasks: Sequence[Task], today: date | None = None, months: int = 6) -> list[Bucket]:
    """Tasks created in each of the last ``months`` calendar months, oldest first."""
    if today is None:
        today = date.today()

    out: list[Bucket] = []
    for back in range(months - 1, -1, -1):
        year, month = _shift_month(today.year, today.month, -back)
        month_tasks = [
            t for t in tasks if (d := local_day(t.created_at)).year == year and d.month == month
        ]
        out.append(_bucket(date(year, month, 1).strftime("%b %Y"), month_tasks))
    return out


def important_stats(tasks: Sequence[Task]) -> Bucket:
    return _bucket("Important", [t for t in tasks if t.important])


def overdue_count(tasks: Sequence[Task], today: date | None = None) -> int:
    if today is None:
        today = date.today()
    return sum(1 for t in tasks if is_overdue(t, today))


def day_summary(tasks: Sequence[Task], day: date) -> Bucket:
    """Tasks due on one calendar day (calendar badges)."""
    return _bucket(day.isoformat(), [t for t in tasks if is_due_on(t, day)])
