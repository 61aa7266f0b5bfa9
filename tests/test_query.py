# tests/test_query.py

from __future__ import annotations

from datetime import date, datetime, timedelta

from taskflow.core.models import Category, Task, TaskFilter, TaskTab
from taskflow.tasks.query import (
    apply_tab,
    count_for_filter,
    filter_tasks,
    search_suggestions,
)

from .fakes import at_noon

TODAY = date(2024, 5, 15)
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)
CREATED = datetime(2024, 5, 1, 9, 0).astimezone()

CATEGORIES = [
    Category(id="1", name="Work", color="#3b82f6"),
    Category(id="2", name="Personal", color="#22c55e"),
    Category(id="3", name="Homework", color="#f59e0b"),
]


def make_task(title: str, **kw) -> Task:
    kw.setdefault("id", title.lower().replace(" ", "-"))
    kw.setdefault("created_at", CREATED)
    return Task(title=title, **kw)


def titles(tasks: list[Task]) -> list[str]:
    return [t.title for t in tasks]


def test_overdue_scenario_returns_only_open_past_due_tasks() -> None:
    tasks = [
        make_task("Buy milk", due_date=at_noon(TODAY)),
        make_task("Report", due_date=at_noon(YESTERDAY)),
        make_task("Gym", due_date=at_noon(YESTERDAY), completed=True),
    ]

    visible = filter_tasks(tasks, CATEGORIES, active_filter=TaskFilter.OVERDUE, today=TODAY)

    assert titles(visible) == ["Report"]


def test_overdue_never_returns_completed_or_undated() -> None:
    tasks = [
        make_task("Undated"),
        make_task("Old done", due_date=at_noon(TODAY - timedelta(days=30)), completed=True),
        make_task("Old open", due_date=at_noon(TODAY - timedelta(days=30))),
    ]

    visible = filter_tasks(tasks, CATEGORIES, active_filter="overdue", today=TODAY)

    assert titles(visible) == ["Old open"]
    assert all(t.due_date is not None and not t.completed for t in visible)


def test_today_and_overdue_are_disjoint() -> None:
    tasks = [
        make_task("Early today", due_date=datetime(2024, 5, 15, 0, 1).astimezone()),
        make_task("Late today", due_date=datetime(2024, 5, 15, 23, 59).astimezone()),
        make_task("Late yesterday", due_date=datetime(2024, 5, 14, 23, 59).astimezone()),
        make_task("Tomorrow", due_date=at_noon(TOMORROW)),
        make_task("Nothing"),
    ]

    today_ids = {t.id for t in filter_tasks(tasks, CATEGORIES, active_filter="today", today=TODAY)}
    overdue_ids = {t.id for t in filter_tasks(tasks, CATEGORIES, active_filter="overdue", today=TODAY)}

    assert today_ids == {"early-today", "late-today"}
    assert overdue_ids == {"late-yesterday"}
    assert not today_ids & overdue_ids


def test_category_prefix_search_matches_category_names_not_titles() -> None:
    tasks = [
        make_task("Quarterly numbers", category_id="1"),
        make_task("Work on garden", category_id="2"),
        make_task("Nothing here", category_id=None),
        make_task("Essay", category_id="3"),
    ]

    visible = filter_tasks(tasks, CATEGORIES, search_text="category:Wor", today=TODAY)

    # "Wor" matches both "Work" and "Homework".
    assert titles(visible) == ["Quarterly numbers", "Essay"]


def test_category_prefix_is_case_insensitive() -> None:
    tasks = [make_task("A", category_id="1"), make_task("B", category_id="2")]

    visible = filter_tasks(tasks, CATEGORIES, search_text="CATEGORY:personal", today=TODAY)

    assert titles(visible) == ["B"]


def test_category_search_skips_dangling_references() -> None:
    tasks = [make_task("Ghost", category_id="deleted"), make_task("Real", category_id="1")]

    visible = filter_tasks(tasks, CATEGORIES, search_text="category:", today=TODAY)

    assert titles(visible) == ["Real"]


def test_text_search_matches_title_or_description_case_insensitively() -> None:
    tasks = [
        make_task("Buy MILK"),
        make_task("Errands", description="pick up milk and bread"),
        make_task("Report"),
    ]

    visible = filter_tasks(tasks, CATEGORIES, search_text="Milk", today=TODAY)

    assert titles(visible) == ["Buy MILK", "Errands"]


def test_empty_search_keeps_everything_in_order() -> None:
    tasks = [make_task(f"T{i}") for i in range(5)]

    assert titles(filter_tasks(tasks, CATEGORIES, today=TODAY)) == ["T0", "T1", "T2", "T3", "T4"]


def test_other_filter_values_are_category_ids() -> None:
    tasks = [make_task("A", category_id="1"), make_task("B", category_id="2"), make_task("C")]

    assert titles(filter_tasks(tasks, CATEGORIES, active_filter="2", today=TODAY)) == ["B"]


def test_completed_and_important_filters() -> None:
    tasks = [
        make_task("A", completed=True),
        make_task("B", important=True),
        make_task("C", completed=True, important=True),
    ]

    assert titles(filter_tasks(tasks, CATEGORIES, active_filter="completed", today=TODAY)) == ["A", "C"]
    assert titles(filter_tasks(tasks, CATEGORIES, active_filter="important", today=TODAY)) == ["B", "C"]


def test_selected_date_uses_day_equality() -> None:
    tasks = [
        make_task("Morning", due_date=datetime(2024, 5, 20, 8, 30).astimezone()),
        make_task("Evening", due_date=datetime(2024, 5, 20, 21, 0).astimezone()),
        make_task("Other day", due_date=at_noon(date(2024, 5, 21))),
        make_task("No date"),
    ]

    visible = filter_tasks(tasks, CATEGORIES, selected_date=date(2024, 5, 20), today=TODAY)

    assert titles(visible) == ["Morning", "Evening"]


def test_stages_combine() -> None:
    tasks = [
        make_task("Write report", category_id="1", due_date=at_noon(TODAY)),
        make_task("Write letter", category_id="2", due_date=at_noon(TODAY)),
        make_task("Write essay", category_id="1", due_date=at_noon(TOMORROW)),
    ]

    visible = filter_tasks(
        tasks,
        CATEGORIES,
        search_text="write",
        active_filter="1",
        selected_date=TODAY,
        today=TODAY,
    )

    assert titles(visible) == ["Write report"]


def test_apply_tab() -> None:
    tasks = [make_task("A", completed=True), make_task("B"), make_task("C", completed=True)]

    assert titles(apply_tab(tasks, TaskTab.ALL)) == ["A", "B", "C"]
    assert titles(apply_tab(tasks, "pending")) == ["B"]
    assert titles(apply_tab(tasks, TaskTab.COMPLETED)) == ["A", "C"]


def test_count_for_filter() -> None:
    tasks = [
        make_task("A", completed=True, category_id="1"),
        make_task("B", important=True, due_date=at_noon(TODAY)),
        make_task("C", due_date=at_noon(YESTERDAY)),
    ]

    assert count_for_filter(tasks, "completed", TODAY) == 1
    assert count_for_filter(tasks, "important", TODAY) == 1
    assert count_for_filter(tasks, "today", TODAY) == 1
    assert count_for_filter(tasks, "overdue", TODAY) == 1
    assert count_for_filter(tasks, "1", TODAY) == 1


def test_search_suggestions_titles_then_categories() -> None:
    tasks = [
        make_task("Buy milk"),
        make_task("Milk the cow"),  # starts with the text -> not suggested
        make_task("Oat milk latte"),
        make_task("Skim milk"),
        make_task("Milkshake"),
        make_task("Soy milk"),
    ]
    categories = [Category(id="9", name="Milk run", color="#000000")]

    suggestions = search_suggestions(tasks, categories, "milk")

    assert suggestions == ["Buy milk", "Oat milk latte", "Skim milk", "category:Milk run"]


def test_search_suggestions_limits_and_dedupes() -> None:
    tasks = [make_task("Big work", id="a"), make_task("Big work", id="b")]

    suggestions = search_suggestions(tasks, CATEGORIES, "or")

    assert suggestions == ["Big work", "category:Work", "category:Homework"]


def test_search_suggestions_need_two_characters() -> None:
    tasks = [make_task("Buy milk")]

    assert search_suggestions(tasks, CATEGORIES, "") == []
    assert search_suggestions(tasks, CATEGORIES, "m") == []
