# src/taskflow/core/persona.py

from __future__ import annotations

from collections.abc import Sequence
from typing import Final

from .models import Category, Task

SYSTEM_PROMPT: Final[str] = (
    "You are a task management assistant. You help the user manage tasks, "
    "give suggestions and answer questions."
)

GREETING: Final[str] = (
    "Hi! I'm your task assistant. I can help you manage tasks, suggest what to "
    "work on next, or answer questions. What can I do for you?"
)


def _format_task_line(task: Task, categories_by_id: dict[str, Category]) -> str:
    status = "[x] done" if task.completed else "[ ] open"
    parts = [f"- {task.title} [{status}]"]
    if task.important:
        parts.append("(important)")
    category = categories_by_id.get(task.category_id) if task.category_id else None
    if category is not None:
        parts.append(f"[category: {category.name}]")
    if task.due_date is not None:
        parts.append(f"due: {task.due_date.astimezone().date().isoformat()}")
    return " ".join(parts)


def build_task_context(tasks: Sequence[Task], categories: Sequence[Category]) -> str:
    """
    Markdown snapshot of the user's data sent as a system message with each request.

    Sections: categories, tasks (status / importance / category / due date /
    description), and totals with the completion rate.
    """
    categories_by_id = {c.id: c for c in categories}

    lines = ["# Task manager data", "", "## Categories"]
    lines.extend(f"- {c.name} (ID: {c.id})" for c in categories)

    lines.extend(["", "## Tasks"])
    for task in tasks:
        lines.append(_format_task_line(task, categories_by_id))
        if task.description:
            lines.append(f"  Description: {task.description}")

    total = len(tasks)
    done = sum(1 for t in tasks if t.completed)
    rate = round(done * 100 / total) if total else 0

    lines.extend(
        [
            "",
            "## Statistics",
            f"- Total tasks: {total}",
            f"- Completed tasks: {done}",
            f"- Completion rate: {rate}%",
        ]
    )
    return "\n".join(lines) + "\n"
