# src/taskflow/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, time
from typing import cast

from ..core.models import THEME_COLORS, ActiveView, Category, Task, TaskFilter, TaskTab
from ..core.state import AppState
from ..tasks import stats
from ..tasks import task_api as api
from ..tasks.query import CATEGORY_PREFIX, count_for_filter

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_ON = ("on", "1", "true", "yes")
_OFF = ("off", "0", "false", "no")


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _parse_day(raw: str) -> date | None:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _due_from_day(day: date) -> datetime:
    # Due dates are stored as local midnight of the picked day.
    return datetime.combine(day, time()).astimezone()


def _category_by_name(state: AppState, name: str) -> Category | None:
    needle = name.casefold()
    for c in api.list_categories(state):
        if c.name.casefold() == needle:
            return c
    return None


def _pick_visible(state: AppState, args: list[str]) -> Task | str:
    """Resolve the 1-based index in args[0] against the current visible list."""
    if not args:
        return "Missing task number. Use /list to see numbers."
    try:
        idx = int(args[0])
    except ValueError:
        return f"Not a task number: {args[0]}"
    visible = api.get_visible_tasks(state)
    if idx < 1 or idx > len(visible):
        return f"No task #{idx} in the current list ({len(visible)} shown)."
    return visible[idx - 1]


def _format_task(idx: int, task: Task, categories: dict[str, Category]) -> str:
    mark = "x" if task.completed else " "
    star = " *" if task.important else ""
    cat = categories.get(task.category_id) if task.category_id else None
    cat_str = f" [{cat.name}]" if cat else ""
    due = f" (due {task.due_date.astimezone().date().isoformat()})" if task.due_date else ""
    line = f"{idx:>3}. [{mark}] {task.title}{star}{cat_str}{due}"
    if task.description:
        line += f"\n       {task.description}"
    return line


def _describe_view(state: AppState) -> str:
    v = state.view
    bits = [f"tab={v.active_tab.value}"]
    if v.active_filter:
        cat = api.find_category(state, v.active_filter)
        bits.append(f"filter={cat.name if cat else v.active_filter}")
    if v.search_text:
        bits.append(f"search={v.search_text!r}")
    if v.selected_date:
        bits.append(f"date={v.selected_date.isoformat()}")
    return ", ".join(bits)


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list            -> visible tasks for the current selections
    /list pending    -> switch tab first (all | pending | completed)
    """
    if args:
        if args[0].lower() not in {t.value for t in TaskTab}:
            return f"Unknown tab: {args[0]}. Use /list all | pending | completed."
        api.select_tab(state, args[0].lower())

    visible = api.get_visible_tasks(state)
    header = f"Tasks ({_describe_view(state)}): {len(visible)}"
    if not visible:
        return header + "\n  (none)"

    categories = {c.id: c for c in api.list_categories(state)}
    return "\n".join([header, *(_format_task(i, t, categories) for i, t in enumerate(visible, start=1))])


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title words> [due:YYYY-MM-DD] [cat:<name>] [!] [-- description]
    """
    if not args:
        return "Usage: /add <title> [due:YYYY-MM-DD] [cat:<name>] [!] [-- description]"

    title_words: list[str] = []
    desc_words: list[str] = []
    due: datetime | None = None
    category_id: str | None = None
    important = False
    in_desc = False

    for word in args:
        if in_desc:
            desc_words.append(word)
        elif word == "--":
            in_desc = True
        elif word == "!":
            important = True
        elif word.lower().startswith("due:"):
            day = _parse_day(word[4:])
            if day is None:
                return f"Bad date: {word[4:]} (expected YYYY-MM-DD)."
            due = _due_from_day(day)
        elif word.lower().startswith("cat:"):
            cat = _category_by_name(state, word[4:])
            if cat is None:
                return f"Unknown category: {word[4:]}. Use /cats to list categories."
            category_id = cat.id
        else:
            title_words.append(word)

    try:
        task = api.add_task(
            state,
            title=" ".join(title_words),
            description=" ".join(desc_words),
            category_id=category_id,
            due_date=due,
            important=important,
        )
    except ValueError as e:
        return f"Cannot add task: {e}."
    return f"Added: {task.title}"


def cmd_done(state: AppState, args: list[str]) -> str:
    picked = _pick_visible(state, args)
    if isinstance(picked, str):
        return picked
    task = api.toggle_task_completion(state, picked.id)
    if task is None:
        return "Task no longer exists."
    return f"{'Completed' if task.completed else 'Reopened'}: {task.title}"


def cmd_star(state: AppState, args: list[str]) -> str:
    picked = _pick_visible(state, args)
    if isinstance(picked, str):
        return picked
    task = api.toggle_task_importance(state, picked.id)
    if task is None:
        return "Task no longer exists."
    return f"{'Marked important' if task.important else 'Unmarked'}: {task.title}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <n> <new title>"""
    picked = _pick_visible(state, args)
    if isinstance(picked, str):
        return picked
    new_title = " ".join(args[1:]).strip()
    if not new_title:
        return "Usage: /edit <n> <new title>"
    api.update_task(state, replace(picked, title=new_title))
    return f"Renamed: {picked.title} -> {new_title}"


def cmd_del(state: AppState, args: list[str]) -> str:
    picked = _pick_visible(state, args)
    if isinstance(picked, str):
        return picked
    api.delete_task(state, picked.id)
    return f"Deleted: {picked.title}"


def cmd_search(state: AppState, args: list[str]) -> str:
    """/search <text> | /search category:<name> | /search (clears)"""
    text = " ".join(args)
    api.set_search_text(state, text)
    if not text:
        return "Search cleared."
    out = [f"Searching for {text!r}: {len(api.get_visible_tasks(state))} task(s)."]
    if state.view.suggestions:
        out.append("Suggestions: " + " | ".join(state.view.suggestions))
    return "\n".join(out)


def cmd_filter(state: AppState, args: list[str]) -> str:
    """/filter completed|important|today|overdue|<category name>|off"""
    if not args:
        today = date.today()
        tasks = api.list_tasks(state)
        lines = ["Filters:"]
        for f in TaskFilter:
            lines.append(f"  {f.value}: {count_for_filter(tasks, f, today)}")
        for c in api.list_categories(state):
            lines.append(f"  {c.name}: {count_for_filter(tasks, c.id, today)}")
        return "\n".join(lines)

    raw = " ".join(args)
    if raw.lower() in _OFF:
        api.select_filter(state, None)
        return "Filter cleared."

    try:
        api.select_filter(state, TaskFilter(raw.lower()).value)
        return f"Filter: {raw.lower()}"
    except ValueError:
        pass

    cat = _category_by_name(state, raw)
    if cat is None:
        return f"Unknown filter: {raw}"
    api.select_filter(state, cat.id)
    return f"Filter: {cat.name}"


def cmd_tab(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Tab: {state.view.active_tab.value}. Use /tab all | pending | completed."
    raw = args[0].lower()
    if raw not in {t.value for t in TaskTab}:
        return f"Unknown tab: {args[0]}. Use /tab all | pending | completed."
    api.select_tab(state, raw)
    return f"Tab: {state.view.active_tab.value}"


def cmd_date(state: AppState, args: list[str]) -> str:
    """/date YYYY-MM-DD | /date today | /date off"""
    if not args or args[0].lower() in _OFF:
        api.select_date(state, None)
        return "Date cleared."
    day = date.today() if args[0].lower() == "today" else _parse_day(args[0])
    if day is None:
        return f"Bad date: {args[0]} (expected YYYY-MM-DD)."
    api.select_date(state, day)
    s = stats.day_summary(api.list_tasks(state), day)
    return f"Date: {day.isoformat()} ({s.total} due, {s.completed} done)"


def cmd_cats(state: AppState, args: list[str]) -> str:
    """
    /cats                       -> list categories
    /cats add <name> [#rrggbb]
    /cats rename <name> <new name>
    /cats color <name> <#rrggbb>
    /cats del <name>
    """
    if not args:
        tasks = api.list_tasks(state)
        lines = ["Categories:"]
        for c in api.list_categories(state):
            n = sum(1 for t in tasks if t.category_id == c.id)
            lines.append(f"  {c.name} {c.color} ({n})")
        return "\n".join(lines)

    sub = args[0].lower()
    rest = args[1:]

    if sub == "add":
        color = "#3b82f6"
        if rest and rest[-1].startswith("#"):
            color = rest[-1]
            rest = rest[:-1]
        try:
            cat = api.add_category(state, name=" ".join(rest), color=color)
        except ValueError as e:
            return f"Cannot add category: {e}."
        return f"Category added: {cat.name}"

    if not rest:
        return "Usage: /cats add|rename|color|del <name> ..."

    cat = _category_by_name(state, rest[0])
    if cat is None:
        return f"Unknown category: {rest[0]}"

    if sub == "del":
        api.delete_category(state, cat.id)
        return f"Category deleted: {cat.name} (its tasks are now uncategorized)"

    if sub == "rename" and len(rest) > 1:
        api.update_category(state, replace(cat, name=" ".join(rest[1:])))
        return f"Category renamed: {cat.name} -> {' '.join(rest[1:])}"

    if sub == "color" and len(rest) > 1:
        api.update_category(state, replace(cat, color=rest[1]))
        return f"Category color: {cat.name} -> {rest[1]}"

    return "Usage: /cats add|rename|color|del <name> ..."


def cmd_stats(state: AppState, args: list[str]) -> str:
    api.set_active_view(state, ActiveView.STATS)
    tasks = api.list_tasks(state)
    categories = api.list_categories(state)
    important = stats.important_stats(tasks)

    lines = [
        "Statistics:",
        f"  Total: {len(tasks)}, completed: {sum(1 for t in tasks if t.completed)}"
        f" ({stats.completion_rate(tasks)}%)",
        f"  Important: {important.completed}/{important.total} ({important.rate}%)",
        f"  Overdue: {stats.overdue_count(tasks)}",
        "  By category:",
    ]
    lines.extend(f"    {b.name}: {b.completed}/{b.total}" for b in stats.tasks_by_category(tasks, categories))
    lines.append("  By weekday (due):")
    lines.extend(f"    {b.name}: {b.completed}/{b.total}" for b in stats.tasks_by_weekday(tasks))
    lines.append("  Created per month:")
    lines.extend(f"    {b.name}: {b.total}" for b in stats.tasks_by_month(tasks))
    return "\n".join(lines)


def cmd_view(state: AppState, args: list[str]) -> str:
    if not args:
        return f"View: {state.view.active_view.value}. Use /view tasks | calendar | stats."
    raw = args[0].lower()
    if raw not in {v.value for v in ActiveView}:
        return f"Unknown view: {args[0]}. Use /view tasks | calendar | stats."
    api.set_active_view(state, raw)
    return f"View: {state.view.active_view.value}"


def cmd_settings(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /settings                  -> show
    /settings key <api key>
    /settings url <base url>
    /settings model <name>
    /settings color <theme or #rrggbb>
    /settings compact on|off
    /settings animations on|off
    """
    prefs = api.get_user_settings(state)

    if not args:
        key = prefs.openai_api_key
        masked = (key[:3] + "..." + key[-4:]) if len(key) > 8 else ("set" if key else "not set")
        return (
            "Settings:\n"
            f"  Theme color: {prefs.primary_color}\n"
            f"  Compact mode: {'on' if prefs.compact_mode else 'off'}\n"
            f"  Animations: {'on' if prefs.show_animations else 'off'}\n"
            f"  Default view: {prefs.default_view.value}\n"
            f"  API key: {masked}\n"
            f"  Base URL: {prefs.openai_base_url}\n"
            f"  Model: {prefs.openai_model}"
        )

    sub = args[0].lower()
    value = " ".join(args[1:]).strip()
    if not value:
        return f"Usage: /settings {sub} <value>"

    if sub == "key":
        new = replace(prefs, openai_api_key=value)
    elif sub == "url":
        new = replace(prefs, openai_base_url=value)
    elif sub == "model":
        new = replace(prefs, openai_model=value)
    elif sub == "color":
        if value not in THEME_COLORS and not value.startswith("#"):
            return f"Unknown color: {value}. Use one of {', '.join(THEME_COLORS)} or #rrggbb."
        new = replace(prefs, primary_color=value)
    elif sub in ("compact", "animations"):
        flag = value.lower()
        if flag not in _ON and flag not in _OFF:
            return f"Usage: /settings {sub} on|off"
        if sub == "compact":
            new = replace(prefs, compact_mode=flag in _ON)
        else:
            new = replace(prefs, show_animations=flag in _ON)
    else:
        return "Unknown setting. Use /settings to see options."

    api.save_user_settings(state, new)
    if emit is not None and sub == "key":
        emit("[settings] API key saved locally.")
    logger.debug("Settings updated field=%s", sub)
    return "Settings saved."


def cmd_status(state: AppState, args: list[str]) -> str:
    prefs = api.effective_chat_settings(state)
    storage = "ON" if state.tasks.available else "OFF (not persisted)"
    return (
        "Status:\n"
        f"  Storage: {storage}\n"
        f"  View: {state.view.active_view.value} ({_describe_view(state)})\n"
        f"  Chat model: {prefs.openai_model} @ {prefs.openai_base_url}\n"
        f"  Category search prefix: {CATEGORY_PREFIX}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="List visible tasks: /list [all|pending|completed].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <title> [due:YYYY-MM-DD] [cat:<name>] [!] [-- desc].")
registry.register("done", cmd_done, help_text="Toggle completion: /done <n>.")
registry.register("star", cmd_star, help_text="Toggle importance: /star <n>.")
registry.register("edit", cmd_edit, help_text="Rename a task: /edit <n> <title>.")
registry.register("del", cmd_del, help_text="Delete a task: /del <n>.", aliases=["rm"])
registry.register("search", cmd_search, help_text="Search: /search <text> | category:<name>.")
registry.register("filter", cmd_filter, help_text="Filter: /filter completed|important|today|overdue|<category>|off.")
registry.register("tab", cmd_tab, help_text="Tab: /tab all|pending|completed.")
registry.register("date", cmd_date, help_text="Calendar day: /date YYYY-MM-DD|today|off.")
registry.register("cats", cmd_cats, help_text="Categories: /cats [add|rename|color|del ...].")
registry.register("stats", cmd_stats, help_text="Show statistics.")
registry.register("view", cmd_view, help_text="Switch view: /view tasks|calendar|stats.")
registry.register("settings", cmd_settings, help_text="Show or change settings: /settings [key|url|model|...].")
registry.register("status", cmd_status, help_text="Show storage/chat status.")
