# src/taskflow/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from ..errors import DecodeError


class TaskFilter(StrEnum):
    """
    Built-in sidebar filters.

    Any other filter value is interpreted as a category id.
    """

    COMPLETED = "completed"
    IMPORTANT = "important"
    TODAY = "today"
    OVERDUE = "overdue"


class TaskTab(StrEnum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: str | None) -> TaskTab:
        if not raw:
            return cls.ALL
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.ALL


class ActiveView(StrEnum):
    TASKS = "tasks"
    CALENDAR = "calendar"
    STATS = "stats"

    @classmethod
    def parse(cls, raw: str | None) -> ActiveView:
        if not raw:
            return cls.TASKS
        try:
            return cls(raw)
        except ValueError:
            return cls.TASKS


THEME_COLORS: tuple[str, ...] = ("blue", "purple", "green", "rose", "amber")


def parse_timestamp(raw: Any) -> datetime | None:
    """ISO-8601 text (as written by ``format_timestamp``) -> datetime."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    if not isinstance(raw, str):
        raise DecodeError(f"timestamp must be text, got {type(raw).__name__}")
    try:
        return datetime.fromisoformat(raw)
    except ValueError as e:
        raise DecodeError(f"bad timestamp: {raw!r}") from e


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _require(data: Any, *keys: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodeError(f"expected an object, got {type(data).__name__}")
    missing = [k for k in keys if data.get(k) in (None, "")]
    if missing:
        raise DecodeError(f"missing required fields: {', '.join(missing)}")
    return data


@dataclass(slots=True)
class Task:
    id: str
    title: str
    created_at: datetime
    description: str = ""
    completed: bool = False
    important: bool = False
    category_id: str | None = None
    due_date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "important": self.important,
            "categoryId": self.category_id,
            "dueDate": format_timestamp(self.due_date),
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Task:
        d = _require(data, "id", "title", "createdAt")
        created_at = parse_timestamp(d["createdAt"])
        if created_at is None:
            raise DecodeError("createdAt is empty")
        return cls(
            id=str(d["id"]),
            title=str(d["title"]),
            created_at=created_at,
            description=str(d.get("description") or ""),
            completed=bool(d.get("completed", False)),
            important=bool(d.get("important", False)),
            category_id=str(d["categoryId"]) if d.get("categoryId") else None,
            due_date=parse_timestamp(d.get("dueDate")),
        )


@dataclass(slots=True)
class Category:
    id: str
    name: str
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: Any) -> Category:
        d = _require(data, "id", "name")
        return cls(id=str(d["id"]), name=str(d["name"]), color=str(d.get("color") or ""))


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="1", name="Work", color="#3b82f6"),
    Category(id="2", name="Personal", color="#22c55e"),
    Category(id="3", name="Shopping", color="#f59e0b"),
    Category(id="4", name="Health", color="#ef4444"),
    Category(id="5", name="Study", color="#8b5cf6"),
    Category(id="6", name="Entertainment", color="#ec4899"),
)


def default_categories() -> list[Category]:
    return [replace(c) for c in DEFAULT_CATEGORIES]


@dataclass(frozen=True, slots=True)
class UserSettings:
    primary_color: str = "blue"
    compact_mode: bool = False
    show_animations: bool = True
    default_view: ActiveView = ActiveView.TASKS
    sidebar_collapsed: bool = False
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-3.5-turbo"

    def to_dict(self) -> dict[str, Any]:
        return {
            "primaryColor": self.primary_color,
            "compactMode": self.compact_mode,
            "showAnimations": self.show_animations,
            "defaultView": self.default_view.value,
            "sidebarCollapsed": self.sidebar_collapsed,
            "openaiApiKey": self.openai_api_key,
            "openaiBaseUrl": self.openai_base_url,
            "openaiModel": self.openai_model,
        }

    @classmethod
    def from_dict(cls, data: Any) -> UserSettings:
        """Missing keys fall back to defaults so older records keep loading."""
        if not isinstance(data, dict):
            raise DecodeError(f"expected an object, got {type(data).__name__}")
        base = cls()
        return cls(
            primary_color=str(data.get("primaryColor", base.primary_color)),
            compact_mode=bool(data.get("compactMode", base.compact_mode)),
            show_animations=bool(data.get("showAnimations", base.show_animations)),
            default_view=ActiveView.parse(data.get("defaultView")),
            sidebar_collapsed=bool(data.get("sidebarCollapsed", base.sidebar_collapsed)),
            openai_api_key=str(data.get("openaiApiKey", base.openai_api_key) or ""),
            openai_base_url=str(data.get("openaiBaseUrl", base.openai_base_url) or ""),
            openai_model=str(data.get("openaiModel", base.openai_model) or ""),
        )


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """OpenAI-style chat message: {"role": "...", "content": "..."}."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True)
class ViewState:
    """Transient selections the presentation layer drives (never persisted)."""

    search_text: str = ""
    active_filter: str | None = None
    active_tab: TaskTab = TaskTab.ALL
    selected_date: date | None = None
    active_view: ActiveView = ActiveView.TASKS
    sidebar_collapsed: bool = False
    suggestions: list[str] = field(default_factory=list)
