# src/taskflow/storage/persistent.py

"""
Typed, JSON-encoded values stored per logical key.

A PersistentValue is loaded lazily from its backend on first read and then
served from memory. Writes land in memory first and are persisted on a
best-effort basis: a failed persist is logged and the in-memory value stays
authoritative for the rest of the process.

A backend of None means storage is not available yet; reads return the
default and writes are dropped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from ..core.models import Category, Task, UserSettings
from ..core.ports import KeyValueBackend
from ..errors import DecodeError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TASKS_KEY = "tasks"
CATEGORIES_KEY = "categories"
USER_SETTINGS_KEY = "userSettings"

Decoder = Callable[[Any], T]
Encoder = Callable[[T], Any]


def parse_or_default(raw: str | bytes | None, default: T, decode: Callable[[Any], T]) -> T:
    """
    Decode stored JSON text, or return ``default`` unchanged.

    Absent data and data that fails to parse or decode both yield the default;
    the latter is logged as a warning. Never raises for bad input.
    """
    if raw is None:
        return default
    try:
        data = json.loads(raw)
        return decode(data)
    except (ValueError, TypeError, KeyError, RecursionError, DecodeError) as e:
        logger.warning("Stored value is unreadable, using default (%s: %s)", e.__class__.__name__, e)
        return default


def decode_tasks(data: Any) -> list[Task]:
    if not isinstance(data, list):
        raise DecodeError(f"tasks must be a list, got {type(data).__name__}")
    return [Task.from_dict(item) for item in data]


def encode_tasks(tasks: list[Task]) -> list[dict[str, Any]]:
    return [t.to_dict() for t in tasks]


def decode_categories(data: Any) -> list[Category]:
    if not isinstance(data, list):
        raise DecodeError(f"categories must be a list, got {type(data).__name__}")
    return [Category.from_dict(item) for item in data]


def encode_categories(categories: list[Category]) -> list[dict[str, Any]]:
    return [c.to_dict() for c in categories]


def decode_user_settings(data: Any) -> UserSettings:
    return UserSettings.from_dict(data)


def encode_user_settings(settings: UserSettings) -> dict[str, Any]:
    return settings.to_dict()


class PersistentValue(Generic[T]):
    """One logical key in the durable store, with a typed in-memory copy."""

    def __init__(
        self,
        backend: KeyValueBackend | None,
        key: str,
        default: T,
        *,
        decode: Decoder[T],
        encode: Encoder[T],
    ) -> None:
        self._backend = backend
        self._key = key
        self._default = default
        self._decode = decode
        self._encode = encode
        self._value: T = default
        self._loaded = False

    @property
    def key(self) -> str:
        return self._key

    @property
    def available(self) -> bool:
        return self._backend is not None

    def read(self) -> T:
        if self._backend is None:
            return self._default
        if not self._loaded:
            self._value = self._load(self._backend)
            self._loaded = True
        return self._value

    def write(self, value: T) -> None:
        if self._backend is None:
            logger.debug("Storage not ready, dropping write key=%s", self._key)
            return

        self._value = value
        self._loaded = True

        try:
            text = json.dumps(self._encode(value), ensure_ascii=False)
        except (TypeError, ValueError):
            logger.warning("Failed to serialize key=%s; keeping in-memory value only.", self._key, exc_info=True)
            return

        try:
            self._backend.set(self._key, text)
        except Exception:
            # Quota/IO failures: the process keeps the new value even though it is not durable.
            logger.warning("Failed to persist key=%s; keeping in-memory value only.", self._key, exc_info=True)

    def update(self, fn: Callable[[T], T]) -> T:
        """Single-writer update: derive the new value from the current one and write it."""
        new_value = fn(self.read())
        self.write(new_value)
        return new_value

    def _load(self, backend: KeyValueBackend) -> T:
        try:
            raw = backend.get(self._key)
        except Exception:
            logger.warning("Failed to read key=%s; using default.", self._key, exc_info=True)
            return self._default
        if raw is None:
            logger.debug("No stored value for key=%s; using default.", self._key)
        return parse_or_default(raw, self._default, self._decode)
