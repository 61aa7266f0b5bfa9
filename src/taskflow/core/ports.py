# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers swappable and makes testing easier.
"""

from collections.abc import Iterable
from typing import Protocol

from .models import ChatMessage


class KeyValueBackend(Protocol):
    """Durable text store addressed by logical key (tasks, categories, ...)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class ChatClient(Protocol):
    """Streaming chat completion client (OpenAI-compatible)."""

    def stream_chat(
            self,
            messages: list[ChatMessage],
            *,
            api_key: str,
            base_url: str,
            model: str,
    ) -> Iterable[str]: ...
