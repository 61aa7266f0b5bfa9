# src/taskflow/core/chat.py

"""
Core chat orchestration.

This module is transport-agnostic:
- the presentation layer provides the user's text,
- the core builds the message list (history + task snapshot + user message),
- the ChatClient streams the reply and the session surfaces the running text.

Key invariants:
- the user message is kept once the request is underway (a configuration
  error means nothing was sent and nothing is kept),
- the assistant message is stored only after a successful stream; a failed or
  abandoned stream discards its partial text,
- the task snapshot is sent as a system message but never stored in history,
- every stored message is an immutable ChatMessage.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from ..errors import ConfigurationError, TaskflowError
from .models import ChatMessage, UserSettings
from .persona import GREETING, SYSTEM_PROMPT
from .ports import ChatClient

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"


class ChatSession:
    def __init__(self, client: ChatClient) -> None:
        self._client = client
        self._history: list[ChatMessage] = [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="assistant", content=GREETING),
        ]

    @property
    def history(self) -> tuple[ChatMessage, ...]:
        return tuple(self._history)

    def visible_history(self) -> list[ChatMessage]:
        """Messages a presentation layer shows (system messages hidden)."""
        return [m for m in self._history if m.role != "system"]

    def build_messages(self, user_text: str, context: str) -> list[ChatMessage]:
        return [
            *self._history,
            ChatMessage(role="system", content=context),
            ChatMessage(role="user", content=user_text),
        ]

    def stream_reply(self, user_text: str, *, settings: UserSettings, context: str) -> Iterator[str]:
        """
        Stream the assistant's reply, yielding the accumulated text after each fragment.

        Raises ConfigurationError / TransportError from the client. Closing the
        iterator early abandons the request; the user message stays in history
        but no assistant message is added.
        """
        user_text = user_text.strip()
        if not user_text:
            return

        user_message = ChatMessage(role="user", content=user_text)
        messages = self.build_messages(user_text, context)
        fragments = self._client.stream_chat(
            messages,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.openai_model or DEFAULT_MODEL,
        )

        accumulated = ""
        try:
            for fragment in fragments:
                if not fragment:
                    continue
                accumulated += fragment
                yield accumulated
        except ConfigurationError:
            raise
        except (TaskflowError, GeneratorExit):
            self._history.append(user_message)
            logger.debug("Chat: reply dropped, user message kept history=%d", len(self._history))
            raise

        self._history.append(user_message)
        self._history.append(ChatMessage(role="assistant", content=accumulated))
        logger.debug("Chat: reply committed chars=%d history=%d", len(accumulated), len(self._history))
