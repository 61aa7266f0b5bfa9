# src/taskflow/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.models import ChatMessage


class OfflineChatClient:
    """
    Offline deterministic chat client used for demos when no chat endpoint is wanted.

    It never touches the network and ignores credentials; it reflects the last
    user message so the console flow can be tried end to end.
    """

    def stream_chat(
            self,
            messages: list[ChatMessage],
            *,
            api_key: str,
            base_url: str,
            model: str,
    ) -> Iterable[str]:
        user_text = ""
        for m in reversed(messages):
            if m.role == "user":
                user_text = m.content
                break

        yield "Offline demo mode: no chat endpoint is used.\n"
        yield "Unset TASKFLOW_OFFLINE and set an API key with /settings key <value>.\n\n"
        yield f"You said: {user_text}"
