# src/taskflow/llm/stream.py

"""
Streaming chat-completion client for OpenAI-compatible endpoints.

Wire format: the response body is newline-delimited text. Only lines that
start with ``data: `` carry payload; ``data: [DONE]`` ends the stream and every
other payload is one JSON chunk whose ``choices[0].delta.content`` is the next
piece of text.

Each line is decoded into a tagged value (Fragment / Skip / End) so that a
malformed chunk is an ordinary result rather than an exception: it is logged
and skipped, and the stream carries on.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.models import ChatMessage
from ..errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_TOKEN = "[DONE]"


@dataclass(frozen=True, slots=True)
class Fragment:
    text: str


@dataclass(frozen=True, slots=True)
class Skip:
    reason: str
    malformed: bool = False


@dataclass(frozen=True, slots=True)
class End:
    pass


StreamEvent = Fragment | Skip | End


def _delta_content(data: Any) -> str:
    try:
        content = data["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


def decode_stream_line(line: str) -> StreamEvent:
    if not line.startswith(DATA_PREFIX):
        return Skip("not a data line")

    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_TOKEN:
        return End()

    try:
        data = json.loads(payload)
    except ValueError as e:
        return Skip(f"malformed JSON chunk: {e}", malformed=True)

    return Fragment(_delta_content(data))


def error_message_from_response(response: httpx.Response) -> str:
    """Human-readable message from an error body, or one built from the status code."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            msg = err.get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()

    return f"API request failed: {response.status_code}"


def make_timeout(connect_s: float, read_s: float | None) -> httpx.Timeout:
    """Connect timeout only by default; ``read_s=None`` lets a slow stream stay open."""
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def chat_completions_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/chat/completions"


def _checked_url(base_url: str) -> httpx.URL:
    """Absolute http(s) URL of the completions endpoint, or ConfigurationError."""
    try:
        url = httpx.URL(chat_completions_url(base_url))
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Chat base URL is invalid: {e}. Fix it with /settings url <value>.") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            "Chat base URL must start with http:// or https://. Fix it with /settings url <value>."
        )
    return url


def _check_api_key(api_key: str) -> None:
    # Sent verbatim in the Authorization header.
    if not api_key.isascii() or not api_key.isprintable():
        raise ConfigurationError(
            "Chat API key contains characters that cannot be sent (check for smart quotes "
            "left by copy and paste). Set it again with /settings key <value>."
        )


class ChatStreamClient:
    """
    One request per ``stream_chat`` call; each call is an independent stream.

    Failure modes:
    - missing or unusable API key / base URL -> ConfigurationError, nothing is sent
    - non-2xx status -> TransportError with the server's message, no retry
    - network failure (before or during the stream) -> TransportError
    - a malformed chunk -> logged and skipped
    """

    def __init__(
        self,
        *,
        timeout: httpx.Timeout | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else make_timeout(5.0, None)
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Any) -> ChatStreamClient:
        return cls(
            timeout=make_timeout(
                float(getattr(settings, "chat_connect_timeout", 5.0)),
                getattr(settings, "chat_read_timeout", None),
            )
        )

    def stream_chat(
        self,
        messages: list[ChatMessage],
        *,
        api_key: str,
        base_url: str,
        model: str,
    ) -> Iterator[str]:
        """Yield content fragments in arrival order (empty fragments are dropped)."""
        api_key = (api_key or "").strip()
        base_url = (base_url or "").strip()
        if not api_key:
            raise ConfigurationError("Chat API key is not set. Configure it with /settings key <value>.")
        if not base_url:
            raise ConfigurationError("Chat base URL is not set. Configure it with /settings url <value>.")
        _check_api_key(api_key)
        url = _checked_url(base_url)

        payload = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "stream": True,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

        logger.info("Chat: POST %s model=%s messages=%d", url, model, len(messages))

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                with client.stream("POST", url, json=payload, headers=headers) as resp:
                    if not resp.is_success:
                        resp.read()
                        msg = error_message_from_response(resp)
                        logger.info("Chat: request failed status=%s: %s", resp.status_code, msg)
                        raise TransportError(msg, status_code=resp.status_code)

                    n_chunks = 0
                    for line in resp.iter_lines():
                        event = decode_stream_line(line)
                        if isinstance(event, End):
                            break
                        if isinstance(event, Skip):
                            if event.malformed:
                                logger.warning("Chat: skipping chunk (%s)", event.reason)
                            continue
                        n_chunks += 1
                        if event.text:
                            yield event.text

                    logger.debug("Chat: stream finished chunks=%d", n_chunks)
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Chat base URL is invalid: {e}. Fix it with /settings url <value>.") from e
        except httpx.HTTPError as e:
            logger.info("Chat: network error (%s)", e.__class__.__name__)
            raise TransportError("Chat request failed: network error. Try again later.") from e
