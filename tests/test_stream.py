# tests/test_stream.py

from __future__ import annotations

import json
from collections.abc import Callable, Iterator

import httpx
import pytest

from taskflow.core.chat import ChatSession
from taskflow.core.models import ChatMessage, UserSettings
from taskflow.errors import ConfigurationError, TransportError
from taskflow.llm.stream import (
    ChatStreamClient,
    End,
    Fragment,
    Skip,
    decode_stream_line,
    error_message_from_response,
)

SSE_HEADERS = {"content-type": "text/event-stream; charset=utf-8"}


def chunk(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}) + "\n\n"


def client_for(handler: Callable[[httpx.Request], httpx.Response]) -> ChatStreamClient:
    return ChatStreamClient(transport=httpx.MockTransport(handler))


def sse_response(*parts: str | bytes) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        body = b"".join(p.encode("utf-8") if isinstance(p, str) else p for p in parts)
        return httpx.Response(200, headers=SSE_HEADERS, content=body)

    return handler


def run(client: ChatStreamClient, *, api_key: str = "sk-test") -> list[str]:
    return list(
        client.stream_chat(
            [ChatMessage(role="user", content="hello")],
            api_key=api_key,
            base_url="https://llm.example/v1",
            model="gpt-test",
        )
    )


# ---- line decoding ----


def test_decode_content_line() -> None:
    assert decode_stream_line('data: {"choices":[{"delta":{"content":"Hi"}}]}') == Fragment("Hi")


def test_decode_done_line() -> None:
    assert decode_stream_line("data: [DONE]") == End()


def test_decode_ignores_non_data_lines() -> None:
    for line in ("", ": keep-alive", "event: message", "data:{}"):
        event = decode_stream_line(line)
        assert isinstance(event, Skip)
        assert event.malformed is False


def test_decode_malformed_json_is_a_skip() -> None:
    event = decode_stream_line("data: {not json")

    assert isinstance(event, Skip)
    assert event.malformed is True


def test_decode_missing_content_is_an_empty_fragment() -> None:
    assert decode_stream_line('data: {"choices":[{"delta":{"role":"assistant"}}]}') == Fragment("")
    assert decode_stream_line('data: {"choices":[]}') == Fragment("")
    assert decode_stream_line('data: {"choices":[{"delta":{"content":null}}]}') == Fragment("")
    assert decode_stream_line("data: [1, 2]") == Fragment("")


# ---- client ----


def test_stream_assembles_hi_there() -> None:
    client = client_for(sse_response(chunk("Hi"), chunk(" there"), "data: [DONE]\n\n"))

    assert "".join(run(client)) == "Hi there"


def test_malformed_chunk_is_skipped_and_stream_continues() -> None:
    client = client_for(sse_response("data: {oops\n\n", chunk("valid"), "data: [DONE]\n\n"))

    assert run(client) == ["valid"]


def test_done_ends_the_stream() -> None:
    client = client_for(sse_response(chunk("a"), "data: [DONE]\n\n", chunk("ignored")))

    assert run(client) == ["a"]


def test_stream_without_done_ends_at_body_end() -> None:
    client = client_for(sse_response(chunk("a"), chunk("b")))

    assert run(client) == ["a", "b"]


def test_lines_split_across_network_chunks() -> None:
    full = chunk("héllo").encode("utf-8") + b"data: [DONE]\n\n"
    cut = full.index("é".encode("utf-8")) + 1  # split inside the multi-byte character

    def handler(request: httpx.Request) -> httpx.Response:
        def body() -> Iterator[bytes]:
            yield full[:10]
            yield full[10:cut]
            yield full[cut:]

        return httpx.Response(200, headers=SSE_HEADERS, content=body())

    assert run(client_for(handler)) == ["héllo"]


def test_request_shape() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, headers=SSE_HEADERS, content=b"data: [DONE]\n\n")

    client = client_for(handler)
    list(
        client.stream_chat(
            [ChatMessage(role="system", content="ctx"), ChatMessage(role="user", content="hi")],
            api_key="sk-abc",
            base_url="https://llm.example/v1/",
            model="gpt-test",
        )
    )

    assert len(seen) == 1
    req = seen[0]
    assert req.method == "POST"
    assert str(req.url) == "https://llm.example/v1/chat/completions"
    assert req.headers["authorization"] == "Bearer sk-abc"
    assert json.loads(req.content) == {
        "model": "gpt-test",
        "messages": [{"role": "system", "content": "ctx"}, {"role": "user", "content": "hi"}],
        "stream": True,
    }


def test_missing_api_key_fails_before_any_request() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    with pytest.raises(ConfigurationError):
        run(client_for(handler), api_key="  ")

    assert calls == []


@pytest.mark.parametrize("base_url", ["http://[::1", "api.openai.com/v1", "ftp://llm.example/v1"])
def test_unusable_base_url_is_a_configuration_error(base_url: str) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    with pytest.raises(ConfigurationError):
        list(
            client_for(handler).stream_chat(
                [ChatMessage(role="user", content="hello")],
                api_key="sk-test",
                base_url=base_url,
                model="gpt-test",
            )
        )

    assert calls == []


@pytest.mark.parametrize("api_key", ["sk-“x”", "sk-a\nb", "sk-\x00"])
def test_api_key_that_cannot_be_a_header_is_a_configuration_error(api_key: str) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    with pytest.raises(ConfigurationError):
        run(client_for(handler), api_key=api_key)

    assert calls == []


def test_http_error_uses_server_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Incorrect API key provided."}})

    with pytest.raises(TransportError) as exc_info:
        run(client_for(handler))

    assert str(exc_info.value) == "Incorrect API key provided."
    assert exc_info.value.status_code == 401


def test_http_error_without_json_body_uses_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad gateway</html>")

    with pytest.raises(TransportError) as exc_info:
        run(client_for(handler))

    assert str(exc_info.value) == "API request failed: 502"


def test_error_message_ignores_unexpected_error_shapes() -> None:
    resp = httpx.Response(400, json={"error": "nope"})

    assert error_message_from_response(resp) == "API request failed: 400"


def test_connection_failure_is_a_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError):
        run(client_for(handler))


def test_failure_mid_stream_discards_partial_reply() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        def body() -> Iterator[bytes]:
            yield chunk("partial").encode("utf-8")
            raise httpx.ReadError("connection reset")

        return httpx.Response(200, headers=SSE_HEADERS, content=body())

    session = ChatSession(client_for(handler))
    before = session.history
    settings = UserSettings(openai_api_key="sk-test", openai_base_url="https://llm.example/v1")

    seen: list[str] = []
    with pytest.raises(TransportError):
        for text in session.stream_reply("hello", settings=settings, context="ctx"):
            seen.append(text)

    assert seen == ["partial"]
    assert session.history == (*before, ChatMessage(role="user", content="hello"))


def test_session_commits_hi_there_over_the_wire() -> None:
    client = client_for(sse_response(chunk("Hi"), chunk(" there"), "data: [DONE]\n\n"))
    session = ChatSession(client)
    settings = UserSettings(openai_api_key="sk-test")

    running = list(session.stream_reply("hello", settings=settings, context="ctx"))

    assert running == ["Hi", "Hi there"]
    assert session.history[-1] == ChatMessage(role="assistant", content="Hi there")


def test_session_malformed_line_then_valid_line() -> None:
    client = client_for(sse_response("data: {broken\n\n", chunk("Only this"), "data: [DONE]\n\n"))
    session = ChatSession(client)
    settings = UserSettings(openai_api_key="sk-test")

    list(session.stream_reply("hello", settings=settings, context="ctx"))

    assert session.history[-1] == ChatMessage(role="assistant", content="Only this")
