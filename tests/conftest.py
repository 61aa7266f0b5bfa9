# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.core.state import AppState, build_state

from .fakes import FakeChatClient, FakeKeyValueBackend


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskflow",
        data_dir=tmp_path,
        store_path=tmp_path / "store.sqlite3",
        search_debounce_seconds=0.02,
        chat_connect_timeout=1.0,
        chat_read_timeout=None,
        openai_api_key="",
        openai_base_url="",
        openai_model="",
        offline_chat=False,
    )


@pytest.fixture()
def backend() -> FakeKeyValueBackend:
    return FakeKeyValueBackend()


@pytest.fixture()
def chat_client() -> FakeChatClient:
    return FakeChatClient(["Hi", " there"])


@pytest.fixture()
def state(settings: SimpleNamespace, backend: FakeKeyValueBackend, chat_client: FakeChatClient) -> AppState:
    """AppState wired with an in-memory store and a deterministic chat client."""
    return build_state(settings, backend, chat_client)


@pytest.fixture()
def today() -> date:
    return date(2024, 5, 15)
