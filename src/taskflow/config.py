# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Chat credentials saved in the user settings record take precedence; the
  environment only fills in what the record leaves empty.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Real environment variables win over .env entries.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip()
    if not s:
        return default
    try:
        return float(s)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_path: Path

    # ---- Search ----
    search_debounce_ms: int

    # ---- Chat transport ----
    chat_connect_timeout: float
    chat_read_timeout: float | None

    # ---- Chat credential fallbacks ----
    openai_api_key: str
    openai_base_url: str
    openai_model: str
    offline_chat: bool

    @property
    def search_debounce_seconds(self) -> float:
        return max(0, self.search_debounce_ms) / 1000.0

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskflow") or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        store_path = _env_path(_k("STORE_PATH"), data_dir / "store.sqlite3")

        search_debounce_ms = _env_int(_k("SEARCH_DEBOUNCE_MS"), 300)

        chat_connect_timeout = _env_float(_k("CHAT_CONNECT_TIMEOUT_SECONDS"), 5.0) or 5.0
        # Unset means the stream may stay open for as long as the server keeps it.
        chat_read_timeout = _env_float(_k("CHAT_READ_TIMEOUT_SECONDS"), None)

        openai_api_key = (_first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default="") or "").strip()
        openai_base_url = (_first_env(_k("OPENAI_BASE_URL"), "OPENAI_BASE_URL", default="") or "").strip()
        openai_model = (_first_env(_k("OPENAI_MODEL"), default="") or "").strip()
        offline_chat = _env_bool(_k("OFFLINE"), False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            store_path=store_path,
            search_debounce_ms=search_debounce_ms,
            chat_connect_timeout=chat_connect_timeout,
            chat_read_timeout=chat_read_timeout,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            openai_model=openai_model,
            offline_chat=offline_chat,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
