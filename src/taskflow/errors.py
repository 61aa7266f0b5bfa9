# src/taskflow/errors.py

"""
Error taxonomy.

- ConfigurationError: missing/invalid chat credentials or endpoint. Surfaced to
  the user, nothing is sent.
- TransportError: HTTP or network failure while talking to the chat endpoint.
  Surfaced, the stream is aborted, no retry.
- DecodeError: a malformed stream chunk or corrupted persisted JSON. Recovered
  locally (chunk skipped / default substituted) and only logged.
"""

from __future__ import annotations


class TaskflowError(Exception):
    """Base class for all taskflow errors."""


class ConfigurationError(TaskflowError):
    pass


class TransportError(TaskflowError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(TaskflowError):
    pass


def friendly_error_message(err: Exception) -> str:
    """Map an error to a short line suitable for the console."""
    msg = str(err).strip()
    if isinstance(err, ConfigurationError):
        return msg or "Chat is not configured. Use /settings to set an API key."
    if isinstance(err, TransportError):
        return msg or "Chat request failed."
    return msg or "Unexpected error."
