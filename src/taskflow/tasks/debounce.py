# src/taskflow/tasks/debounce.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Cancellable settle timer on the asyncio event loop.

    ``schedule(*args)`` (re)starts the timer; when it fires without another
    ``schedule`` in between, ``callback(*args)`` runs once with the latest
    arguments. ``cancel()`` drops the pending call.

    Must be used from code running inside an event loop.
    """

    def __init__(self, delay: float, callback: Callable[..., Any]) -> None:
        self._delay = max(0.0, float(delay))
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, *args: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire, args)

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self, args: tuple[Any, ...]) -> None:
        self._handle = None
        try:
            self._callback(*args)
        except Exception:
            logger.exception("Debounced callback failed.")
