"""Debounce timer on top of the asyncio event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

import structlog

log = structlog.get_logger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    """Deliver a value only after input has been stable for *delay* seconds.

    Every ``push()`` restarts the timer; intermediate values are dropped.
    After ``close()`` the callback never fires again, even if a timer was
    armed.  Must be used from within a running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[T], None]) -> None:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self._delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._value: T | None = None
        self._closed = False

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a value is waiting for the timer."""
        return self._handle is not None

    def push(self, value: T) -> None:
        """Replace the pending value and restart the timer."""
        if self._closed:
            log.debug("debounce_push_after_close")
            return
        if self._handle is not None:
            self._handle.cancel()
        self._value = value
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending value. Returns False if nothing was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._value = None
        return True

    def close(self) -> None:
        self.cancel()
        self._closed = True

    def _fire(self) -> None:
        self._handle = None
        if self._closed:
            return
        value = self._value
        self._value = None
        self._callback(value)  # type: ignore[arg-type]
