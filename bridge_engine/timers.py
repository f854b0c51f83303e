"""Cancellable timers for the claim window.

The engine owns exactly one timer. Starting it again replaces the pending
callback; cancelling guarantees the callback will not run.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Callable


class ClaimTimer(ABC):
    """Interface for the claim window countdown."""

    @abstractmethod
    def start(self, seconds: float, callback: Callable[[], None]) -> None:
        """Schedule ``callback`` after ``seconds``, replacing any pending one."""
        ...

    @abstractmethod
    def cancel(self) -> None:
        """Drop the pending callback, if any."""
        ...

    @property
    @abstractmethod
    def active(self) -> bool:
        ...


class ManualClaimTimer(ClaimTimer):
    """Timer that only fires when told to.

    Used headless and in tests, where the caller decides when the window
    expires.
    """

    def __init__(self):
        self._callback: Callable[[], None] | None = None
        self.seconds: float | None = None

    def start(self, seconds: float, callback: Callable[[], None]) -> None:
        self.seconds = seconds
        self._callback = callback

    def cancel(self) -> None:
        self._callback = None
        self.seconds = None

    @property
    def active(self) -> bool:
        return self._callback is not None

    def expire(self) -> bool:
        """Fire the pending callback now. Returns False if nothing was pending."""
        callback = self._callback
        if callback is None:
            return False
        self.cancel()
        callback()
        return True


class AsyncioClaimTimer(ClaimTimer):
    """Timer backed by ``loop.call_later`` on the running event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    def start(self, seconds: float, callback: Callable[[], None]) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = loop.call_later(seconds, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def active(self) -> bool:
        return self._handle is not None
