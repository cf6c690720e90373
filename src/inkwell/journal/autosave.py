"""Autosave debounce timer.

Collapses a burst of edit notifications into a single deferred callback
that runs once the editor has been quiet for ``quiet_period`` seconds.
There is never more than one pending fire: each edit supersedes the last.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from inkwell.core.config import DEFAULT_QUIET_PERIOD

FireFn = Callable[[], None]
"""Sync callable run on the event loop when the quiet period elapses."""


class AutosaveScheduler:
    """Single-slot debounce timer on the running asyncio loop.

    Args:
        on_fire: Called once per quiet period that follows at least one
            edit. Whether anything is actually saved is the callback's call.
        quiet_period: Seconds of silence before firing.
    """

    def __init__(self, on_fire: FireFn, quiet_period: float = DEFAULT_QUIET_PERIOD):
        if quiet_period <= 0:
            raise ValueError("quiet_period must be positive")
        self._on_fire = on_fire
        self.quiet_period = quiet_period
        self._handle: asyncio.TimerHandle | None = None
        self.fire_count = 0

    @property
    def pending(self) -> bool:
        """Whether a fire is scheduled and hasn't happened yet."""
        return self._handle is not None

    def notify_edit(self) -> None:
        """(Re)start the timer ``quiet_period`` from now.

        Must be called from a running event loop.
        """
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.quiet_period, self._fire)

    def cancel(self) -> bool:
        """Drop the pending fire, if any. Returns whether one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self) -> None:
        self._handle = None
        self.fire_count += 1
        logger.debug(f"Autosave quiet period ({self.quiet_period}s) elapsed")
        try:
            self._on_fire()
        except Exception:
            logger.exception("Autosave callback failed")
