"""Event bus for the journal notification channel.

The journal session reports results of background work (loads, saves,
refreshes) and side-channel status to whoever listens, without knowing
anything about the display layer. Hooks can be sync or async.

Usage::

    from inkwell.core.events import ENTRY_SAVED, Event, EventBus

    bus = EventBus()

    def on_saved(event: Event) -> None:
        print(f"Saved {event.payload['entry_id']}")

    bus.on(ENTRY_SAVED, on_saved)
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

# ---------------------------------------------------------------------------
# Well-known event names
# ---------------------------------------------------------------------------

ENTRY_LOADED = "entry.loaded"
ENTRY_LOAD_FAILED = "entry.load_failed"
ENTRY_SAVED = "entry.saved"
ENTRY_SAVE_FAILED = "entry.save_failed"
ENTRY_CREATED = "entry.created"
ENTRY_DELETED = "entry.deleted"
ENTRY_DELETE_FAILED = "entry.delete_failed"
INDEX_REFRESHED = "index.refreshed"
INDEX_REFRESH_FAILED = "index.refresh_failed"
RENDER_UPDATED = "render.updated"
STATUS = "status"
WORD_COUNT = "word_count"
ERROR = "error"

# Type alias for hook callables (sync or async)
Hook = Any  # Callable[[Event], None] | Callable[[Event], Awaitable[None]]


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Event:
    """An immutable event that flows through the bus."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class EventBus:
    """Simple pub/sub event bus supporting sync and async hooks."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = defaultdict(list)
        self._wildcard_hooks: list[Hook] = []
        self._background_tasks: set[asyncio.Task] = set()  # prevent GC of fire-and-forget tasks

    def on(self, event_name: str, hook: Hook) -> None:
        """Register *hook* for a specific event name."""
        self._hooks[event_name].append(hook)

    def on_all(self, hook: Hook) -> None:
        """Register *hook* for all events (wildcard)."""
        self._wildcard_hooks.append(hook)

    def off(self, event_name: str, hook: Hook) -> None:
        """Unregister *hook* from a specific event name."""
        try:
            self._hooks[event_name].remove(hook)
        except ValueError:
            pass

    async def emit(self, event: Event) -> None:
        """Emit an event, running all matching hooks (async)."""
        for hook in self._matching(event):
            try:
                if inspect.iscoroutinefunction(hook):
                    await hook(event)
                else:
                    hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

    def emit_sync(self, event: Event) -> None:
        """Emit from a sync context.

        If a running event loop exists, schedules async hooks as tasks.
        Otherwise, only runs sync hooks (async hooks are skipped).
        """
        loop: asyncio.AbstractEventLoop | None = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            pass

        for hook in self._matching(event):
            try:
                if inspect.iscoroutinefunction(hook):
                    if loop is not None:
                        task = loop.create_task(hook(event))
                        self._background_tasks.add(task)
                        task.add_done_callback(self._background_tasks.discard)
                    else:
                        logger.debug(f"Skipping async hook {hook!r}: no running event loop")
                else:
                    hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

    def publish(self, name: str, source: str = "", **payload: Any) -> Event:
        """Build an :class:`Event` from keyword payload and emit it synchronously."""
        event = Event(name=name, payload=payload, source=source)
        self.emit_sync(event)
        return event

    def _matching(self, event: Event) -> list[Hook]:
        hooks = list(self._hooks.get(event.name, []))
        hooks.extend(self._wildcard_hooks)
        return hooks
