"""Journal session: the coordinating core for select/load/edit/save/delete.

All session state lives in one :class:`SessionState` value owned by
:class:`JournalSession` and is only ever replaced from the event loop that
drives the session. File and cipher work runs in background tasks that
return an :class:`Outcome`; the task's done-callback (which asyncio runs on
the loop) is the only place where state changes after an operation has
been dispatched. That single-writer rule is the whole synchronization story:
there are no locks.

Ordering rules:

- Switching entries (or leaving edit mode) flushes a dirty entry by issuing
  its save before anything else is issued.
- Operations on the same entry id run one after another, in issue order, so
  a reload of the entry just flushed sees the flushed content. Operations
  on different entries run concurrently.
- A save that completes after further edits, or while a newer save of the
  same entry is still queued, leaves the session dirty; the next autosave
  writes the newer content.
- Results of loads superseded by a later selection are dropped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime
from typing import Any

from loguru import logger

from inkwell.core.config import DEFAULT_EXTENSION, DEFAULT_PASSPHRASE, DEFAULT_QUIET_PERIOD
from inkwell.core.events import (
    ENTRY_CREATED,
    ENTRY_DELETE_FAILED,
    ENTRY_DELETED,
    ENTRY_LOAD_FAILED,
    ENTRY_LOADED,
    ENTRY_SAVE_FAILED,
    ENTRY_SAVED,
    ERROR,
    INDEX_REFRESH_FAILED,
    INDEX_REFRESHED,
    RENDER_UPDATED,
    STATUS,
    WORD_COUNT,
    EventBus,
)
from inkwell.core.exceptions import EntryNotFoundError, InitError
from inkwell.core.utils.text import highlight, word_count

from .autosave import AutosaveScheduler
from .cipher import CipherCodec
from .index import EntryIndex, FilteredView, title_filter
from .models import EMPTY_STATE, Entry, Mode, Outcome, SessionState
from .store import EntryStore

Operation = Callable[[], Awaitable[Any]]
CompletionHandler = Callable[[Outcome], None]

_INDEX_KEY = "<index>"


class JournalSession:
    """Owns the current entry, the dirty flag and the autosave timer.

    Commands (``select``, ``notify_edit``, ...) are plain methods that return
    immediately and must be called from the loop driving the session.
    Results arrive on :attr:`bus`.

    Args:
        store: Entry file access.
        index: Entry listing. Defaults to an index over the store's directory.
        bus: Notification channel. A private bus is created if omitted.
        quiet_period: Autosave debounce interval in seconds.
        clock: Source of creation times for new entries.
    """

    def __init__(
        self,
        store: EntryStore,
        index: EntryIndex | None = None,
        bus: EventBus | None = None,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.index = index or EntryIndex(store.directory, store.extension)
        self.bus = bus or EventBus()
        self.autosave = AutosaveScheduler(self._on_autosave, quiet_period)
        self.view: FilteredView = self.index.filter()
        self._clock = clock

        self._state: SessionState = EMPTY_STATE
        self._search_term = ""
        self._load_seq = 0
        self._inflight: dict[str, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()
        self._deleting: set[str] = set()
        self._save_gen: dict[str, int] = {}
        self.degraded = False

    @classmethod
    def from_config(cls, config: Any, bus: EventBus | None = None) -> JournalSession:
        """Build a session from a :class:`~inkwell.core.config.Config`."""
        codec = CipherCodec(config.get("cipher.passphrase", DEFAULT_PASSPHRASE))
        store = EntryStore(
            config.get_entries_dir(),
            codec=codec,
            extension=config.get("journal.extension", DEFAULT_EXTENSION),
        )
        return cls(store, bus=bus, quiet_period=config.get_quiet_period())

    # ── Read-only state ────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current(self) -> Entry | None:
        return self._state.current

    @property
    def dirty(self) -> bool:
        return self._state.dirty

    @property
    def search_term(self) -> str:
        return self._search_term

    @property
    def pending_operations(self) -> int:
        """Background operations dispatched but not yet completed."""
        return len(self._tasks)

    def list_entries(self) -> list[Entry]:
        """Entries matching the search term, newest first."""
        return self.view.entries

    # ── Lifecycle ──────────────────────────────────────────────────

    def open(self) -> bool:
        """Make sure the entries directory exists, then start a list refresh.

        If the directory can't be created the error is reported and the
        session keeps running degraded: nothing it writes will persist.
        """
        try:
            self.store.ensure_directory()
        except InitError as e:
            logger.error(str(e))
            self.degraded = True
            self._publish(ERROR, title="Initialization Error", message="Could not create data directory.")
            return False
        self.refresh()
        return True

    async def drain(self) -> None:
        """Wait until every dispatched operation has completed and been handled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel the autosave timer, flush unsaved edits and wait for I/O."""
        self.flush()
        await self.drain()
        logger.info("Journal session closed")

    # ── Commands ───────────────────────────────────────────────────

    def refresh(self) -> asyncio.Task:
        """Rebuild the index from the directory in the background."""

        def scan() -> Awaitable[list[Entry]]:
            return asyncio.get_running_loop().run_in_executor(None, self.index.scan)

        return self._dispatch(_INDEX_KEY, scan, self._refresh_done, "refresh")

    def select(self, entry: Entry | str | None) -> SessionState:
        """Make *entry* current, flushing the outgoing entry first.

        ``None`` clears the selection.

        Raises:
            EntryNotFoundError: If an id is given that the index doesn't hold.
        """
        target = self._resolve(entry) if entry is not None else None
        self.flush()
        self._load_seq += 1

        if target is None:
            self._set_state(EMPTY_STATE)
            self._publish(RENDER_UPDATED, entry_id=None, markup="")
            return self._state

        self._set_state(SessionState(current=target, mode=Mode.LOADING))
        seq = self._load_seq
        self._dispatch(
            target.id,
            lambda: self.store.load(target),
            lambda outcome: self._load_done(target, seq, outcome),
            "load",
        )
        return self._state

    def enter_edit_mode(self) -> bool:
        """Switch from read mode to edit mode. No-op without a loaded entry."""
        state = self._state
        if state.mode is Mode.EDITING:
            return True
        if state.mode is not Mode.VIEWING:
            logger.debug(f"Cannot enter edit mode from {state.mode.value}")
            return False
        self._set_state(replace(state, mode=Mode.EDITING))
        return True

    def exit_edit_mode(self) -> bool:
        """Switch back to read mode, flushing unsaved edits first."""
        state = self._state
        if state.mode is not Mode.EDITING:
            return False
        self.flush()
        self._set_state(replace(self._state, mode=Mode.VIEWING))
        self._publish_render()
        return True

    def notify_edit(self, content: str) -> bool:
        """Record the editor's latest content and (re)arm the autosave timer.

        Ignored unless the session is in edit mode.
        """
        state = self._state
        if state.mode is not Mode.EDITING:
            logger.debug(f"Ignoring edit while {state.mode.value}")
            return False
        self._set_state(replace(state, content=content, dirty=True))
        self.autosave.notify_edit()
        self._publish(STATUS, message="Editing...")
        self._publish(WORD_COUNT, entry_id=state.current.id, count=word_count(content))
        return True

    def flush(self) -> asyncio.Task | None:
        """Cancel the pending autosave and save now if there are unsaved edits."""
        self.autosave.cancel()
        state = self._state
        if state.current is None or not state.dirty or state.content is None:
            return None
        if state.current.id in self._deleting:
            return None
        return self._issue_save(state.current, state.content)

    def create_entry(self) -> str:
        """Create a new empty entry, select it and enter edit mode.

        The entry is inserted at the front of the index right away. If the
        file can't be written it is taken out again and an error is reported.

        Returns:
            The new entry's id.
        """
        self.flush()
        entry = self.store.new_entry(self._clock())
        self._load_seq += 1
        self.index.insert(entry)
        self._set_state(SessionState(current=entry, mode=Mode.EDITING, dirty=False, content=""))
        self._dispatch(
            entry.id,
            lambda: self.store.write_empty(entry),
            lambda outcome: self._create_done(entry, outcome),
            "create",
        )
        self._publish_render()
        return entry.id

    def delete_entry(self, entry: Entry | str) -> asyncio.Task:
        """Delete an entry's file and drop it from the index.

        Confirmation is the caller's job; this deletes unconditionally.

        Raises:
            EntryNotFoundError: If an id is given that the index doesn't hold.
        """
        target = self._resolve(entry)
        if self._state.current == target:
            self.autosave.cancel()
        self._deleting.add(target.id)
        return self._dispatch(
            target.id,
            lambda: self.store.delete(target),
            lambda outcome: self._delete_done(target, outcome),
            "delete",
        )

    def delete_current(self) -> asyncio.Task | None:
        if self._state.current is None:
            return None
        return self.delete_entry(self._state.current)

    def set_search_term(self, term: str | None) -> None:
        """Filter the entry list by title and re-highlight the open entry."""
        self._search_term = term or ""
        self.view.set_predicate(title_filter(self._search_term))
        if self._state.content is not None and self._state.mode is not Mode.EDITING:
            self._publish_render()

    async def get_render_content(self, entry: Entry | str) -> str:
        """Markup for read mode with search-term matches highlighted.

        The open entry renders from its in-memory content (unsaved edits
        included); any other entry is loaded from disk.

        Raises:
            EntryNotFoundError: If the id is unknown.
            EntryIOError: If the entry has to be read and can't be.
        """
        target = self._resolve(entry)
        state = self._state
        if state.current == target and state.content is not None:
            content = state.content
        else:
            task = self._dispatch(target.id, lambda: self.store.load(target), lambda outcome: None, "render")
            content = await task
        return highlight(content, self._search_term)

    # ── Completion handlers (run on the loop) ──────────────────────

    def _refresh_done(self, outcome: Outcome) -> None:
        if not outcome.ok:
            self._publish(INDEX_REFRESH_FAILED, error=str(outcome.error))
            self._publish(ERROR, title="List Error", message="Could not list entries.")
            return
        self.index.replace(outcome.value)
        self._publish(INDEX_REFRESHED, count=len(self.index))
        self._publish(STATUS, message="Entry list refreshed.")

    def _load_done(self, entry: Entry, seq: int, outcome: Outcome) -> None:
        if seq != self._load_seq or self._state.current != entry:
            logger.debug(f"Dropping stale load of {entry.id}")
            return
        if not outcome.ok:
            self._set_state(EMPTY_STATE)
            self._publish(ENTRY_LOAD_FAILED, entry_id=entry.id, error=str(outcome.error))
            self._publish(ERROR, title="Read Error", message="Could not load entry.")
            return

        content = outcome.value
        self._set_state(SessionState(current=entry, mode=Mode.VIEWING, dirty=False, content=content))
        self._publish(ENTRY_LOADED, entry_id=entry.id, content=content)
        self._publish(STATUS, message=f"Loaded {entry.title}")
        self._publish(WORD_COUNT, entry_id=entry.id, count=word_count(content))
        self._publish_render()

    def _save_done(self, entry: Entry, content: str, gen: int, outcome: Outcome) -> None:
        if not outcome.ok:
            # dirty stays set, so the next autosave or flush retries
            self._publish(ENTRY_SAVE_FAILED, entry_id=entry.id, error=str(outcome.error))
            self._publish(STATUS, message="Save Failed!")
            self._publish(ERROR, title="Save Error", message="Could not save entry.")
            return

        state = self._state
        # a newer save queued behind this one will overwrite the file
        latest = self._save_gen.get(entry.id) == gen
        current = latest and state.current == entry and state.content == content
        if current and state.dirty:
            self._set_state(replace(state, dirty=False))
            self._publish(STATUS, message=f"Saved {entry.title}")
        elif state.current == entry:
            logger.debug(f"Save of {entry.id} superseded by newer edits, staying dirty")
        self._publish(ENTRY_SAVED, entry_id=entry.id, stale=not current)

    def _create_done(self, entry: Entry, outcome: Outcome) -> None:
        if outcome.ok:
            self._publish(ENTRY_CREATED, entry_id=entry.id)
            self._publish(STATUS, message="Created new entry.")
            return
        self.index.remove(entry.id)
        if self._state.current == entry:
            self.autosave.cancel()
            self._load_seq += 1
            self._set_state(EMPTY_STATE)
        self._publish(ERROR, title="Error", message="Could not create new entry file.")

    def _delete_done(self, entry: Entry, outcome: Outcome) -> None:
        self._deleting.discard(entry.id)
        if not outcome.ok:
            self._publish(ENTRY_DELETE_FAILED, entry_id=entry.id, error=str(outcome.error))
            self._publish(ERROR, title="Delete Error", message="Could not delete file.")
            return

        self.index.remove(entry.id)
        if self._state.current == entry:
            self.autosave.cancel()
            self._load_seq += 1
            self._set_state(EMPTY_STATE)
            self._publish(RENDER_UPDATED, entry_id=None, markup="")
        self._publish(ENTRY_DELETED, entry_id=entry.id, existed=bool(outcome.value))
        self._publish(STATUS, message="Deleted entry.")

    def _on_autosave(self) -> None:
        state = self._state
        if state.current is None or not state.dirty or state.content is None:
            return
        if state.current.id in self._deleting:
            return
        self._issue_save(state.current, state.content)

    # ── Internals ──────────────────────────────────────────────────

    def _issue_save(self, entry: Entry, content: str) -> asyncio.Task:
        gen = self._save_gen.get(entry.id, 0) + 1
        self._save_gen[entry.id] = gen
        return self._dispatch(
            entry.id,
            lambda: self.store.save(entry, content),
            lambda outcome: self._save_done(entry, content, gen, outcome),
            "save",
        )

    def _dispatch(self, key: str, operation: Operation, on_done: CompletionHandler, label: str) -> asyncio.Task:
        """Run *operation* in a background task chained after *key*'s last one.

        *on_done* receives the task's :class:`Outcome` on the loop.
        """
        previous = self._inflight.get(key)

        async def run() -> Any:
            if previous is not None and not previous.done():
                await asyncio.wait([previous])
            return await operation()

        task = asyncio.get_running_loop().create_task(run(), name=f"inkwell-{label}-{key}")
        self._inflight[key] = task
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._complete(key, t, on_done, label))
        logger.debug(f"Dispatched {label} for {key}")
        return task

    def _complete(self, key: str, task: asyncio.Task, on_done: CompletionHandler, label: str) -> None:
        self._tasks.discard(task)
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            logger.debug(f"{label} for {key} cancelled")
            return

        outcome = Outcome.from_task(task)
        if not outcome.ok:
            logger.warning(f"{label} for {key} failed: {outcome.error}")
        try:
            on_done(outcome)
        except Exception:
            logger.exception(f"Completion handler for {label} {key} failed")

    def _resolve(self, entry: Entry | str) -> Entry:
        if isinstance(entry, Entry):
            return entry
        found = self.index.get(entry)
        if found is None:
            raise EntryNotFoundError(f"No entry with id {entry!r}")
        return found

    def _set_state(self, state: SessionState) -> None:
        if state.mode is not self._state.mode or state.current != self._state.current:
            entry_id = state.current.id if state.current else None
            logger.debug(f"Session -> {state.mode.value} ({entry_id})")
        self._state = state

    def _publish_render(self) -> None:
        state = self._state
        if state.current is None:
            return
        markup = highlight(state.content or "", self._search_term)
        self._publish(RENDER_UPDATED, entry_id=state.current.id, markup=markup)

    def _publish(self, name: str, **payload: Any) -> None:
        self.bus.publish(name, source="journal", **payload)
