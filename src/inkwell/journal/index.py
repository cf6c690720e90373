"""In-memory index of entry files with a live, filterable view.

The index is a cache of the entries directory. It is rebuilt wholesale by
``scan()`` + ``replace()`` and patched by ``insert()``/``remove()`` after the
session creates or deletes an entry; nothing watches the filesystem.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from datetime import datetime
from pathlib import Path

from loguru import logger

from inkwell.core.config import DEFAULT_EXTENSION
from inkwell.core.exceptions import EntryIOError

from .models import Entry

Predicate = Callable[[Entry], bool]
Listener = Callable[[], None]


def _match_all(entry: Entry) -> bool:
    return True


def title_filter(term: str | None) -> Predicate:
    """Case-insensitive substring match against the entry's display title."""
    if not term:
        return _match_all
    needle = term.lower()
    return lambda entry: needle in entry.title.lower()


def sort_newest_first(entries: list[Entry]) -> list[Entry]:
    return sorted(entries, key=lambda e: (e.timestamp, e.id), reverse=True)


class EntryIndex:
    """Ordered (newest first) list of entries in one directory."""

    def __init__(self, directory: str | Path, extension: str = DEFAULT_EXTENSION):
        self.directory = Path(directory).expanduser()
        self.extension = extension
        self._entries: list[Entry] = []
        self._version = 0
        self._listeners: list[Listener] = []

    # ── Building ───────────────────────────────────────────────────

    def scan(self, now: datetime | None = None) -> list[Entry]:
        """List the directory and return its entries sorted newest first.

        Blocking; meant to run off the coordinating loop. Files whose names
        don't parse get ``now`` (default: the current time) as timestamp.

        Raises:
            EntryIOError: If the directory cannot be listed.
        """
        now = now or datetime.now()
        try:
            with os.scandir(self.directory) as it:
                paths = [
                    Path(item.path)
                    for item in it
                    if item.is_file() and item.name.endswith(self.extension)
                ]
        except OSError as e:
            raise EntryIOError(f"Cannot list {self.directory}: {e}") from e

        entries = [Entry.from_path(p, now=now) for p in paths]
        logger.debug(f"Scanned {len(entries)} entries in {self.directory}")
        return sort_newest_first(entries)

    def replace(self, entries: list[Entry]) -> None:
        """Swap in a freshly scanned list, discarding the previous one."""
        self._entries = list(entries)
        self._changed()

    def refresh(self) -> list[Entry]:
        """Scan and replace in one blocking call."""
        self.replace(self.scan())
        return self.entries

    # ── Mutation ───────────────────────────────────────────────────

    def insert(self, entry: Entry) -> None:
        """Put *entry* at the front, replacing any same-id handle."""
        self._entries = [entry] + [e for e in self._entries if e.id != entry.id]
        self._changed()

    def remove(self, entry_id: str) -> Entry | None:
        """Drop the entry with *entry_id*; returns it, or None if absent."""
        for i, entry in enumerate(self._entries):
            if entry.id == entry_id:
                del self._entries[i]
                self._changed()
                return entry
        return None

    # ── Access ─────────────────────────────────────────────────────

    @property
    def entries(self) -> list[Entry]:
        return list(self._entries)

    @property
    def version(self) -> int:
        """Counter bumped on every change; views use it to invalidate."""
        return self._version

    def get(self, entry_id: str) -> Entry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def __iter__(self) -> Iterator[Entry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        if isinstance(entry_id, Entry):
            entry_id = entry_id.id
        return any(e.id == entry_id for e in self._entries)

    # ── Views and listeners ────────────────────────────────────────

    def filter(self, predicate: Predicate | None = None) -> FilteredView:
        return FilteredView(self, predicate)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _changed(self) -> None:
        self._version += 1
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as exc:
                logger.warning(f"Index listener failed: {exc}")


class FilteredView:
    """Read-through projection of an :class:`EntryIndex`.

    The matching list is recomputed lazily whenever the predicate is
    replaced or the index version moves, so holders of a view never see
    stale results.
    """

    def __init__(self, index: EntryIndex, predicate: Predicate | None = None):
        self._index = index
        self._predicate: Predicate = predicate or _match_all
        self._cache: list[Entry] | None = None
        self._cache_version = -1

    @property
    def predicate(self) -> Predicate:
        return self._predicate

    def set_predicate(self, predicate: Predicate | None) -> None:
        self._predicate = predicate or _match_all
        self._cache = None

    @property
    def entries(self) -> list[Entry]:
        if self._cache is None or self._cache_version != self._index.version:
            self._cache = [e for e in self._index if self._predicate(e)]
            self._cache_version = self._index.version
        return list(self._cache)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, i: int) -> Entry:
        return self.entries[i]
