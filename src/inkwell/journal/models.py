"""Core data models for the diary: entry handles, session state, task outcomes.

Entry content never lives on these values. An :class:`Entry` is a handle
to a file; the body is fetched on demand by the store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

FILE_NAME_FORMAT = "%Y-%m-%d_%H-%M-%S"
TITLE_FORMAT = "%B %d, %Y"
TIME_FORMAT = "%H:%M"


def entry_id_for(moment: datetime) -> str:
    """Filename stem (and entry id) for an entry created at *moment*."""
    return moment.strftime(FILE_NAME_FORMAT)


def parse_entry_id(entry_id: str) -> datetime | None:
    """Parse an entry id back to its timestamp, or None for foreign names."""
    try:
        return datetime.strptime(entry_id, FILE_NAME_FORMAT)
    except ValueError:
        return None


@dataclass(frozen=True)
class Entry:
    """A handle for one diary record.

    Two handles are equal when their ids are. The timestamp of a file whose
    name doesn't parse is the clock time at index-build time, so it is not
    stable across refreshes and takes no part in equality.

    Attributes:
        id: Filename stem, ``YYYY-MM-DD_HH-MM-SS`` for entries we create.
        path: Location of the record file.
        timestamp: Creation time parsed from ``id`` (or the fallback).
    """

    id: str
    path: Path = field(compare=False)
    timestamp: datetime = field(compare=False)

    @classmethod
    def from_path(cls, path: Path, now: datetime | None = None) -> Entry:
        path = Path(path)
        timestamp = parse_entry_id(path.stem)
        if timestamp is None:
            timestamp = now or datetime.now()
        return cls(id=path.stem, path=path, timestamp=timestamp)

    @property
    def title(self) -> str:
        """Long-form date, e.g. ``January 15, 2024``."""
        return self.timestamp.strftime(TITLE_FORMAT)

    @property
    def time(self) -> str:
        return self.timestamp.strftime(TIME_FORMAT)

    def __repr__(self) -> str:
        return f"Entry(id='{self.id}', title='{self.title}')"


class Mode(Enum):
    """Where the session is in its select/load/edit cycle."""

    EMPTY = "empty"  # Nothing selected
    LOADING = "loading"  # Selected, content still in flight
    VIEWING = "viewing"  # Read mode
    EDITING = "editing"  # Edit mode, possibly dirty


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the journal session.

    The session replaces this value wholesale on every transition; nothing
    mutates it in place.

    Attributes:
        current: The selected entry, or None.
        mode: Position in the select/load/edit cycle.
        dirty: Whether ``content`` differs from what was last saved.
        content: Latest editor content for ``current`` (None until loaded).
    """

    current: Entry | None = None
    mode: Mode = Mode.EMPTY
    dirty: bool = False
    content: str | None = None

    @property
    def is_editing(self) -> bool:
        return self.mode is Mode.EDITING


EMPTY_STATE = SessionState()


@dataclass(frozen=True)
class Outcome:
    """Result of a background operation: a value or the error that stopped it."""

    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def from_task(cls, task: asyncio.Task) -> Outcome:
        """Collect a finished task's result without re-raising its exception."""
        error = task.exception()
        if error is not None:
            return cls(error=error)
        return cls(value=task.result())
