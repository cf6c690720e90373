"""Fixtures for journal tests: a recording store and a fast-autosave session."""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from inkwell.core.events import Event, EventBus
from inkwell.core.exceptions import EntryIOError
from inkwell.journal import CipherCodec, EntryIndex, EntryStore, JournalSession

QUIET = 0.1


class RecordingStore(EntryStore):
    """EntryStore that logs calls and can hold or fail saves on demand."""

    def __init__(self, directory, **kwargs):
        super().__init__(directory, **kwargs)
        self.calls: list[tuple] = []
        self.gate: asyncio.Event | None = None
        self.fail_saves = False

    async def load(self, entry):
        self.calls.append(("load", entry.id))
        return await super().load(entry)

    async def save(self, entry, content):
        self.calls.append(("save", entry.id, content))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_saves:
            raise EntryIOError("disk full")
        await super().save(entry, content)

    @property
    def saves(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "save"]


@pytest.fixture
def codec():
    return CipherCodec()


@pytest.fixture
def entries_dir(tmp_path):
    d = tmp_path / "diary_entries"
    d.mkdir()
    return d


@pytest.fixture
def store(entries_dir, codec):
    return RecordingStore(entries_dir, codec=codec)


@pytest.fixture
def write_entry(entries_dir, codec):
    """Write an entry file directly; encrypted unless told otherwise."""

    def _write(entry_id: str, content: str, encrypted: bool = True):
        path = entries_dir / f"{entry_id}.html"
        path.write_text(codec.encrypt_text(content) if encrypted else content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def events(bus):
    received: list[Event] = []
    bus.on_all(received.append)
    return received


@pytest.fixture
def session(store, bus):
    return JournalSession(
        store,
        index=EntryIndex(store.directory),
        bus=bus,
        quiet_period=QUIET,
        clock=lambda: datetime(2024, 1, 15, 10, 30, 0),
    )
