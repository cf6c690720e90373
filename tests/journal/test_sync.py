"""Tests for JournalSession: select/load/edit/save/delete coordination."""

import asyncio

import pytest

from inkwell.core.config import Config
from inkwell.core.events import (
    ENTRY_CREATED,
    ENTRY_DELETE_FAILED,
    ENTRY_DELETED,
    ENTRY_LOAD_FAILED,
    ENTRY_LOADED,
    ENTRY_SAVE_FAILED,
    ENTRY_SAVED,
    ERROR,
    INDEX_REFRESHED,
    RENDER_UPDATED,
    WORD_COUNT,
)
from inkwell.core.exceptions import EntryIOError, EntryNotFoundError
from inkwell.core.utils.text import HIGHLIGHT_OPEN
from inkwell.journal import EntryStore, JournalSession, Mode

A = "2024-01-15_10-00-00"
B = "2024-02-02_09-00-00"


def _names(events):
    return [e.name for e in events]


def _last(events, name):
    matching = [e for e in events if e.name == name]
    assert matching, f"no {name} event"
    return matching[-1]


async def _open(session):
    assert session.open()
    await session.drain()


async def _select(session, entry_id):
    session.select(entry_id)
    await session.drain()


async def _wait_autosave(session):
    await asyncio.sleep(session.autosave.quiet_period * 3)
    await session.drain()


async def _editing(session, entry_id):
    await _select(session, entry_id)
    assert session.enter_edit_mode()


@pytest.fixture
def two_entries(write_entry):
    write_entry(A, "<p>entry a</p>")
    write_entry(B, "<p>entry b</p>")


class TestOpen:
    async def test_open_builds_index(self, session, two_entries, events):
        await _open(session)
        assert [e.id for e in session.list_entries()] == [B, A]
        assert _last(events, INDEX_REFRESHED).payload["count"] == 2

    async def test_open_failure_runs_degraded(self, tmp_path, bus, events):
        blocker = tmp_path / "file"
        blocker.write_text("")
        session = JournalSession(EntryStore(blocker / "entries"), bus=bus)

        assert session.open() is False
        assert session.degraded
        assert _last(events, ERROR).payload["message"] == "Could not create data directory."

    def test_from_config(self, tmp_path):
        config = Config(data_dir=str(tmp_path), defaults={"autosave": {"quiet_period": 0.25}})
        session = JournalSession.from_config(config)
        assert session.store.directory == tmp_path / "diary_entries"
        assert session.autosave.quiet_period == 0.25


class TestSelect:
    @pytest.mark.smoke
    async def test_select_loads_into_viewing(self, session, two_entries, events):
        await _open(session)
        state = session.select(A)
        assert state.mode is Mode.LOADING
        assert state.current.id == A

        await session.drain()
        assert session.state.mode is Mode.VIEWING
        assert session.state.content == "<p>entry a</p>"
        assert not session.dirty
        assert _last(events, ENTRY_LOADED).payload["entry_id"] == A
        assert _last(events, WORD_COUNT).payload["count"] == 2

    async def test_unknown_id_raises(self, session, two_entries):
        await _open(session)
        with pytest.raises(EntryNotFoundError, match="No entry"):
            session.select("1999-01-01_00-00-00")

    async def test_select_none_clears(self, session, two_entries):
        await _open(session)
        await _select(session, A)
        session.select(None)
        assert session.state.mode is Mode.EMPTY
        assert session.current is None

    async def test_superseded_load_is_dropped(self, session, two_entries):
        await _open(session)
        session.select(A)
        session.select(B)
        await session.drain()
        assert session.current.id == B
        assert session.state.content == "<p>entry b</p>"

    async def test_load_failure_goes_empty(self, session, two_entries, entries_dir, events):
        await _open(session)
        (entries_dir / f"{A}.html").unlink()
        await _select(session, A)

        assert session.state.mode is Mode.EMPTY
        assert ENTRY_LOAD_FAILED in _names(events)
        assert _last(events, ERROR).payload["message"] == "Could not load entry."

    async def test_undecodable_file_fails_load_untouched(self, session, entries_dir, events):
        path = entries_dir / f"{A}.html"
        path.write_bytes(b"\xff<p>hi</p>")
        await _open(session)
        await _select(session, A)

        assert session.state.mode is Mode.EMPTY
        assert session.notify_edit("overwrite") is False
        await session.close()
        assert _last(events, ERROR).payload["message"] == "Could not load entry."
        assert path.read_bytes() == b"\xff<p>hi</p>"

    async def test_legacy_plaintext_loads_unchanged(self, session, write_entry):
        write_entry(A, "<p>written before encryption</p>", encrypted=False)
        await _open(session)
        await _select(session, A)
        assert session.state.content == "<p>written before encryption</p>"


class TestEditing:
    async def test_edits_ignored_outside_edit_mode(self, session, two_entries):
        await _open(session)
        await _select(session, A)
        assert session.notify_edit("typed in read mode") is False
        assert not session.dirty
        assert not session.autosave.pending

    async def test_enter_edit_mode_needs_loaded_entry(self, session, two_entries):
        await _open(session)
        assert session.enter_edit_mode() is False
        session.select(A)
        assert session.enter_edit_mode() is False  # still loading
        await session.drain()
        assert session.enter_edit_mode() is True
        assert session.state.mode is Mode.EDITING

    async def test_notify_edit_marks_dirty(self, session, two_entries, events):
        await _open(session)
        await _editing(session, A)
        assert session.notify_edit("<p>one two three</p>")
        assert session.dirty
        assert session.autosave.pending
        assert _last(events, WORD_COUNT).payload["count"] == 3

    @pytest.mark.smoke
    async def test_burst_of_edits_saves_once_with_last_content(self, session, store, two_entries):
        await _open(session)
        await _editing(session, A)
        for text in ["h", "he", "hel", "hell", "hello"]:
            session.notify_edit(text)
            await asyncio.sleep(session.autosave.quiet_period / 10)

        await _wait_autosave(session)
        assert store.saves == [("save", A, "hello")]
        assert not session.dirty
        assert await store.load(session.current) == "hello"

    @pytest.mark.smoke
    async def test_edit_during_inflight_save_keeps_dirty(self, session, store, two_entries, events):
        await _open(session)
        await _editing(session, A)
        store.gate = asyncio.Event()

        session.notify_edit("first")
        session.flush()
        await asyncio.sleep(0)
        session.notify_edit("first and second")

        store.gate.set()
        await session.drain()
        assert session.dirty
        assert _last(events, ENTRY_SAVED).payload["stale"] is True

        await _wait_autosave(session)
        assert [s[2] for s in store.saves] == ["first", "first and second"]
        assert not session.dirty
        assert await store.load(session.current) == "first and second"

    async def test_queued_newer_save_keeps_dirty_when_content_reverts(self, session, store, two_entries):
        await _open(session)
        await _editing(session, A)

        session.notify_edit("x")
        first = session.flush()
        session.notify_edit("y")
        second = session.flush()
        session.notify_edit("x")

        await asyncio.gather(first, second)
        assert session.dirty

        await _wait_autosave(session)
        await session.close()
        assert [s[2] for s in store.saves] == ["x", "y", "x"]
        assert not session.dirty
        assert await store.load(session.current) == "x"

    async def test_failed_save_stays_dirty_until_retry(self, session, store, two_entries, events):
        await _open(session)
        await _editing(session, A)
        store.fail_saves = True
        session.notify_edit("unsaved words")
        await _wait_autosave(session)

        assert session.dirty
        assert ENTRY_SAVE_FAILED in _names(events)
        assert _last(events, ERROR).payload["message"] == "Could not save entry."

        store.fail_saves = False
        session.flush()
        await session.drain()
        assert not session.dirty
        assert await store.load(session.current) == "unsaved words"

    async def test_exit_edit_mode_flushes_and_renders(self, session, store, two_entries, events):
        await _open(session)
        await _editing(session, A)
        session.notify_edit("<p>final</p>")

        assert session.exit_edit_mode()
        assert session.state.mode is Mode.VIEWING
        assert not session.autosave.pending
        assert _last(events, RENDER_UPDATED).payload["markup"] == "<p>final</p>"

        await session.drain()
        assert store.saves == [("save", A, "<p>final</p>")]
        assert not session.dirty

    async def test_exit_edit_mode_clean_does_not_save(self, session, store, two_entries):
        await _open(session)
        await _editing(session, A)
        assert session.exit_edit_mode()
        await session.drain()
        assert store.saves == []

    async def test_exit_edit_mode_outside_edit_mode(self, session):
        assert session.exit_edit_mode() is False


class TestFlushBeforeLoad:
    @pytest.mark.smoke
    async def test_switch_saves_outgoing_before_loading_incoming(self, session, store, two_entries):
        await _open(session)
        await _editing(session, A)
        session.notify_edit("edited a")
        store.calls.clear()

        session.select(B)
        assert not session.autosave.pending
        await session.drain()

        assert store.calls == [("save", A, "edited a"), ("load", B)]
        entry_a = session.index.get(A)
        assert await store.load(entry_a) == "edited a"

    async def test_reselecting_outgoing_sees_flushed_content(self, session, two_entries):
        await _open(session)
        await _editing(session, A)
        session.notify_edit("edited a")

        session.select(B)
        session.select(A)
        await session.drain()

        assert session.current.id == A
        assert session.state.content == "edited a"
        assert not session.dirty

    async def test_switch_without_edits_leaves_file_alone(self, session, store, two_entries, entries_dir):
        await _open(session)
        await _select(session, A)
        before = (entries_dir / f"{A}.html").read_bytes()

        await _select(session, B)
        assert store.saves == []
        assert (entries_dir / f"{A}.html").read_bytes() == before


class TestCreate:
    @pytest.mark.smoke
    async def test_create_edit_autosave_end_to_end(self, session, store, codec, write_entry, entries_dir, events):
        write_entry("2023-06-01_08-00-00", "<p>older</p>")
        await _open(session)

        entry_id = session.create_entry()
        assert entry_id == "2024-01-15_10-30-00"
        assert session.state.mode is Mode.EDITING
        assert session.state.content == ""
        assert session.list_entries()[0].id == entry_id

        session.notify_edit("hello")
        await _wait_autosave(session)

        path = entries_dir / f"{entry_id}.html"
        on_disk = path.read_text()
        assert on_disk != "hello"
        assert codec.decrypt_text(on_disk) == "hello"
        assert ENTRY_CREATED in _names(events)

        await _select(session, "2023-06-01_08-00-00")
        assert path.read_text() == on_disk

    async def test_create_without_edits_leaves_empty_file(self, session, entries_dir):
        await _open(session)
        entry_id = session.create_entry()
        await session.close()
        assert (entries_dir / f"{entry_id}.html").read_text() == ""

    async def test_create_flushes_previous_entry(self, session, store, two_entries):
        await _open(session)
        await _editing(session, A)
        session.notify_edit("left behind")
        session.create_entry()
        await session.drain()
        assert ("save", A, "left behind") in store.saves

    async def test_create_failure_rolls_back(self, session, entries_dir, events):
        await _open(session)
        entries_dir.rmdir()

        entry_id = session.create_entry()
        await session.drain()

        assert entry_id not in session.index
        assert session.state.mode is Mode.EMPTY
        assert _last(events, ERROR).payload["message"] == "Could not create new entry file."


class TestDelete:
    @pytest.mark.smoke
    async def test_delete_current(self, session, two_entries, entries_dir, events):
        await _open(session)
        await _select(session, A)
        session.delete_current()
        await session.drain()

        assert not (entries_dir / f"{A}.html").exists()
        assert A not in session.index
        assert session.state.mode is Mode.EMPTY
        assert _last(events, ENTRY_DELETED).payload == {"entry_id": A, "existed": True}

    async def test_delete_cancels_pending_autosave(self, session, two_entries, entries_dir):
        await _open(session)
        await _editing(session, A)
        session.notify_edit("about to go")
        session.delete_current()
        assert not session.autosave.pending

        await _wait_autosave(session)
        assert not (entries_dir / f"{A}.html").exists()

    async def test_delete_other_entry_keeps_selection(self, session, two_entries):
        await _open(session)
        await _select(session, A)
        session.delete_entry(B)
        await session.drain()
        assert session.current.id == A
        assert [e.id for e in session.list_entries()] == [A]

    async def test_delete_already_missing_file(self, session, two_entries, entries_dir, events):
        await _open(session)
        (entries_dir / f"{B}.html").unlink()
        session.delete_entry(B)
        await session.drain()
        assert B not in session.index
        assert _last(events, ENTRY_DELETED).payload["existed"] is False

    async def test_delete_failure_leaves_state(self, session, store, two_entries, events, monkeypatch):
        async def broken_delete(entry):
            raise EntryIOError("permission denied")

        await _open(session)
        await _select(session, A)
        monkeypatch.setattr(store, "delete", broken_delete)

        session.delete_current()
        await session.drain()

        assert session.current.id == A
        assert session.state.mode is Mode.VIEWING
        assert A in session.index
        assert ENTRY_DELETE_FAILED in _names(events)

    def test_delete_current_without_selection(self, session):
        assert session.delete_current() is None

    async def test_delete_unknown_id_raises(self, session, two_entries):
        await _open(session)
        with pytest.raises(EntryNotFoundError):
            session.delete_entry("nope")


class TestSearchAndRender:
    async def test_search_filters_list(self, session, two_entries):
        await _open(session)
        session.set_search_term("jan")
        assert [e.title for e in session.list_entries()] == ["January 15, 2024"]
        session.set_search_term("")
        assert len(session.list_entries()) == 2

    async def test_search_highlights_open_entry(self, session, write_entry, events):
        write_entry(A, "<p>January was cold</p>")
        await _open(session)
        await _select(session, A)

        session.set_search_term("jan")
        markup = _last(events, RENDER_UPDATED).payload["markup"]
        assert f"{HIGHLIGHT_OPEN}Jan</span>" in markup
        assert markup.startswith("<p>")

    async def test_render_uses_unsaved_edits(self, session, two_entries):
        await _open(session)
        await _editing(session, A)
        session.notify_edit("<p>draft words</p>")
        assert await session.get_render_content(A) == "<p>draft words</p>"

    async def test_render_other_entry_from_disk(self, session, two_entries):
        await _open(session)
        await _select(session, A)
        session.set_search_term("entry")
        markup = await session.get_render_content(B)
        assert markup == f"<p>{HIGHLIGHT_OPEN}entry</span> b</p>"

    async def test_render_missing_file_raises(self, session, two_entries, entries_dir):
        await _open(session)
        (entries_dir / f"{B}.html").unlink()
        with pytest.raises(EntryIOError):
            await session.get_render_content(B)


class TestClose:
    async def test_close_flushes_unsaved_edits(self, session, store, two_entries):
        await _open(session)
        await _editing(session, A)
        session.notify_edit("last words")
        await session.close()

        assert not session.autosave.pending
        assert session.pending_operations == 0
        assert await store.load(session.current) == "last words"
