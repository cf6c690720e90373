"""Encrypted diary entries: cipher, index, store, autosave and the session core.

Provides the entry handle and session models, the AES record codec, an
in-memory index with live filtered views, an async file store, and
:class:`JournalSession`, which ties them together on an asyncio loop.
"""

from .autosave import AutosaveScheduler
from .cipher import CipherCodec
from .index import EntryIndex, FilteredView, title_filter
from .models import Entry, Mode, Outcome, SessionState
from .store import EntryStore
from .sync import JournalSession

__all__ = [
    "AutosaveScheduler",
    "CipherCodec",
    "Entry",
    "EntryIndex",
    "EntryStore",
    "FilteredView",
    "JournalSession",
    "Mode",
    "Outcome",
    "SessionState",
    "title_filter",
]
