"""Entry store: durable, encrypted read/write of individual entry files.

Each entry is one file named ``<id><extension>`` in a flat directory. Saves
overwrite the whole file with base64 ciphertext; loads decrypt, falling back
to the raw text for legacy unencrypted files. Writes are not atomic: a crash
mid-write can leave a truncated record.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

import aiofiles
import aiofiles.os
from loguru import logger

from inkwell.core.config import DEFAULT_EXTENSION
from inkwell.core.exceptions import DecryptionError, EntryIOError, InitError

from .cipher import CipherCodec, get_codec
from .models import Entry, entry_id_for


class EntryStore:
    """Async file operations for entries in one directory.

    Args:
        directory: Where entry files live. Created by :meth:`ensure_directory`.
        codec: Cipher used for payloads. Defaults to the process-wide codec.
        extension: Record file extension, including the dot.
    """

    def __init__(
        self,
        directory: str | Path,
        codec: CipherCodec | None = None,
        extension: str = DEFAULT_EXTENSION,
    ):
        self.directory = Path(directory).expanduser()
        self.codec = codec or get_codec()
        self.extension = extension

    def ensure_directory(self) -> Path:
        """Create the entries directory if it is missing.

        Raises:
            InitError: If the directory cannot be created.
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InitError(f"Could not create data directory {self.directory}: {e}") from e
        return self.directory

    def path_for(self, entry_id: str) -> Path:
        return self.directory / f"{entry_id}{self.extension}"

    def new_entry(self, now: datetime | None = None) -> Entry:
        """Build the handle for an entry created at *now*, without touching disk."""
        moment = (now or datetime.now()).replace(microsecond=0)
        entry_id = entry_id_for(moment)
        return Entry(id=entry_id, path=self.path_for(entry_id), timestamp=moment)

    async def load(self, entry: Entry) -> str:
        """Read and decrypt an entry's content.

        Payloads that fail to decrypt are returned as-is; the caller can't
        tell a legacy plaintext file from an encrypted one.

        Raises:
            EntryIOError: If the file cannot be read or is not UTF-8 text.
        """
        try:
            async with aiofiles.open(entry.path, "rb") as f:
                raw = await f.read()
        except OSError as e:
            raise EntryIOError(f"Cannot read {entry.path}: {e}") from e

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EntryIOError(f"Cannot read {entry.path}: not valid UTF-8 ({e})") from e

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.codec.decrypt_text, text)
        except DecryptionError:
            logger.debug(f"{entry.id} is not encrypted, returning raw content")
            return text

    async def save(self, entry: Entry, content: str) -> None:
        """Encrypt *content* and overwrite the entry's file with it.

        Raises:
            EntryIOError: If the file cannot be written.
        """
        loop = asyncio.get_running_loop()
        encrypted = await loop.run_in_executor(None, self.codec.encrypt_text, content)
        try:
            async with aiofiles.open(entry.path, "w", encoding="utf-8") as f:
                await f.write(encrypted)
        except OSError as e:
            raise EntryIOError(f"Cannot write {entry.path}: {e}") from e
        logger.debug(f"Wrote {len(encrypted)} bytes to {entry.path.name}")

    async def delete(self, entry: Entry) -> bool:
        """Remove the entry's file. Returns False if it was already gone.

        Raises:
            EntryIOError: If the file exists but cannot be removed.
        """
        try:
            await aiofiles.os.remove(entry.path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise EntryIOError(f"Cannot delete {entry.path}: {e}") from e
        return True

    async def create(self, now: datetime | None = None) -> Entry:
        """Create an empty entry file stamped with the current second.

        A file already created within the same second is overwritten.

        Raises:
            EntryIOError: If the file cannot be written.
        """
        entry = self.new_entry(now)
        await self.write_empty(entry)
        return entry

    async def write_empty(self, entry: Entry) -> None:
        if entry.path.exists():
            logger.warning(f"Entry {entry.id} already exists, overwriting")
        try:
            async with aiofiles.open(entry.path, "w", encoding="utf-8") as f:
                await f.write("")
        except OSError as e:
            raise EntryIOError(f"Could not create entry file {entry.path}: {e}") from e
