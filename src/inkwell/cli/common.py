"""Shared setup logic for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click

from inkwell.core.config import Config
from inkwell.core.events import ERROR, Event, EventBus
from inkwell.core.exceptions import EntryIOError, EntryNotFoundError
from inkwell.journal import JournalSession

INKWELL_DIR = Path.home() / ".inkwell"
CONFIG_PATH = INKWELL_DIR / "config.yaml"

T = TypeVar("T")


def load_config(config_file: str | None = None, data_dir: str | None = None) -> Config:
    """Load config from *config_file*, falling back to ~/.inkwell/config.yaml."""
    if config_file is None and CONFIG_PATH.exists():
        config_file = str(CONFIG_PATH)
    return Config(config_file=config_file, data_dir=data_dir)


def run_session(config: Config, body: Callable[[JournalSession], Awaitable[T]]) -> T:
    """Open a session, run *body* against it, then flush and close.

    Errors reported on the session's bus are raised as a ClickException
    once the session has closed.
    """
    errors: list[str] = []

    def collect(event: Event) -> None:
        errors.append(event.payload.get("message", "Unknown error"))

    async def _main() -> T:
        bus = EventBus()
        bus.on(ERROR, collect)
        session = JournalSession.from_config(config, bus=bus)
        if not session.open():
            raise click.ClickException(f"Could not create data directory {session.store.directory}")
        await session.drain()
        try:
            return await body(session)
        finally:
            await session.close()

    try:
        result = asyncio.run(_main())
    except EntryNotFoundError as e:
        raise click.ClickException(str(e)) from e
    except EntryIOError as e:
        raise click.ClickException(str(e)) from e

    if errors:
        raise click.ClickException("; ".join(errors))
    return result
