"""inkwell new: create an entry."""

from __future__ import annotations

import click


@click.command()
@click.option("--text", "-t", default=None, help="Initial content (HTML).")
@click.pass_obj
def new(config, text: str | None) -> None:
    """Create a new entry stamped with the current time."""
    from inkwell.cli.common import run_session

    async def body(session):
        entry_id = session.create_entry()
        if text:
            session.notify_edit(text)
        return entry_id

    entry_id = run_session(config, body)
    click.echo(entry_id)
