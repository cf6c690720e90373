"""inkwell edit: replace an entry's content."""

from __future__ import annotations

import click


@click.command()
@click.argument("entry_id")
@click.option("--text", "-t", default=None, help="New content (HTML). Read from stdin if omitted.")
@click.pass_obj
def edit(config, entry_id: str, text: str | None) -> None:
    """Replace ENTRY_ID's content and save it encrypted."""
    from inkwell.cli.common import run_session

    if text is None:
        text = click.get_text_stream("stdin").read()

    async def body(session):
        session.select(entry_id)
        await session.drain()
        if not session.enter_edit_mode():
            raise click.ClickException(f"Could not open {entry_id} for editing")
        session.notify_edit(text)

    run_session(config, body)
    click.echo(f"Saved {entry_id}")
