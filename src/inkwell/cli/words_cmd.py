"""inkwell words: count the words in an entry."""

from __future__ import annotations

import click


@click.command()
@click.argument("entry_id")
@click.pass_obj
def words(config, entry_id: str) -> None:
    """Print the number of words in ENTRY_ID, ignoring markup."""
    from inkwell.cli.common import run_session
    from inkwell.core.utils.text import word_count

    async def body(session):
        return await session.get_render_content(entry_id)

    click.echo(word_count(run_session(config, body)))
