"""inkwell show: print an entry's decrypted content."""

from __future__ import annotations

import click


@click.command()
@click.argument("entry_id")
@click.option("--highlight", "term", default="", help="Highlight matches of this text.")
@click.pass_obj
def show(config, entry_id: str, term: str) -> None:
    """Print ENTRY_ID's content as markup."""
    from inkwell.cli.common import run_session

    async def body(session):
        session.set_search_term(term)
        return await session.get_render_content(entry_id)

    click.echo(run_session(config, body))
