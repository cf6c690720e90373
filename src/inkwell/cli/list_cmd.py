"""inkwell list: show entries newest first."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table


@click.command("list")
@click.option("--search", "-s", default="", help="Only entries whose date contains this text.")
@click.pass_obj
def list_entries(config, search: str) -> None:
    """List diary entries, newest first."""
    from inkwell.cli.common import run_session

    async def body(session):
        session.set_search_term(search)
        return session.list_entries()

    entries = run_session(config, body)
    if not entries:
        click.echo("No entries found.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Time", style="dim")
    for entry in entries:
        table.add_row(entry.id, entry.title, entry.time)
    Console().print(table)
