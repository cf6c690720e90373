"""inkwell delete: remove an entry."""

from __future__ import annotations

import click


@click.command()
@click.argument("entry_id")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@click.pass_obj
def delete(config, entry_id: str, yes: bool) -> None:
    """Delete ENTRY_ID."""
    from inkwell.cli.common import run_session

    if not yes:
        click.confirm("Are you sure you want to delete this entry?", abort=True)

    async def body(session):
        await session.delete_entry(entry_id)

    run_session(config, body)
    click.echo(f"Deleted {entry_id}")
