"""Inkwell CLI: list, create, show, edit, delete and count diary entries."""

import click

from inkwell import __version__

from .common import load_config


@click.group()
@click.version_option(version=__version__, package_name="inkwell")
@click.option("--data-dir", type=click.Path(file_okay=False), default=None, help="Base data directory.")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), default=None, help="YAML/JSON config file.")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, data_dir: str | None, config_file: str | None, verbose: bool) -> None:
    """Inkwell: your encrypted diary."""
    from inkwell.core.utils.logging import setup_logging

    config = load_config(config_file=config_file, data_dir=data_dir)
    level = "DEBUG" if verbose else config.get("logging.level", "WARNING")
    setup_logging(level=level, log_file=config.get("logging.file"))
    ctx.obj = config


# Register subcommands
from .delete_cmd import delete
from .edit_cmd import edit
from .list_cmd import list_entries
from .new_cmd import new
from .show_cmd import show
from .words_cmd import words

main.add_command(list_entries)
main.add_command(new)
main.add_command(show)
main.add_command(edit)
main.add_command(delete)
main.add_command(words)
