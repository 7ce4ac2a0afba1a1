# parts/cli/console_output.py
"""
Human-readable listing of the parts found in a config document.
"""
import click
import structlog

from parts.config.loader import split_path_and_keys
from parts.config.settings import ConfigDocument

log = structlog.get_logger(__name__)


def _count_header(count: int) -> str:
    if count == 0:
        return "Found no part in file: "
    if count == 1:
        return "Found 1 part in file: "
    return f"Found {count} parts in file: "


def print_part_list(document: ConfigDocument):
    """
    Prints where the document was found (file, then nested keys) and the name
    of every part, marking the default one. Styling is dropped by click when
    stdout is not a terminal.
    """
    path, keys = split_path_and_keys(document.origin)
    location = click.style(path, underline=True)
    for key in keys:
        location += " -> " + click.style(key, bold=True)
    click.echo(_count_header(len(document.parts)) + location)

    if not document.parts:
        return

    click.echo("")
    for name in document.parts:
        if document.is_default(name):
            click.secho(f"{name} (default)", bold=True)
        else:
            click.echo(name)
    log.debug("part_list_printed", origin=document.origin, count=len(document.parts))
