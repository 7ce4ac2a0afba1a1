# parts/cli/interface.py
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

import click
from click_option_group import optgroup
import structlog

from parts import __version__ as app_version
from parts.cli.console_output import print_part_list
from parts.config.loader import ConfigResolver, validate_config_source
from parts.config.settings import ConfigDocument
from parts.core.discovery.walker import walk_part
from parts.core.output import CollectingSink, StreamSink
from parts.exceptions import ConfigError, PartsError
from parts.logging_setup import configure_logging

log = structlog.get_logger(__name__)

FATAL_EXIT_CODE = 2


@dataclass
class CliState:
    # shared between the group and its subcommands through `ctx.obj`.
    config_source: Optional[str] = None

    def load_document(self) -> ConfigDocument:
        return ConfigResolver().resolve(self.config_source)


@contextmanager
def _handled_errors():
    # turns application errors into a message on stderr and a non-zero exit code.
    try:
        yield
    except PartsError as e:
        log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(FATAL_EXIT_CODE)
    except Exception as e:
        log.critical("unexpected_critical_error_in_cli", message=str(e), exc_info=True)
        click.secho(f"Unexpected critical error: {e}. Please report this.", fg="red", err=True)
        sys.exit(FATAL_EXIT_CODE)


def _validate_config_option(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return validate_config_source(value)
    except ConfigError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@optgroup.group("Configuration Options", help="Where to read the parts definitions from.")
@optgroup.option(
    "-c", "--config", "config_source", metavar="PATH[:KEYS]", default=None,
    callback=_validate_config_option,
    help="Config file path, with optional keys, e.g. 'pyproject.toml:tool.parts'. "
         "The file must exist. Keys are separated with a dot and select a nested table. "
         "Default: the first of parts.toml, .parts.toml, Cargo.toml:metadata.parts, "
         "pyproject.toml:tool.parts that holds a valid config.",
)
@optgroup.group("Logging Options", help="Control diagnostic output (stderr).")
@optgroup.option("--verbose", "-v", "verbosity_level", count=True, help="Verbosity: -v info, -vv debug.")
@optgroup.option("--json-logs", "force_json_logs", is_flag=True, default=False, help="Force JSON logs.")
@click.version_option(version=app_version, prog_name="parts", help="Show version and exit.")
@click.pass_context
def main_cli_group(ctx: click.Context, config_source: Optional[str], verbosity_level: int, force_json_logs: bool):
    """parts: divide your project into multiple (possibly overlapping) parts,
    and list the files each part selects."""
    configure_logging(verbosity=verbosity_level, json_logs=force_json_logs)
    log.debug("cli_command_invoked", config_source=config_source, subcommand=ctx.invoked_subcommand)

    ctx.obj = CliState(config_source=config_source)


@main_cli_group.command("list")
@click.pass_obj
def list_command(state: CliState):
    """List all parts specified in the config file."""
    with _handled_errors():
        document = state.load_document()
        print_part_list(document)


@main_cli_group.command("walk")
@click.argument("part_name", metavar="[PART]", required=False)
@click.option("-s", "--sorted", "sort_output", is_flag=True, default=False,
              help="Sort files by name. Buffers the whole result set, which may be slow on large trees.")
@click.option("-j", "--threads", type=click.IntRange(min=0), default=0, show_default=True,
              help="Number of traversal threads (0: based on the CPU count).")
@click.option("--channel-capacity", type=click.IntRange(min=0), default=0, show_default=True,
              help="Maximum number of matches waiting to be printed (0: unbounded).")
@click.pass_obj
def walk_command(state: CliState, part_name: Optional[str], sort_output: bool, threads: int, channel_capacity: int):
    """Walk through all files in a part, and print them.

    PART defaults to the config's default part. As the traversal is
    performed in parallel, the output order is not deterministic unless
    --sorted is given.
    """
    with _handled_errors():
        document = state.load_document()
        part = document.require(part_name)
        stdout_sink = StreamSink(click.get_binary_stream("stdout"))
        if sort_output:
            collector = CollectingSink()
            errors = walk_part(part, collector, threads=threads, channel_capacity=channel_capacity)
            collector.drain_to(stdout_sink)
        else:
            errors = walk_part(part, stdout_sink, threads=threads, channel_capacity=channel_capacity)

    if errors:
        click.secho(
            f"Warning: {len(errors)} entries could not be read during the walk (see log output).",
            fg="yellow", err=True,
        )
