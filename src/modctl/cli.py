"""Root CLI group for modctl with global flags and command registration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click

from modctl import __version__
from modctl.commands import register_commands
from modctl.commands._base import ModGroup
from modctl.commands._context import AppContext
from modctl.config.settings import ModSettings


@click.group(cls=ModGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="modctl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--dir",
    "unit_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory of single-file units (overrides [discovery] local_dir).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    unit_dir: Path | None,
) -> None:
    """modctl — module lifecycle orchestration."""
    ctx.ensure_object(dict)
    overrides: dict[str, Any] = {}
    if unit_dir is not None:
        overrides["unit_dir"] = unit_dir
    settings = ModSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
        **overrides,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
