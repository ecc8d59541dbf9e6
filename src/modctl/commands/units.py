"""Commands: inspect, plan and exercise the unit lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from modctl.commands._base import ModCommand

if TYPE_CHECKING:
    from modctl.commands._context import AppContext


@click.command(
    "list",
    cls=ModCommand,
    examples="""\
  modctl list
  modctl --dir ./units list
  modctl --json list""",
)
@click.pass_obj
def list_cmd(app: AppContext) -> None:
    """Discover units and list them with versions and dependencies."""
    app.emit(app.orchestrator.discover())


@click.command(
    cls=ModCommand,
    examples="""\
  modctl plan
  modctl -v plan""",
)
@click.pass_obj
def plan(app: AppContext) -> None:
    """Resolve dependencies and show the activation plan without enabling."""
    orchestrator = app.orchestrator
    orchestrator.discover()
    app.emit(orchestrator.plan())


@click.command(
    cls=ModCommand,
    examples="""\
  modctl run
  modctl run --reload
  modctl --json run""",
)
@click.option(
    "--reload",
    "with_reload",
    is_flag=True,
    help="Reload everything, then the enabled set, before shutting down.",
)
@click.pass_obj
def run(app: AppContext, with_reload: bool) -> None:
    """Enable every unit, optionally reload, then disable everything."""
    orchestrator = app.orchestrator
    reports = [orchestrator.discover()]
    if not app.settings.lifecycle.enable_on_start:
        app.emit_many(reports)
        return

    reports.append(orchestrator.enable_all())
    if with_reload:
        reports.append(orchestrator.reload_all())
        reports.append(orchestrator.reload_enabled_only())
    reports.append(orchestrator.disable_all())
    app.emit_many(reports)
