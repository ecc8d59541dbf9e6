"""Subcommand modules for modctl.

Provides register_commands() which uses deferred imports to keep
``modctl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from modctl.commands.units import list_cmd, plan, run

    cli.add_command(list_cmd)
    cli.add_command(plan)
    cli.add_command(run)
