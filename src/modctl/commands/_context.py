"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``.  Provides lazy Orchestrator construction and centralized
report emission.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from modctl.output.formatters import OutputSettings, format_report

if TYPE_CHECKING:
    from modctl.config.settings import ModSettings
    from modctl.services.orchestrator import Orchestrator
    from modctl.services.result import OperationReport


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``.  The orchestrator is
    lazily built on first use so ``--help`` and ``--version`` never touch
    discovery.
    """

    def __init__(self, settings: ModSettings) -> None:
        self.settings = settings
        self._orchestrator: Orchestrator | None = None

        from modctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def orchestrator(self) -> Orchestrator:
        """The orchestrator instance (created lazily on first access)."""
        if self._orchestrator is None:
            from modctl.services.orchestrator import Orchestrator

            self._orchestrator = Orchestrator.from_settings(self.settings)
        return self._orchestrator

    @property
    def output_settings(self) -> OutputSettings:
        return OutputSettings(
            json_output=self.settings.json_output,
            verbose=self.settings.verbose,
        )

    def emit(self, report: OperationReport) -> None:
        """Format and write a report to stdout.

        Diagnostics are part of the report; they never change the exit code.
        """
        click.echo(format_report(report, settings=self.output_settings))

    def emit_many(self, reports: list[OperationReport]) -> None:
        """Write several reports; a single JSON array in ``--json`` mode."""
        if self.settings.json_output:
            body = ",\n".join(report.model_dump_json(indent=2) for report in reports)
            click.echo(f"[\n{body}\n]")
            return
        for index, report in enumerate(reports):
            if index:
                click.echo()
            self.emit(report)
