"""Rich/JSON output helpers.

The CLI renders OperationReport for humans (Rich tables and colors) or
machines (--json). The formatter layer adapts a report to the requested mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from modctl.output.renderers import render_report

if TYPE_CHECKING:
    from modctl.services.result import OperationReport


@dataclass(frozen=True)
class OutputSettings:
    """Output mode selected by global CLI flags."""

    json_output: bool = False
    verbose: bool = False


def format_report(report: OperationReport, *, settings: OutputSettings | None = None) -> str:
    """Format an OperationReport for display."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return report.model_dump_json(indent=2)
    return render_report(report, verbose=settings.verbose)
