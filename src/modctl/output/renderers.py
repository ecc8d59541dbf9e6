"""Operation-specific Rich renderers for OperationReport.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``report.op`` in :func:`render_report`.
Unknown ops fall through to a generic renderer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from modctl.output.console import create_console, get_output, style_for_state

if TYPE_CHECKING:
    from rich.console import Console

    from modctl.services.result import OperationReport, UnitSummary


# ── Public API ────────────────────────────────────────────────────────


def render_report(report: OperationReport, *, verbose: bool = False) -> str:
    """Render an OperationReport to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()
    renderer = _OP_RENDERERS.get(report.op, _render_generic)
    renderer(report, console, verbose=verbose)
    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, report: OperationReport) -> None:
    """Print the OK/WARN status line."""
    if report.ok:
        label = Text("OK", style="mod.ok")
    else:
        label = Text("WARN", style="mod.warning")
    op = Text(f"  {report.op}", style="mod.op")
    console.print(Text.assemble(label, op))


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="mod.key")
    if isinstance(value, list):
        v = Text(", ".join(str(item) for item in value) or "-")
    else:
        v = Text(str(value))
    console.print(Text.assemble(k, v))


def _unit_table(units: list[UnitSummary], *, verbose: bool = False) -> Table:
    """Build a Rich Table for registered units."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Unit", style="mod.unit", no_wrap=True)
    table.add_column("Version", style="mod.version")
    table.add_column("State")
    table.add_column("Depends on")
    if verbose:
        table.add_column("Soft")

    for unit in units:
        row: list[Text] = [
            Text(unit.name),
            Text(unit.version),
            Text(unit.state, style=style_for_state(unit.state)),
            Text(", ".join(unit.dependencies) or "-"),
        ]
        if verbose:
            row.append(Text(", ".join(unit.soft_dependencies) or "-"))
        table.add_row(*row)
    return table


def _render_diagnostics(console: Console, report: OperationReport, *, verbose: bool) -> None:
    if not report.diagnostics:
        return
    console.print()
    console.print(Text("diagnostics:", style="bold"))
    for diagnostic in report.diagnostics:
        line = Text("  ")
        line.append(str(diagnostic.code), style="mod.warning")
        line.append(f" [{diagnostic.unit}] ")
        line.append(diagnostic.message)
        console.print(line)
        if verbose and diagnostic.detail:
            for key, value in diagnostic.detail.items():
                console.print(Text(f"    {key}: {value}", style="dim"))


# ── Renderers ─────────────────────────────────────────────────────────


def _render_units(report: OperationReport, console: Console, *, verbose: bool = False) -> None:
    """Render a registry listing."""
    _status_line(console, report)
    console.print(Text(f"  Units found: {len(report.units)}", style="mod.key"))
    if report.units:
        console.print(_unit_table(report.units, verbose=verbose))
    _render_diagnostics(console, report, verbose=verbose)


def _render_plan(report: OperationReport, console: Console, *, verbose: bool = False) -> None:
    """Render the activation plan and quarantined units."""
    _status_line(console, report)
    plan = (report.meta or {}).get("activation_plan", [])
    for position, name in enumerate(plan, start=1):
        console.print(Text(f"  {position:>3}. {name}"))
    if report.removed:
        console.print()
        console.print(Text("removed:", style="bold"))
        for name in report.removed:
            console.print(Text(f"  - {name}", style="mod.removed"))
    _render_diagnostics(console, report, verbose=verbose)


def _render_activation(report: OperationReport, console: Console, *, verbose: bool = False) -> None:
    """Render the outcome of an enable, disable or reload operation."""
    _status_line(console, report)
    if report.disabled:
        _field(console, "disabled", report.disabled)
    _field(console, "enabled", report.enabled)
    if report.removed:
        _field(console, "removed", report.removed)
    if verbose and report.meta:
        for key, value in report.meta.items():
            _field(console, key, value)
    _render_diagnostics(console, report, verbose=verbose)


def _render_generic(report: OperationReport, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line plus whichever lists are populated."""
    _status_line(console, report)
    for key in ("enabled", "disabled", "removed"):
        values = getattr(report, key)
        if values:
            _field(console, key, values)
    _render_diagnostics(console, report, verbose=verbose)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "list": _render_units,
    "register": _render_units,
    "discover": _render_units,
    "plan": _render_plan,
    "enable_all": _render_activation,
    "disable_all": _render_activation,
    "reload_all": _render_activation,
    "reload_enabled_only": _render_activation,
    "enable": _render_activation,
    "disable": _render_activation,
}
