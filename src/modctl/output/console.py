"""Rich Console factory and theme for modctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``render_report() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

MOD_THEME = Theme(
    {
        "mod.ok": "bold green",
        "mod.warning": "bold yellow",
        "mod.op": "bold cyan",
        "mod.key": "dim",
        "mod.unit": "bold blue",
        "mod.version": "dim",
        "mod.state.registered": "dim",
        "mod.state.enabled": "green",
        "mod.state.disabled": "yellow",
        "mod.removed": "red",
    }
)

_STATE_STYLES: dict[str, str] = {
    "registered": "mod.state.registered",
    "enabled": "mod.state.enabled",
    "disabled": "mod.state.disabled",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=MOD_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_state(state: str) -> str:
    """Return the Rich style name for a unit state."""
    return _STATE_STYLES.get(state, "")
