"""Pluggy hook specifications for lifecycle observers.

Observers are the pluggable reporting sink: they receive every registration,
enable/disable outcome and diagnostic. They never influence the lifecycle.
"""

from __future__ import annotations

from typing import Any

import pluggy

PROJECT_NAME = "modctl"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ModctlHookSpec:
    """Hook specifications for the modctl observer system."""

    @hookspec
    def modctl_unit_registered(self, name: str, version: str) -> None:
        """Called after a unit is inserted into the registry."""

    @hookspec
    def modctl_unit_enabled(self, name: str, version: str) -> None:
        """Called after a unit reaches the enabled state."""

    @hookspec
    def modctl_unit_enable_failed(self, name: str, version: str, reason: str) -> None:
        """Called when a unit could not be enabled."""

    @hookspec
    def modctl_unit_disabled(self, name: str, version: str) -> None:
        """Called after a unit is disabled."""

    @hookspec
    def modctl_diagnostic(self, diagnostic: dict[str, Any]) -> None:
        """Called for every recorded diagnostic (``Diagnostic.model_dump()``)."""
