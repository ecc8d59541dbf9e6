"""OperationReport — the outcome of an orchestrator operation.

INVARIANT: Bulk operations always return a report, never raise for
unit-level failures. The CLI and any embedding application consume this type.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, computed_field

from modctl.domain.errors import Diagnostic, DiagnosticCode


class UnitSummary(BaseModel):
    """Display snapshot of one registered unit."""

    model_config = {"frozen": True}

    name: str
    version: str
    state: str
    dependencies: list[str] = Field(default_factory=list)
    soft_dependencies: list[str] = Field(default_factory=list)


class OperationReport(BaseModel):
    """Result of a single orchestrator operation.

    Attributes:
        op: Name of the operation (e.g. ``"enable_all"``).
        enabled: Units enabled by this operation, in activation order.
        disabled: Units disabled by this operation, in deactivation order.
        removed: Units quarantined by dependency resolution.
        diagnostics: Every non-fatal failure encountered.
        units: Registry snapshot, for listing operations.
        meta: Optional metadata (activation plan, counts, etc.).
    """

    model_config = {"frozen": True}

    op: str
    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    units: list[UnitSummary] = Field(default_factory=list)
    meta: dict[str, Any] | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ok(self) -> bool:
        """True when no diagnostic was recorded."""
        return not self.diagnostics

    def by_code(self, code: DiagnosticCode | str) -> list[Diagnostic]:
        """Diagnostics with the given code."""
        return [d for d in self.diagnostics if d.code == code]
