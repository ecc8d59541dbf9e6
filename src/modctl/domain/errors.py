"""Diagnostics and exceptions for the unit lifecycle.

INVARIANT: No unit-level failure aborts a bulk operation.
Failures are scoped to the smallest affected unit and surface as
:class:`Diagnostic` records next to the list of enabled units.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class DiagnosticCode(StrEnum):
    """Taxonomy of non-fatal lifecycle failures."""

    DUPLICATE_UNIT = "duplicate_unit"
    MISSING_DEPENDENCY = "missing_dependency"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    MISSING_HARD_DEPENDENCY = "missing_hard_dependency"
    CALLBACK_FAILURE = "callback_failure"
    PLUGIN_CREATION_FAILED = "plugin_creation_failed"


class Diagnostic(BaseModel):
    """A single recorded failure.

    Attributes:
        code: Failure category.
        unit: Name of the unit the failure is scoped to (or the source
            location for creation failures).
        message: Human-readable description.
        related: Other unit names involved (missing dependency, cycle partner).
        detail: Extra structured context.
    """

    model_config = {"frozen": True}

    code: DiagnosticCode
    unit: str
    message: str
    related: list[str] = Field(default_factory=list)
    detail: dict[str, Any] = Field(default_factory=dict)


class ModctlError(Exception):
    """Base exception for modctl."""


class InvalidDescriptorError(ModctlError, ValueError):
    """Raised when a unit descriptor is malformed."""


class DuplicateUnitError(ModctlError):
    """Raised when a unit name is already present in the registry."""

    def __init__(self, name: str, *, kept_version: str = "", dropped_version: str = "") -> None:
        super().__init__(f"A unit named '{name}' is already registered")
        self.name = name
        self.kept_version = kept_version
        self.dropped_version = dropped_version

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            code=DiagnosticCode.DUPLICATE_UNIT,
            unit=self.name,
            message=f"{self}; the later definition is ignored",
            detail={"kept_version": self.kept_version, "dropped_version": self.dropped_version},
        )


class MissingHardDependencyError(ModctlError):
    """Raised when a hard dependency cannot be enabled.

    *reason* is ``"absent"`` when the dependency is not an available unit at
    all, ``"failed"`` when it exists but could not be enabled itself, and
    ``"cycle"`` when it is still being enabled further up the call stack.
    """

    def __init__(self, unit: str, dependency: str, *, reason: str = "absent") -> None:
        if reason == "absent":
            text = f"Unit '{unit}' requires '{dependency}', which is not available"
        else:
            text = f"Unit '{unit}' requires '{dependency}', which could not be enabled"
        super().__init__(text)
        self.unit = unit
        self.dependency = dependency
        self.reason = reason

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            code=DiagnosticCode.MISSING_HARD_DEPENDENCY,
            unit=self.unit,
            message=str(self),
            related=[self.dependency],
            detail={"reason": self.reason},
        )


class PluginCreationFailedError(ModctlError):
    """Raised by a discovery source when a unit cannot be materialised."""

    def __init__(self, origin: str, cause: BaseException) -> None:
        super().__init__(f"Could not create unit from '{origin}': {cause}")
        self.origin = origin
        self.cause = cause

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            code=DiagnosticCode.PLUGIN_CREATION_FAILED,
            unit=self.origin,
            message=str(self),
            detail={"error_type": type(self.cause).__name__},
        )


class UnknownUnitError(ModctlError, KeyError):
    """Raised when an operation names a unit that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"No unit named '{self.name}' is registered"
