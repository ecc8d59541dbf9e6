"""LifecycleMachine — per-unit enable/disable transitions.

``registered -> enabled -> disabled -> enabled ...``

Enabling is depth-first: soft dependencies are attempted and may fail,
hard dependencies must succeed, then the unit's own enable callbacks run.
Both transitions are idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from modctl.domain.errors import Diagnostic, MissingHardDependencyError
from modctl.domain.lifecycle import Phase, UnitState, is_valid_transition
from modctl.domain.units import UnitDescriptor
from modctl.services.scheduler import PriorityScheduler

logger = logging.getLogger(__name__)

type UnitLookup = Callable[[str], UnitDescriptor | None]
type DiagnosticReporter = Callable[[Diagnostic], None]
type EnabledListener = Callable[[UnitDescriptor], None]


@dataclass
class ActivationContext:
    """Bookkeeping for one bulk enable pass.

    Attributes:
        activated: Units enabled during this pass, in activation order.
        failed: Units whose enable failed for good during this pass, with the
            error. Failures caused by an in-progress dependency are not kept.
        in_progress: Units currently being enabled further up the call stack.
    """

    activated: dict[str, UnitDescriptor] = field(default_factory=dict)
    failed: dict[str, MissingHardDependencyError] = field(default_factory=dict)
    in_progress: set[str] = field(default_factory=set)

    def __contains__(self, name: object) -> bool:
        return name in self.activated


def _ignore(_item: object) -> None:
    return None


def _is_transient(exc: MissingHardDependencyError) -> bool:
    """True when *exc* stems from a dependency still being enabled up the stack."""
    current: BaseException | None = exc
    while isinstance(current, MissingHardDependencyError):
        if current.reason == "cycle":
            return True
        current = current.__cause__
    return False


class LifecycleMachine:
    """Drives units through their lifecycle.

    Parameters:
        lookup: Resolves a dependency name to an available unit, or None
            when the name is not available at all.
        scheduler: Invokes phase callbacks.
        report: Receives callback-failure diagnostics.
        on_enabled: Called with each unit the moment it becomes enabled.
    """

    def __init__(
        self,
        lookup: UnitLookup,
        scheduler: PriorityScheduler | None = None,
        *,
        report: DiagnosticReporter | None = None,
        on_enabled: EnabledListener | None = None,
    ) -> None:
        self._lookup = lookup
        self._scheduler = scheduler or PriorityScheduler()
        self._report = report or _ignore
        self._on_enabled = on_enabled or _ignore

    def enable(self, unit: UnitDescriptor, context: ActivationContext | None = None) -> bool:
        """Enable *unit* after its dependencies.

        Returns True when this call performed the transition and False when
        the unit was already enabled (or already activated in *context*).

        Raises:
            MissingHardDependencyError: A hard dependency is unavailable or
                could not be enabled. The unit's state is left unchanged.
        """
        ctx = context if context is not None else ActivationContext()
        name = unit.name
        if name in ctx or unit.state is UnitState.ENABLED:
            return False
        if name in ctx.failed:
            raise ctx.failed[name]

        ctx.in_progress.add(name)
        try:
            self._enable_soft_dependencies(unit, ctx)
            self._enable_hard_dependencies(unit, ctx)
        except MissingHardDependencyError as exc:
            # Failures caused by an in-progress dependency are not final
            if not _is_transient(exc):
                ctx.failed[name] = exc
            raise
        finally:
            ctx.in_progress.discard(name)

        assert is_valid_transition(unit.state, UnitState.ENABLED)
        self._run(unit, Phase.ENABLE)
        unit.state = UnitState.ENABLED
        ctx.activated[name] = unit
        self._on_enabled(unit)
        logger.debug("Enabled %s", unit.label)
        return True

    def disable(self, unit: UnitDescriptor) -> bool:
        """Disable *unit*. Returns False if it was not enabled."""
        if unit.state is not UnitState.ENABLED:
            return False
        self._run(unit, Phase.DISABLE)
        unit.state = UnitState.DISABLED
        logger.debug("Disabled %s", unit.label)
        return True

    def fire(self, unit: UnitDescriptor, phase: Phase) -> bool:
        """Run a secondary phase (post-enable, pre-disable) on an enabled unit.

        Returns False without invoking anything if the unit is not enabled.
        """
        if unit.state is not UnitState.ENABLED:
            return False
        self._run(unit, phase)
        return True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self, unit: UnitDescriptor, phase: Phase) -> None:
        for diagnostic in self._scheduler.invoke(unit, phase):
            self._report(diagnostic)

    def _enable_soft_dependencies(self, unit: UnitDescriptor, ctx: ActivationContext) -> None:
        for dep in unit.soft_dependencies:
            target = self._lookup(dep)
            if target is None:
                logger.debug("Soft dependency %s of %s is not available", dep, unit.name)
                continue
            if dep in ctx.in_progress:
                # already being enabled further up the stack
                continue
            try:
                self.enable(target, ctx)
            except MissingHardDependencyError as exc:
                logger.debug(
                    "Soft dependency %s of %s could not be enabled: %s", dep, unit.name, exc
                )

    def _enable_hard_dependencies(self, unit: UnitDescriptor, ctx: ActivationContext) -> None:
        for dep in unit.dependencies:
            target = self._lookup(dep)
            if target is None:
                raise MissingHardDependencyError(unit.name, dep, reason="absent")
            if dep in ctx.in_progress:
                raise MissingHardDependencyError(unit.name, dep, reason="cycle")
            try:
                self.enable(target, ctx)
            except MissingHardDependencyError as exc:
                raise MissingHardDependencyError(unit.name, dep, reason="failed") from exc
