"""Orchestrator — owns the unit registry and drives bulk lifecycle operations.

The orchestrator is the only mutator of cross-unit state: the registry, the
enabled set, and unit states (through :class:`LifecycleMachine`). One
instance lives for the lifetime of the process; there is no global access.

INVARIANT: No unit-level failure aborts a bulk operation. Every public
operation returns an :class:`OperationReport`.

Bulk operations are not reentrant. Callers running them from several
threads must serialise the calls themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar, overload

from modctl.domain.errors import (
    Diagnostic,
    DuplicateUnitError,
    MissingHardDependencyError,
    ModctlError,
    UnknownUnitError,
)
from modctl.domain.lifecycle import Phase, UnitState
from modctl.domain.registry import UnitRegistry
from modctl.domain.units import UnitDescriptor
from modctl.plugins.manager import HookManager
from modctl.services.lifecycle import ActivationContext, LifecycleMachine
from modctl.services.resolver import DependencyResolver, Resolution
from modctl.services.result import OperationReport, UnitSummary
from modctl.services.scheduler import PriorityScheduler

if TYPE_CHECKING:
    from modctl.config.settings import ModSettings
    from modctl.plugins.discovery import DiscoverySource

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _OpLog:
    """Accumulates the outcome of one public operation."""

    enabled: list[str] = field(default_factory=list)
    disabled: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def report(self, op: str, **extra: Any) -> OperationReport:
        return OperationReport(
            op=op,
            enabled=self.enabled,
            disabled=self.disabled,
            removed=self.removed,
            diagnostics=self.diagnostics,
            **extra,
        )


def default_hooks() -> HookManager:
    """A hook manager with the built-in log sink registered."""
    from modctl.plugins.builtins.log_sink import LogSink

    hooks = HookManager()
    hooks.register_plugin(LogSink(), name="log-sink")
    return hooks


class Orchestrator:
    """Registry owner and bulk lifecycle driver.

    Parameters:
        source: Discovery source used by :meth:`discover` and
            :meth:`reload_all`. Optional when descriptors are registered
            directly.
        hooks: Observer hook manager. Defaults to one with the log sink.
        resolver: Dependency resolver.
        scheduler: Callback scheduler.
    """

    def __init__(
        self,
        source: DiscoverySource | None = None,
        *,
        hooks: HookManager | None = None,
        resolver: DependencyResolver | None = None,
        scheduler: PriorityScheduler | None = None,
    ) -> None:
        self._source = source
        self._hooks = hooks if hooks is not None else default_hooks()
        self._resolver = resolver or DependencyResolver()
        self._registry = UnitRegistry()
        self._enabled: dict[str, UnitDescriptor] = {}
        self._available: dict[str, UnitDescriptor] = {}
        self._last_resolution: Resolution | None = None
        self._current: _OpLog | None = None
        self._machine = LifecycleMachine(
            self._available.get,
            scheduler or PriorityScheduler(),
            report=self._report,
            on_enabled=self._track_enabled,
        )

    @classmethod
    def from_settings(cls, settings: ModSettings) -> Orchestrator:
        """Build an orchestrator whose sources and observers follow *settings*."""
        from modctl.plugins.builtins.log_sink import LogSink
        from modctl.plugins.discovery import ChainedSource, EntryPointSource, LocalDirectorySource

        sources: list[DiscoverySource] = []
        local_dir = settings.resolved_local_dir()
        if local_dir is not None:
            sources.append(LocalDirectorySource(local_dir))
        if settings.discovery.use_entry_points:
            sources.append(EntryPointSource(settings.discovery.entry_point_group))

        hooks = HookManager()
        if settings.hooks.log_sink:
            hooks.register_plugin(LogSink(), name="log-sink")
        if settings.hooks.load_entry_points:
            hooks.load_entrypoints(settings.hooks.entry_point_group)

        return cls(ChainedSource(*sources), hooks=hooks)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def hooks(self) -> HookManager:
        return self._hooks

    @property
    def last_resolution(self) -> Resolution | None:
        """Resolution computed by the most recent enable pass."""
        return self._last_resolution

    def units(self) -> list[UnitDescriptor]:
        """All registered descriptors, in registry order."""
        return list(self._registry)

    def get_unit(self, name: str) -> UnitDescriptor | None:
        """The registered descriptor for *name*, whatever its state."""
        return self._registry.get(name)

    def enabled_names(self) -> list[str]:
        """Enabled unit names in activation order."""
        return list(self._enabled)

    def is_enabled(self, name: str) -> bool:
        return name in self._enabled

    @overload
    def lookup(self, name: str) -> Any: ...

    @overload
    def lookup(self, name: str, kind: type[T]) -> T | None: ...

    def lookup(self, name: str, kind: type[T] | None = None) -> Any:
        """Return the live instance of *name* only while it is enabled.

        A unit becomes visible as soon as its enable callbacks have run, so
        a dependent's enable callbacks can already reach it. Registered-only
        and disabled units are invisible so callers never see a partially
        initialised unit.

        Raises:
            TypeError: If *kind* is given and the instance is not a *kind*.
        """
        unit = self._enabled.get(name)
        if unit is None:
            return None
        if kind is not None and not isinstance(unit.instance, kind):
            msg = f"Unit '{name}' is a {type(unit.instance).__name__}, not a {kind.__name__}"
            raise TypeError(msg)
        return unit.instance

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def discover_and_register(self, descriptors: Iterable[UnitDescriptor]) -> OperationReport:
        """Insert *descriptors* into the registry; first registration wins."""
        op = _OpLog()
        with self._collect(op):
            self._register(descriptors)
        return op.report("register", units=self._summaries())

    def discover(self) -> OperationReport:
        """Run the discovery source and register what it produces."""
        op = _OpLog()
        with self._collect(op):
            self._discover()
        return op.report("discover", units=self._summaries())

    def list_units(self) -> OperationReport:
        """Registry snapshot without changing anything."""
        return OperationReport(op="list", units=self._summaries())

    def plan(self) -> OperationReport:
        """Resolve the registry and report the activation plan, without enabling."""
        resolution = self._resolver.resolve(self._registry)
        return OperationReport(
            op="plan",
            removed=list(resolution.removed),
            diagnostics=list(resolution.diagnostics),
            units=self._summaries(),
            meta={"activation_plan": resolution.activation_plan()},
        )

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def enable_all(self) -> OperationReport:
        """Reset, resolve, enable every surviving unit, then run post-enable."""
        op = _OpLog()
        with self._collect(op):
            self._enable_all(op)
        return op.report("enable_all", meta=self._plan_meta())

    def disable_all(self) -> OperationReport:
        """Run pre-disable across all enabled units, then disable each."""
        op = _OpLog()
        with self._collect(op):
            self._disable_all(op)
        return op.report("disable_all")

    def reload_all(self) -> OperationReport:
        """Disable everything, clear the registry, rediscover, enable all.

        Raises:
            ModctlError: If the orchestrator has no discovery source.
        """
        if self._source is None:
            msg = "reload_all requires a discovery source"
            raise ModctlError(msg)
        op = _OpLog()
        with self._collect(op):
            self._disable_all(op)
            self._registry.clear()
            self._available.clear()
            self._discover()
            self._enable_all(op)
        return op.report("reload_all", meta=self._plan_meta())

    def reload_enabled_only(self) -> OperationReport:
        """Disable everything and enable the same registered set again."""
        op = _OpLog()
        with self._collect(op):
            self._disable_all(op)
            self._enable_all(op)
        return op.report("reload_enabled_only", meta=self._plan_meta())

    def shutdown(self) -> OperationReport:
        """Disable everything and drop all descriptors."""
        op = _OpLog()
        with self._collect(op):
            self._disable_all(op)
            self._registry.clear()
            self._available.clear()
            self._last_resolution = None
        return op.report("shutdown")

    # ------------------------------------------------------------------
    # Single-unit operations
    # ------------------------------------------------------------------

    def enable_unit(self, name: str) -> OperationReport:
        """Enable one registered unit and whatever it depends on.

        Raises:
            UnknownUnitError: If *name* is not registered.
        """
        unit = self._registry.get(name)
        if unit is None:
            raise UnknownUnitError(name)
        op = _OpLog()
        with self._collect(op):
            resolution = self._resolve()
            if name in resolution.removed:
                for diagnostic in resolution.diagnostics:
                    if diagnostic.unit == name:
                        self._report(diagnostic)
                op.removed.append(name)
                self._hooks.notify(
                    "modctl_unit_enable_failed",
                    name=unit.name,
                    version=unit.version,
                    reason="quarantined by dependency resolution",
                )
            else:
                ctx = ActivationContext()
                self._activate(unit, ctx)
                self._finish_activation(ctx, op)
        return op.report("enable")

    def disable_unit(self, name: str) -> OperationReport:
        """Disable one unit. Units depending on it are left enabled.

        Raises:
            UnknownUnitError: If *name* is not registered.
        """
        unit = self._registry.get(name)
        if unit is None:
            raise UnknownUnitError(name)
        op = _OpLog()
        with self._collect(op):
            if unit.state is UnitState.ENABLED:
                dependents = [
                    other.name for other in self._enabled.values() if name in other.dependencies
                ]
                if dependents:
                    logger.warning(
                        "Disabling %s while %s still depend on it", name, ", ".join(dependents)
                    )
                self._machine.fire(unit, Phase.PRE_DISABLE)
                self._deactivate(unit, op)
        return op.report("disable")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextmanager
    def _collect(self, op: _OpLog) -> Iterator[_OpLog]:
        previous, self._current = self._current, op
        try:
            yield op
        finally:
            self._current = previous

    def _report(self, diagnostic: Diagnostic) -> None:
        if self._current is not None:
            self._current.diagnostics.append(diagnostic)
        self._hooks.notify("modctl_diagnostic", diagnostic=diagnostic.model_dump(mode="json"))

    def _register(self, descriptors: Iterable[UnitDescriptor]) -> None:
        for unit in descriptors:
            try:
                self._registry.add(unit)
            except DuplicateUnitError as exc:
                logger.warning("%s; dropping %s", exc, unit.label)
                self._report(exc.to_diagnostic())
                continue
            self._hooks.notify("modctl_unit_registered", name=unit.name, version=unit.version)

    def _discover(self) -> None:
        if self._source is None:
            logger.debug("No discovery source configured")
            return
        found = self._source.discover(self)
        for diagnostic in found.diagnostics:
            self._report(diagnostic)
        self._register(found.descriptors)

    def _resolve(self) -> Resolution:
        resolution = self._resolver.resolve(self._registry)
        # Mutate in place: the lifecycle machine holds this dict's bound .get
        self._available.clear()
        self._available.update((unit.name, unit) for unit in resolution.ordered)
        self._last_resolution = resolution
        return resolution

    def _enable_all(self, op: _OpLog) -> None:
        self._disable_all(op)

        resolution = self._resolve()
        for diagnostic in resolution.diagnostics:
            self._report(diagnostic)
        for name in resolution.removed:
            unit = self._registry.get(name)
            assert unit is not None
            op.removed.append(name)
            self._hooks.notify(
                "modctl_unit_enable_failed",
                name=unit.name,
                version=unit.version,
                reason="quarantined by dependency resolution",
            )

        ctx = ActivationContext()
        for unit in resolution.ordered:
            self._activate(unit, ctx)
        self._finish_activation(ctx, op)

    def _activate(self, unit: UnitDescriptor, ctx: ActivationContext) -> None:
        try:
            self._machine.enable(unit, ctx)
        except MissingHardDependencyError as exc:
            logger.warning("%s", exc)
            self._report(exc.to_diagnostic())
            self._hooks.notify(
                "modctl_unit_enable_failed", name=unit.name, version=unit.version, reason=str(exc)
            )

    def _track_enabled(self, unit: UnitDescriptor) -> None:
        self._enabled[unit.name] = unit

    def _finish_activation(self, ctx: ActivationContext, op: _OpLog) -> None:
        """Report newly enabled units, then run their post-enable phase."""
        for name, unit in ctx.activated.items():
            op.enabled.append(name)
            self._hooks.notify("modctl_unit_enabled", name=unit.name, version=unit.version)
        # Strictly after every primary enable of the pass
        for unit in ctx.activated.values():
            self._machine.fire(unit, Phase.POST_ENABLE)

    def _disable_all(self, op: _OpLog) -> None:
        # Dependents before their dependencies
        units = list(reversed(self._enabled.values()))
        for unit in units:
            self._machine.fire(unit, Phase.PRE_DISABLE)
        for unit in units:
            self._deactivate(unit, op)
        self._enabled.clear()

    def _deactivate(self, unit: UnitDescriptor, op: _OpLog) -> None:
        if self._machine.disable(unit):
            op.disabled.append(unit.name)
            self._hooks.notify("modctl_unit_disabled", name=unit.name, version=unit.version)
        else:
            logger.info("Unit not disabled: %s", unit.label)
        self._enabled.pop(unit.name, None)

    def _plan_meta(self) -> dict[str, Any] | None:
        if self._last_resolution is None:
            return None
        return {"activation_plan": self._last_resolution.activation_plan()}

    def _summaries(self) -> list[UnitSummary]:
        return [
            UnitSummary(
                name=unit.name,
                version=unit.version,
                state=str(unit.state),
                dependencies=list(unit.dependencies),
                soft_dependencies=list(unit.soft_dependencies),
            )
            for unit in self._registry
        ]
