"""Unit descriptors — identity, dependencies, and priority-tagged callbacks.

Descriptors are plain data built by discovery adapters. Metadata is never
extracted by introspection: an adapter passes names, versions, dependency
lists and callback references explicitly, or lets an object advertise its
own hooks through the :class:`HookableUnit` protocol.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import FrozenInstanceError, dataclass, field
from typing import Any, Protocol, runtime_checkable

from modctl.domain.errors import InvalidDescriptorError
from modctl.domain.lifecycle import DEFAULT_PRIORITY, Phase, Priority, UnitState, coerce_priority

UNKNOWN_VERSION = "UNKNOWN"


@dataclass(frozen=True)
class Callback:
    """A zero-argument lifecycle hook tagged with a priority tier."""

    fn: Callable[[], object]
    priority: Priority = DEFAULT_PRIORITY
    label: str = ""

    def __post_init__(self) -> None:
        if not callable(self.fn):
            msg = f"Callback target must be callable, got {type(self.fn).__name__}"
            raise InvalidDescriptorError(msg)
        object.__setattr__(self, "priority", coerce_priority(self.priority))
        if not self.label:
            label = getattr(self.fn, "__qualname__", None) or repr(self.fn)
            object.__setattr__(self, "label", label)

    def __call__(self) -> object:
        return self.fn()


def hook(
    fn: Callable[[], object],
    priority: Priority | int = DEFAULT_PRIORITY,
    *,
    label: str = "",
) -> Callback:
    """Shorthand for building a :class:`Callback`."""
    return Callback(fn, coerce_priority(priority), label)


@runtime_checkable
class HookableUnit(Protocol):
    """An application object that advertises its own lifecycle hooks."""

    def unit_hooks(self) -> Iterable[tuple[Phase | str, Callback]]:
        """Return ``(phase, callback)`` pairs for this object."""
        ...


@dataclass(eq=False)
class UnitDescriptor:
    """Everything the orchestrator knows about one unit.

    Attributes:
        name: Unique identity.
        version: Opaque display string.
        dependencies: Hard dependency names, in declared order.
        soft_dependencies: Soft dependency names, in declared order.
        callbacks: Per-phase callbacks, sorted by priority at construction.
            Callbacks sharing a tier keep their insertion order.
        instance: The application object handed out by ``lookup()``.
        state: Current lifecycle state; the only field that can be assigned
            after construction.
    """

    name: str
    version: str = UNKNOWN_VERSION
    dependencies: tuple[str, ...] = ()
    soft_dependencies: tuple[str, ...] = ()
    callbacks: Mapping[Phase, tuple[Callback, ...]] = field(default_factory=dict, repr=False)
    instance: Any = field(default=None, repr=False)
    state: UnitState = field(default=UnitState.REGISTERED, init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            msg = f"Unit name must be a non-empty string, got {self.name!r}"
            raise InvalidDescriptorError(msg)
        self.version = str(self.version) if self.version is not None else UNKNOWN_VERSION
        self.dependencies = _validate_dependencies(self.name, self.dependencies, "hard")
        self.soft_dependencies = _validate_dependencies(
            self.name, self.soft_dependencies, "soft"
        )
        overlap = set(self.dependencies) & set(self.soft_dependencies)
        if overlap:
            msg = (
                f"Unit '{self.name}' declares {sorted(overlap)} as both hard "
                "and soft dependencies"
            )
            raise InvalidDescriptorError(msg)

        grouped: dict[Phase, tuple[Callback, ...]] = {}
        for phase in Phase:
            entries = list(self.callbacks.get(phase, ()))
            for entry in entries:
                if not isinstance(entry, Callback):
                    msg = f"Unit '{self.name}' has a non-Callback entry in phase '{phase}'"
                    raise InvalidDescriptorError(msg)
            # sorted() is stable, so a tier keeps insertion order
            grouped[phase] = tuple(sorted(entries, key=lambda cb: cb.priority))
        self.callbacks = grouped
        object.__setattr__(self, "_sealed", True)

    def __setattr__(self, attr: str, value: Any) -> None:
        if attr != "state" and self.__dict__.get("_sealed", False):
            msg = f"Unit descriptors are immutable except for state; cannot assign {attr!r}"
            raise FrozenInstanceError(msg)
        object.__setattr__(self, attr, value)

    def callbacks_for(self, phase: Phase) -> tuple[Callback, ...]:
        """Return the priority-ordered callbacks of *phase*."""
        return self.callbacks.get(Phase(phase), ())

    @property
    def enable_callbacks(self) -> tuple[Callback, ...]:
        return self.callbacks_for(Phase.ENABLE)

    @property
    def disable_callbacks(self) -> tuple[Callback, ...]:
        return self.callbacks_for(Phase.DISABLE)

    @property
    def is_enabled(self) -> bool:
        return self.state is UnitState.ENABLED

    @property
    def label(self) -> str:
        """``name [ vversion ]`` — display form used in log lines."""
        return f"{self.name} [ v{self.version} ]"


def _validate_dependencies(name: str, deps: Iterable[str], kind: str) -> tuple[str, ...]:
    if isinstance(deps, str):
        msg = f"Unit '{name}' {kind} dependencies must be a sequence of names, not a string"
        raise InvalidDescriptorError(msg)
    result = tuple(deps)
    seen: set[str] = set()
    for dep in result:
        if not isinstance(dep, str) or not dep:
            msg = f"Unit '{name}' has an invalid {kind} dependency name: {dep!r}"
            raise InvalidDescriptorError(msg)
        if dep == name:
            msg = f"Unit '{name}' cannot depend on itself"
            raise InvalidDescriptorError(msg)
        if dep in seen:
            msg = f"Unit '{name}' lists {kind} dependency '{dep}' more than once"
            raise InvalidDescriptorError(msg)
        seen.add(dep)
    return result


def describe(
    instance: Any,
    *,
    name: str | None = None,
    version: str = UNKNOWN_VERSION,
    dependencies: Iterable[str] = (),
    soft_dependencies: Iterable[str] = (),
    hooks: Iterable[tuple[Phase | str, Callback]] = (),
) -> UnitDescriptor:
    """Build a descriptor around an application object.

    The unit name defaults to the object's class name. Hooks advertised by a
    :class:`HookableUnit` come first, followed by the explicit *hooks*.
    """
    collected: dict[Phase, list[Callback]] = {phase: [] for phase in Phase}
    advertised: Iterable[tuple[Phase | str, Callback]] = ()
    if isinstance(instance, HookableUnit):
        advertised = instance.unit_hooks()
    for phase, callback in [*advertised, *hooks]:
        try:
            collected[Phase(phase)].append(callback)
        except ValueError:
            msg = f"Unknown lifecycle phase {phase!r}"
            raise InvalidDescriptorError(msg) from None

    return UnitDescriptor(
        name=name or type(instance).__name__,
        version=version,
        dependencies=tuple(dependencies),
        soft_dependencies=tuple(soft_dependencies),
        callbacks={phase: tuple(cbs) for phase, cbs in collected.items()},
        instance=instance,
    )
