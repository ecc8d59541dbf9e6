"""Shared pytest fixtures and test helpers for modctl tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterable
from typing import Any

import pytest
from click.testing import CliRunner

from modctl.domain.lifecycle import Phase, Priority
from modctl.domain.units import Callback, UnitDescriptor
from modctl.plugins.hookspecs import hookimpl
from modctl.plugins.manager import HookManager
from modctl.services.orchestrator import Orchestrator


class CallLog:
    """Records callback invocations in order."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def hook(self, label: str, priority: Priority | int = Priority.THIRD) -> Callback:
        return Callback(lambda: self.calls.append(label), Priority(priority), label)

    def failing(self, label: str, priority: Priority | int = Priority.THIRD) -> Callback:
        def boom() -> None:
            self.calls.append(label)
            raise RuntimeError(f"{label} exploded")

        return Callback(boom, Priority(priority), label)

    def for_unit(self, name: str) -> list[str]:
        return [c for c in self.calls if c.startswith(f"{name}.")]


class RecordingObserver:
    """Observer plugin that keeps every lifecycle event."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []
        self.diagnostics: list[dict[str, Any]] = []

    @hookimpl
    def modctl_unit_registered(self, name: str, version: str) -> None:
        self.events.append(("registered", name))

    @hookimpl
    def modctl_unit_enabled(self, name: str, version: str) -> None:
        self.events.append(("enabled", name))

    @hookimpl
    def modctl_unit_enable_failed(self, name: str, version: str, reason: str) -> None:
        self.events.append(("enable_failed", name))

    @hookimpl
    def modctl_unit_disabled(self, name: str, version: str) -> None:
        self.events.append(("disabled", name))

    @hookimpl
    def modctl_diagnostic(self, diagnostic: dict[str, Any]) -> None:
        self.diagnostics.append(diagnostic)

    def names(self, kind: str) -> list[str]:
        return [name for event, name in self.events if event == kind]


type UnitMaker = Callable[..., UnitDescriptor]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()


@pytest.fixture
def make_unit(call_log: CallLog) -> UnitMaker:
    """Factory for descriptors whose four phases record ``<name>.<phase>``."""

    def _make(
        name: str,
        deps: Iterable[str] = (),
        soft: Iterable[str] = (),
        *,
        version: str = "1.0",
        instance: Any = None,
    ) -> UnitDescriptor:
        callbacks = {phase: (call_log.hook(f"{name}.{phase}"),) for phase in Phase}
        return UnitDescriptor(
            name=name,
            version=version,
            dependencies=tuple(deps),
            soft_dependencies=tuple(soft),
            callbacks=callbacks,
            instance=instance if instance is not None else {"unit": name},
        )

    return _make


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def hooks(observer: RecordingObserver) -> HookManager:
    """Hook manager with only the recording observer registered."""
    manager = HookManager()
    manager.register_plugin(observer, name="recorder")
    return manager


@pytest.fixture
def orchestrator(hooks: HookManager) -> Orchestrator:
    return Orchestrator(hooks=hooks)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Keep config env vars and logging handlers from leaking between tests."""
    monkeypatch.delenv("MODCTL_CONFIG", raising=False)
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    mod = logging.getLogger("modctl")
    mod_level = mod.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    mod.setLevel(mod_level)
