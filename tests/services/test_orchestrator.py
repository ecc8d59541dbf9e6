"""Tests for the Orchestrator — registry ownership and bulk lifecycle operations."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, assert_type

import pytest

from modctl.config.models import DiscoveryConfig, HooksConfig
from modctl.config.settings import ModSettings
from modctl.domain.errors import DiagnosticCode, ModctlError, UnknownUnitError
from modctl.domain.lifecycle import Phase, UnitState
from modctl.domain.units import UnitDescriptor, hook
from modctl.plugins.discovery import StaticSource
from modctl.plugins.hookspecs import hookimpl
from modctl.plugins.manager import HookManager
from modctl.services.orchestrator import Orchestrator

if TYPE_CHECKING:
    from tests.conftest import CallLog, RecordingObserver

type Maker = Callable[..., UnitDescriptor]


class TestRegistration:
    def test_register_reports_units(self, orchestrator: Orchestrator, make_unit: Maker) -> None:
        report = orchestrator.discover_and_register([make_unit("b"), make_unit("a")])
        assert report.op == "register"
        assert report.ok
        assert [u.name for u in report.units] == ["a", "b"]
        assert all(u.state == "registered" for u in report.units)

    def test_duplicate_keeps_first(
        self, orchestrator: Orchestrator, make_unit: Maker, observer: RecordingObserver
    ) -> None:
        first = make_unit("core", version="1.0")
        report = orchestrator.discover_and_register([first, make_unit("core", version="2.0")])
        assert orchestrator.get_unit("core") is first
        (diag,) = report.by_code(DiagnosticCode.DUPLICATE_UNIT)
        assert diag.detail == {"kept_version": "1.0", "dropped_version": "2.0"}
        assert observer.names("registered") == ["core"]
        assert observer.diagnostics[0]["code"] == "duplicate_unit"

    def test_list_units_does_not_mutate(
        self, orchestrator: Orchestrator, make_unit: Maker
    ) -> None:
        orchestrator.discover_and_register([make_unit("a")])
        report = orchestrator.list_units()
        assert report.op == "list"
        assert [u.name for u in report.units] == ["a"]
        assert orchestrator.enabled_names() == []


class TestEnableAll:
    def test_missing_dependency_scenario(
        self,
        orchestrator: Orchestrator,
        make_unit: Maker,
        call_log: CallLog,
        observer: RecordingObserver,
    ) -> None:
        orchestrator.discover_and_register(
            [make_unit("A"), make_unit("B", ["A"]), make_unit("C", ["Z"])]
        )
        report = orchestrator.enable_all()
        assert report.op == "enable_all"
        assert report.enabled == ["A", "B"]
        assert report.removed == ["C"]
        assert not report.ok
        (diag,) = report.diagnostics
        assert diag.code is DiagnosticCode.MISSING_DEPENDENCY
        assert diag.unit == "C"
        assert report.meta == {"activation_plan": ["A", "B"]}
        assert call_log.calls == ["A.enable", "B.enable", "A.post_enable", "B.post_enable"]
        assert orchestrator.get_unit("C").state is UnitState.REGISTERED  # type: ignore[union-attr]
        assert observer.names("enabled") == ["A", "B"]
        assert observer.names("enable_failed") == ["C"]

    def test_cycle_scenario(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        orchestrator.discover_and_register([make_unit("A", ["B"]), make_unit("B", ["A"])])
        report = orchestrator.enable_all()
        assert report.enabled == []
        assert report.removed == ["A", "B"]
        assert [d.code for d in report.diagnostics] == [DiagnosticCode.CIRCULAR_DEPENDENCY]
        assert call_log.calls == []

    def test_dependencies_enabled_before_dependents(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        orchestrator.discover_and_register(
            [
                make_unit("app", ["db", "cache"]),
                make_unit("db", ["config"]),
                make_unit("cache"),
                make_unit("config"),
            ]
        )
        report = orchestrator.enable_all()
        enables = [c for c in call_log.calls if c.endswith(".enable")]
        assert enables.index("config.enable") < enables.index("db.enable")
        assert enables.index("db.enable") < enables.index("app.enable")
        assert enables.index("cache.enable") < enables.index("app.enable")
        assert report.enabled == [c.removesuffix(".enable") for c in enables]

    def test_post_enable_runs_after_every_enable(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        orchestrator.discover_and_register([make_unit(n) for n in "abc"])
        orchestrator.enable_all()
        phases = [c.split(".", 1)[1] for c in call_log.calls]
        assert phases == ["enable"] * 3 + ["post_enable"] * 3

    def test_callback_failure_does_not_abort(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        broken = UnitDescriptor(
            "broken", callbacks={Phase.ENABLE: (call_log.failing("broken.enable"),)}
        )
        orchestrator.discover_and_register([broken, make_unit("ok", ["broken"])])
        report = orchestrator.enable_all()
        assert report.enabled == ["broken", "ok"]
        (diag,) = report.by_code(DiagnosticCode.CALLBACK_FAILURE)
        assert diag.unit == "broken"
        assert diag.detail["phase"] == "enable"

    def test_soft_edge_back_to_hard_dependent(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        orchestrator.discover_and_register([make_unit("a", soft=["b"]), make_unit("b", ["a"])])
        report = orchestrator.enable_all()
        assert report.ok
        assert report.enabled == ["a", "b"]
        assert orchestrator.enabled_names() == ["a", "b"]
        assert call_log.calls[:2] == ["a.enable", "b.enable"]

    def test_enable_all_twice_resets_first(
        self, orchestrator: Orchestrator, make_unit: Maker
    ) -> None:
        orchestrator.discover_and_register([make_unit("a"), make_unit("b", ["a"])])
        orchestrator.enable_all()
        report = orchestrator.enable_all()
        assert report.disabled == ["b", "a"]
        assert report.enabled == ["a", "b"]

    def test_observer_failure_is_isolated(
        self, hooks: HookManager, make_unit: Maker
    ) -> None:
        class Faulty:
            @hookimpl
            def modctl_unit_enabled(self, name: str, version: str) -> None:
                raise RuntimeError("observer down")

        hooks.register_plugin(Faulty())
        orchestrator = Orchestrator(hooks=hooks)
        orchestrator.discover_and_register([make_unit("a")])
        report = orchestrator.enable_all()
        assert report.enabled == ["a"]
        assert orchestrator.is_enabled("a")

    def test_last_resolution(self, orchestrator: Orchestrator, make_unit: Maker) -> None:
        assert orchestrator.last_resolution is None
        orchestrator.discover_and_register([make_unit("a"), make_unit("b", ["x"])])
        orchestrator.enable_all()
        resolution = orchestrator.last_resolution
        assert resolution is not None
        assert resolution.names == ["a"]
        assert resolution.removed == ("b",)


class TestDisableAll:
    def test_pre_disable_before_any_disable(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        orchestrator.discover_and_register([make_unit("a"), make_unit("b", ["a"])])
        orchestrator.enable_all()
        call_log.calls.clear()
        report = orchestrator.disable_all()
        assert call_log.calls == ["b.pre_disable", "a.pre_disable", "b.disable", "a.disable"]
        assert report.disabled == ["b", "a"]
        assert orchestrator.enabled_names() == []
        assert all(u.state is UnitState.DISABLED for u in orchestrator.units())

    def test_round_trip(self, orchestrator: Orchestrator, make_unit: Maker) -> None:
        orchestrator.discover_and_register(
            [make_unit("a"), make_unit("b", ["a"]), make_unit("c", ["missing"])]
        )
        first = orchestrator.enable_all()
        orchestrator.disable_all()
        second = orchestrator.enable_all()
        assert second.enabled == first.enabled
        assert second.removed == first.removed
        assert {u.name: u.state for u in orchestrator.units()} == {
            "a": UnitState.ENABLED,
            "b": UnitState.ENABLED,
            "c": UnitState.REGISTERED,
        }

    def test_disable_all_when_nothing_enabled(self, orchestrator: Orchestrator) -> None:
        report = orchestrator.disable_all()
        assert report.disabled == []
        assert report.ok


class TestLookup:
    def test_only_enabled_units_are_visible(
        self, orchestrator: Orchestrator, make_unit: Maker
    ) -> None:
        instance = {"service": "db"}
        orchestrator.discover_and_register([make_unit("db", instance=instance)])
        assert orchestrator.lookup("db") is None
        orchestrator.enable_all()
        assert orchestrator.lookup("db") is instance
        assert orchestrator.lookup("db", dict) is instance
        orchestrator.disable_all()
        assert orchestrator.lookup("db") is None

    def test_kind_narrows_result(self, orchestrator: Orchestrator, make_unit: Maker) -> None:
        orchestrator.discover_and_register([make_unit("db", instance="conn")])
        orchestrator.enable_all()
        found = assert_type(orchestrator.lookup("db", str), str | None)
        assert found == "conn"
        assert orchestrator.lookup("missing", str) is None

    def test_kind_mismatch(self, orchestrator: Orchestrator, make_unit: Maker) -> None:
        orchestrator.discover_and_register([make_unit("db", instance="conn")])
        orchestrator.enable_all()
        with pytest.raises(TypeError, match="not a int"):
            orchestrator.lookup("db", int)

    def test_dependency_visible_during_dependent_enable(
        self, orchestrator: Orchestrator, make_unit: Maker
    ) -> None:
        connection = {"service": "db"}
        seen: list[Any] = []
        user = UnitDescriptor(
            "user",
            dependencies=("db",),
            callbacks={Phase.ENABLE: (hook(lambda: seen.append(orchestrator.lookup("db"))),)},
        )
        orchestrator.discover_and_register([user, make_unit("db", instance=connection)])
        report = orchestrator.enable_all()
        assert report.ok
        assert seen == [connection]

    def test_unknown_name(self, orchestrator: Orchestrator) -> None:
        assert orchestrator.lookup("ghost") is None


class TestReload:
    def test_reload_all_rediscovers(self, hooks: HookManager, call_log: CallLog) -> None:
        generation: list[int] = []

        def factory(orch: Orchestrator) -> UnitDescriptor:
            generation.append(len(generation) + 1)
            return UnitDescriptor(
                "core",
                version=str(generation[-1]),
                callbacks={Phase.ENABLE: (call_log.hook("core.enable"),)},
            )

        orchestrator = Orchestrator(StaticSource([factory]), hooks=hooks)
        orchestrator.discover()
        original = orchestrator.get_unit("core")
        orchestrator.enable_all()

        report = orchestrator.reload_all()
        assert report.op == "reload_all"
        assert report.disabled == ["core"]
        assert report.enabled == ["core"]
        reloaded = orchestrator.get_unit("core")
        assert reloaded is not original
        assert reloaded is not None and reloaded.version == "2"
        assert original is not None and original.state is UnitState.DISABLED
        assert call_log.calls == ["core.enable", "core.enable"]

    def test_reload_all_requires_source(self, orchestrator: Orchestrator) -> None:
        with pytest.raises(ModctlError, match="discovery source"):
            orchestrator.reload_all()

    def test_reload_enabled_only_keeps_descriptors(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        unit = make_unit("a")
        orchestrator.discover_and_register([unit])
        orchestrator.enable_all()
        call_log.calls.clear()
        report = orchestrator.reload_enabled_only()
        assert report.disabled == ["a"]
        assert report.enabled == ["a"]
        assert orchestrator.get_unit("a") is unit
        assert unit.is_enabled
        assert call_log.calls == ["a.pre_disable", "a.disable", "a.enable", "a.post_enable"]

    def test_shutdown(self, orchestrator: Orchestrator, make_unit: Maker) -> None:
        orchestrator.discover_and_register([make_unit("a")])
        orchestrator.enable_all()
        report = orchestrator.shutdown()
        assert report.disabled == ["a"]
        assert orchestrator.units() == []
        assert orchestrator.last_resolution is None


class TestPlan:
    def test_plan_is_read_only(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        orchestrator.discover_and_register(
            [make_unit("web", ["db"]), make_unit("db"), make_unit("bad", ["nope"])]
        )
        report = orchestrator.plan()
        assert report.op == "plan"
        assert report.meta == {"activation_plan": ["db", "web"]}
        assert report.removed == ["bad"]
        assert call_log.calls == []
        assert orchestrator.enabled_names() == []
        assert orchestrator.last_resolution is None


class TestSingleUnit:
    def test_enable_unit_pulls_dependencies(
        self, orchestrator: Orchestrator, make_unit: Maker, call_log: CallLog
    ) -> None:
        orchestrator.discover_and_register(
            [make_unit("a"), make_unit("b", ["a"]), make_unit("c")]
        )
        report = orchestrator.enable_unit("b")
        assert report.op == "enable"
        assert report.enabled == ["a", "b"]
        assert not orchestrator.is_enabled("c")
        assert call_log.calls == ["a.enable", "b.enable", "a.post_enable", "b.post_enable"]

    def test_enable_unit_quarantined(self, orchestrator: Orchestrator, make_unit: Maker) -> None:
        orchestrator.discover_and_register([make_unit("c", ["z"])])
        report = orchestrator.enable_unit("c")
        assert report.enabled == []
        assert report.removed == ["c"]
        assert [d.code for d in report.diagnostics] == [DiagnosticCode.MISSING_DEPENDENCY]

    def test_enable_unit_unknown(self, orchestrator: Orchestrator) -> None:
        with pytest.raises(UnknownUnitError):
            orchestrator.enable_unit("ghost")

    def test_disable_unit_leaves_dependents(
        self,
        orchestrator: Orchestrator,
        make_unit: Maker,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        orchestrator.discover_and_register([make_unit("a"), make_unit("b", ["a"])])
        orchestrator.enable_all()
        with caplog.at_level(logging.WARNING, logger="modctl.services.orchestrator"):
            report = orchestrator.disable_unit("a")
        assert report.disabled == ["a"]
        assert orchestrator.is_enabled("b")
        assert "still depend on it" in caplog.text

    def test_disable_unit_not_enabled(self, orchestrator: Orchestrator, make_unit: Maker) -> None:
        orchestrator.discover_and_register([make_unit("a")])
        assert orchestrator.disable_unit("a").disabled == []

    def test_disable_unit_unknown(self, orchestrator: Orchestrator) -> None:
        with pytest.raises(UnknownUnitError):
            orchestrator.disable_unit("ghost")


class TestFromSettings:
    def test_local_directory_units(self, tmp_path: Path) -> None:
        units = tmp_path / "units"
        units.mkdir()
        (units / "greeter.py").write_text(
            "from modctl.domain.units import describe\n"
            "\n"
            "class Greeter:\n"
            "    pass\n"
            "\n"
            "def create_unit(orchestrator):\n"
            "    return describe(Greeter(), name='greeter', version='0.3')\n"
        )
        settings = ModSettings(
            root=tmp_path,
            discovery=DiscoveryConfig(use_entry_points=False),
            hooks=HooksConfig(load_entry_points=False, log_sink=False),
        )
        orchestrator = Orchestrator.from_settings(settings)
        assert orchestrator.hooks.list_plugin_names() == []
        orchestrator.discover()
        report = orchestrator.enable_all()
        assert report.enabled == ["greeter"]
        greeter: Any = orchestrator.lookup("greeter")
        assert type(greeter).__name__ == "Greeter"

    def test_log_sink_registered_by_default(self, tmp_path: Path) -> None:
        settings = ModSettings(
            root=tmp_path,
            discovery=DiscoveryConfig(use_entry_points=False),
            hooks=HooksConfig(load_entry_points=False),
        )
        assert "log-sink" in Orchestrator.from_settings(settings).hooks.list_plugin_names()
