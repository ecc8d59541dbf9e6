"""Tests for the built-in structlog observer."""

from __future__ import annotations

import json

import pytest

from modctl.config.logging import configure_logging
from modctl.plugins.builtins.log_sink import LogSink
from modctl.plugins.manager import HookManager


def _events(err: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in err.splitlines() if line.strip()]


class TestLogSink:
    def test_enabled_is_info(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        LogSink().modctl_unit_enabled(name="core", version="1.0")
        (event,) = _events(capfd.readouterr().err)
        assert event["event"] == "unit enabled"
        assert event["level"] == "info"
        assert event["logger"] == "modctl.lifecycle"
        assert event["unit"] == "core"
        assert event["version"] == "1.0"

    def test_registered_needs_verbose(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        LogSink().modctl_unit_registered(name="core", version="1.0")
        assert capfd.readouterr().err == ""

        configure_logging(verbose=True, log_json=True)
        LogSink().modctl_unit_registered(name="core", version="1.0")
        (event,) = _events(capfd.readouterr().err)
        assert event["level"] == "debug"

    def test_diagnostic_is_warning(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        LogSink().modctl_diagnostic(
            diagnostic={
                "code": "missing_dependency",
                "unit": "web",
                "message": "Unit 'web' is missing dependency 'db'. Unit will be ignored",
                "related": ["db"],
            }
        )
        (event,) = _events(capfd.readouterr().err)
        assert event["level"] == "warning"
        assert event["code"] == "missing_dependency"
        assert event["related"] == ["db"]
        assert "missing dependency 'db'" in str(event["event"])

    def test_dispatched_through_hook_manager(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_json=True)
        manager = HookManager()
        manager.register_plugin(LogSink(), name="log-sink")
        manager.notify("modctl_unit_disabled", name="core", version="1.0")
        manager.notify("modctl_unit_enable_failed", name="web", version="2", reason="nope")
        events = _events(capfd.readouterr().err)
        assert [(e["event"], e["level"]) for e in events] == [
            ("unit disabled", "info"),
            ("unit not enabled", "warning"),
        ]
        assert events[1]["reason"] == "nope"
