"""Built-in observer that writes lifecycle events to the log.

Registered by default on every orchestrator. Output routing and format are
whatever :func:`modctl.config.logging.configure_logging` set up.
"""

from __future__ import annotations

from typing import Any

import structlog

from modctl.plugins.hookspecs import hookimpl

log = structlog.get_logger("modctl.lifecycle")


class LogSink:
    """Report every lifecycle event through structlog."""

    @hookimpl
    def modctl_unit_registered(self, name: str, version: str) -> None:
        log.debug("unit registered", unit=name, version=version)

    @hookimpl
    def modctl_unit_enabled(self, name: str, version: str) -> None:
        log.info("unit enabled", unit=name, version=version)

    @hookimpl
    def modctl_unit_enable_failed(self, name: str, version: str, reason: str) -> None:
        log.warning("unit not enabled", unit=name, version=version, reason=reason)

    @hookimpl
    def modctl_unit_disabled(self, name: str, version: str) -> None:
        log.info("unit disabled", unit=name, version=version)

    @hookimpl
    def modctl_diagnostic(self, diagnostic: dict[str, Any]) -> None:
        log.warning(
            diagnostic["message"],
            code=str(diagnostic["code"]),
            unit=diagnostic["unit"],
            related=diagnostic.get("related", []),
        )
