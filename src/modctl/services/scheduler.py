"""PriorityScheduler — ordered, failure-isolated callback invocation.

Callbacks are classified into priority tiers when a descriptor is built;
the scheduler walks tiers in ascending order and, within a tier, in
insertion order.

INVARIANT: A failing callback never blocks its siblings.
"""

from __future__ import annotations

import logging

from modctl.domain.errors import Diagnostic, DiagnosticCode
from modctl.domain.lifecycle import Phase
from modctl.domain.units import Callback, UnitDescriptor

logger = logging.getLogger(__name__)


class PriorityScheduler:
    """Invokes a unit's callbacks for one lifecycle phase."""

    def fetch_callbacks(self, unit: UnitDescriptor, phase: Phase | str) -> list[Callback]:
        """Return the callbacks of *phase* in invocation order."""
        return list(unit.callbacks_for(Phase(phase)))

    def invoke(self, unit: UnitDescriptor, phase: Phase | str) -> list[Diagnostic]:
        """Call every callback of *phase* with no arguments.

        Returns one ``callback_failure`` diagnostic per callback that raised.
        """
        phase = Phase(phase)
        failures: list[Diagnostic] = []
        for callback in self.fetch_callbacks(unit, phase):
            try:
                callback()
            except Exception as exc:
                logger.warning(
                    "Callback %s of unit %s failed during %s",
                    callback.label,
                    unit.name,
                    phase,
                    exc_info=True,
                )
                failures.append(
                    Diagnostic(
                        code=DiagnosticCode.CALLBACK_FAILURE,
                        unit=unit.name,
                        message=f"{phase} callback '{callback.label}' raised {exc!r}",
                        detail={
                            "phase": str(phase),
                            "callback": callback.label,
                            "priority": int(callback.priority),
                            "error_type": type(exc).__name__,
                        },
                    )
                )
        return failures
