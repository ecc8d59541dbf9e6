"""DependencyResolver — quarantine units with missing or circular dependencies.

Two fix-point passes alternate until a full round removes nothing:

1. Missing dependencies: a unit whose hard dependency is not a current
   candidate is removed. Removals cascade to dependents on the next
   iteration.
2. Circular dependencies: a depth-first walk from each candidate (in name
   order) looks for an edge back onto the active path. The revisited unit and
   its predecessor are both removed and the walk restarts.

Only hard dependencies take part. Soft dependencies are resolved
opportunistically at enable time and never cause removal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from modctl.domain.errors import Diagnostic, DiagnosticCode
from modctl.domain.units import UnitDescriptor
from modctl.infrastructure.graph.engine import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of one resolution pass.

    Attributes:
        ordered: Surviving units in registry (name) order.
        removed: Names of quarantined units, in removal order.
        diagnostics: One entry per removal.
        graph: The repaired, acyclic dependency graph of the survivors.
    """

    ordered: tuple[UnitDescriptor, ...]
    removed: tuple[str, ...]
    diagnostics: tuple[Diagnostic, ...]
    graph: DependencyGraph

    @property
    def names(self) -> list[str]:
        return [unit.name for unit in self.ordered]

    def activation_plan(self) -> list[str]:
        """Survivors ordered so every hard dependency precedes its dependents."""
        return self.graph.activation_order()


class DependencyResolver:
    """Validates a set of units and returns the subset that can be activated."""

    def resolve(self, units: Iterable[UnitDescriptor]) -> Resolution:
        """Run both fix-point passes over *units*. No unit is mutated."""
        candidates = {unit.name: unit for unit in sorted(units, key=lambda u: u.name)}
        graph = DependencyGraph({name: unit.dependencies for name, unit in candidates.items()})
        removed: list[str] = []
        diagnostics: list[Diagnostic] = []

        rounds = 0
        while True:
            rounds += 1
            dropped = self._drop_missing(graph, removed, diagnostics)
            dropped += self._drop_cycles(graph, removed, diagnostics)
            if dropped == 0:
                break

        assert graph.is_acyclic(), "resolution left a cycle behind"
        logger.debug(
            "Resolved %d of %d units in %d round(s)",
            len(graph),
            len(candidates),
            rounds,
        )
        return Resolution(
            ordered=tuple(candidates[name] for name in graph.names()),
            removed=tuple(removed),
            diagnostics=tuple(diagnostics),
            graph=graph,
        )

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    @staticmethod
    def _drop_missing(
        graph: DependencyGraph,
        removed: list[str],
        diagnostics: list[Diagnostic],
    ) -> int:
        """Remove units with unavailable hard dependencies until stable."""
        total = 0
        while True:
            doomed: list[tuple[str, list[str]]] = []
            for name in graph.names():
                missing = graph.missing_targets(name)
                if missing:
                    doomed.append((name, missing))
            if not doomed:
                return total

            for name, missing in doomed:
                dependency = missing[0]
                reason = "removed" if dependency in removed else "absent"
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.MISSING_DEPENDENCY,
                        unit=name,
                        message=(
                            f"Unit '{name}' is missing dependency '{dependency}'. "
                            "Unit will be ignored"
                        ),
                        related=missing,
                        detail={"reason": reason},
                    )
                )
            for name, _missing in doomed:
                graph.remove(name)
                removed.append(name)
            total += len(doomed)

    @staticmethod
    def _drop_cycles(
        graph: DependencyGraph,
        removed: list[str],
        diagnostics: list[Diagnostic],
    ) -> int:
        """Remove both ends of each cycle-closing edge until no cycle remains."""
        total = 0
        while True:
            edge: tuple[str, str] | None = None
            for name in graph.names():
                edge = graph.find_cycle_edge(name)
                if edge is not None:
                    break
            if edge is None:
                return total

            closing, predecessor = edge
            pair = [closing] if closing == predecessor else [closing, predecessor]
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.CIRCULAR_DEPENDENCY,
                    unit=closing,
                    message=(
                        f"Circular dependency between '{closing}' and '{predecessor}'. "
                        "Both units will be ignored"
                    ),
                    related=[n for n in pair if n != closing],
                )
            )
            for name in pair:
                graph.remove(name)
                removed.append(name)
            total += len(pair)
