"""UnitRegistry — name-unique mapping of unit descriptors.

Iteration is lexicographic by name so that resolution, activation and
diagnostics come out in the same order on every run.
"""

from __future__ import annotations

from collections.abc import Iterator

from modctl.domain.errors import DuplicateUnitError
from modctl.domain.units import UnitDescriptor


class UnitRegistry:
    """Mapping from unit name to descriptor with insertion-time uniqueness."""

    def __init__(self) -> None:
        self._units: dict[str, UnitDescriptor] = {}

    def add(self, unit: UnitDescriptor) -> None:
        """Insert *unit*; the first registration of a name wins.

        Raises:
            DuplicateUnitError: If a unit with the same name is present.
        """
        existing = self._units.get(unit.name)
        if existing is not None:
            raise DuplicateUnitError(
                unit.name,
                kept_version=existing.version,
                dropped_version=unit.version,
            )
        self._units[unit.name] = unit

    def get(self, name: str) -> UnitDescriptor | None:
        return self._units.get(name)

    def names(self) -> list[str]:
        return sorted(self._units)

    def clear(self) -> None:
        self._units.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __iter__(self) -> Iterator[UnitDescriptor]:
        for name in self.names():
            yield self._units[name]

    def __len__(self) -> int:
        return len(self._units)
