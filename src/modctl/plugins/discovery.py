"""Discovery sources — turn unit factories into descriptors.

A source is anything with ``discover(orchestrator) -> Discovery``. Each
factory receives the orchestrator explicitly so a unit can keep a reference
to it; there is no ambient global to reach for.

Errors are logged as warnings and recorded as ``plugin_creation_failed``
diagnostics but never raised — a broken unit must not prevent the rest of
the system from starting.
"""

from __future__ import annotations

import importlib.util
import logging
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from importlib.metadata import entry_points
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from modctl.domain.errors import Diagnostic, PluginCreationFailedError
from modctl.domain.units import UnitDescriptor

if TYPE_CHECKING:
    from modctl.services.orchestrator import Orchestrator

UNIT_ENTRY_POINT_GROUP = "modctl.units"
FACTORY_NAME = "create_unit"

logger = logging.getLogger(__name__)

type UnitFactory = Callable[[Orchestrator], UnitDescriptor | Iterable[UnitDescriptor]]


@dataclass
class Discovery:
    """Descriptors produced by one discovery run, plus creation failures."""

    descriptors: list[UnitDescriptor] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def extend(self, other: Discovery) -> None:
        self.descriptors.extend(other.descriptors)
        self.diagnostics.extend(other.diagnostics)


class DiscoverySource(Protocol):
    """Supplies fresh descriptors on every call."""

    def discover(self, orchestrator: Orchestrator) -> Discovery: ...


def materialize(
    origin: str,
    factory: UnitFactory,
    orchestrator: Orchestrator,
    into: Discovery,
) -> None:
    """Call *factory* and append its descriptors (or its failure) to *into*."""
    try:
        produced = factory(orchestrator)
        items = [produced] if isinstance(produced, UnitDescriptor) else list(produced)
        for item in items:
            if not isinstance(item, UnitDescriptor):
                msg = f"factory returned {type(item).__name__}, expected UnitDescriptor"
                raise TypeError(msg)
    except Exception as exc:
        error = PluginCreationFailedError(origin, exc)
        logger.warning("%s", error, exc_info=True)
        into.diagnostics.append(error.to_diagnostic())
        return
    into.descriptors.extend(items)


class StaticSource:
    """Fixed list of in-process factories."""

    def __init__(self, factories: Iterable[UnitFactory]) -> None:
        self._factories = list(factories)

    def discover(self, orchestrator: Orchestrator) -> Discovery:
        found = Discovery()
        for factory in self._factories:
            origin = getattr(factory, "__qualname__", None) or repr(factory)
            materialize(origin, factory, orchestrator, found)
        return found


class LocalDirectorySource:
    """Single-file Python units in a directory.

    Each ``*.py`` file (excluding ``_``-prefixed names) is executed as a fresh
    module on every discovery run and must define a module-level
    ``create_unit(orchestrator)`` factory.
    """

    def __init__(self, directory: Path, *, factory_name: str = FACTORY_NAME) -> None:
        self.directory = directory
        self._factory_name = factory_name

    def discover(self, orchestrator: Orchestrator) -> Discovery:
        found = Discovery()
        if not self.directory.is_dir():
            logger.debug("Unit directory %s does not exist", self.directory)
            return found

        for py_file in sorted(self.directory.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"modctl_local_unit_{py_file.stem}"
            # Drop the previous copy so a reload re-executes the file
            sys.modules.pop(module_name, None)
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    msg = "could not create a module spec"
                    raise ImportError(msg)
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
                factory = getattr(module, self._factory_name, None)
                if not callable(factory):
                    msg = f"module defines no callable '{self._factory_name}'"
                    raise AttributeError(msg)
            except Exception as exc:
                sys.modules.pop(module_name, None)
                error = PluginCreationFailedError(str(py_file), exc)
                logger.warning("%s", error, exc_info=True)
                found.diagnostics.append(error.to_diagnostic())
                continue

            materialize(str(py_file), factory, orchestrator, found)
            logger.debug("Loaded local unit module %s", py_file)
        return found


class EntryPointSource:
    """Factories published under an entry point group by installed packages."""

    def __init__(self, group: str = UNIT_ENTRY_POINT_GROUP) -> None:
        self.group = group

    def discover(self, orchestrator: Orchestrator) -> Discovery:
        found = Discovery()
        for ep in sorted(entry_points(group=self.group), key=lambda e: e.name):
            try:
                factory = ep.load()
            except Exception as exc:
                error = PluginCreationFailedError(ep.name, exc)
                logger.warning("%s", error, exc_info=True)
                found.diagnostics.append(error.to_diagnostic())
                continue
            materialize(ep.name, factory, orchestrator, found)
        return found


class ChainedSource:
    """Concatenate several sources, in order."""

    def __init__(self, *sources: DiscoverySource) -> None:
        self.sources = list(sources)

    def discover(self, orchestrator: Orchestrator) -> Discovery:
        found = Discovery()
        for source in self.sources:
            found.extend(source.discover(orchestrator))
        return found
