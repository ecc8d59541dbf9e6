"""Extension layer — observer hooks via pluggy and unit discovery sources.

INVARIANT: Observer and discovery failures are warnings, never errors.
"""

from modctl.plugins.discovery import (
    ChainedSource,
    Discovery,
    DiscoverySource,
    EntryPointSource,
    LocalDirectorySource,
    StaticSource,
)
from modctl.plugins.manager import HookManager

__all__ = [
    "ChainedSource",
    "Discovery",
    "DiscoverySource",
    "EntryPointSource",
    "HookManager",
    "LocalDirectorySource",
    "StaticSource",
]
