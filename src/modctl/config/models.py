"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, modctl.toml only contains overrides.
An empty (or absent) modctl.toml is a valid configuration.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from modctl.plugins.discovery import UNIT_ENTRY_POINT_GROUP
from modctl.plugins.manager import ENTRY_POINT_GROUP

# --- modctl.toml sections ---


class DiscoveryConfig(BaseModel):
    """[discovery] section."""

    model_config = {"frozen": True}

    local_dir: Path | None = Path("units")
    use_entry_points: bool = True
    entry_point_group: str = UNIT_ENTRY_POINT_GROUP


class LifecycleConfig(BaseModel):
    """[lifecycle] section."""

    model_config = {"frozen": True}

    enable_on_start: bool = True


class HooksConfig(BaseModel):
    """[hooks] section."""

    model_config = {"frozen": True}

    log_sink: bool = True
    load_entry_points: bool = True
    entry_point_group: str = ENTRY_POINT_GROUP

