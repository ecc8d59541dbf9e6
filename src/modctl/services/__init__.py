"""Service layer — resolution, scheduling, lifecycle, and orchestration.

Services may import from domain, infrastructure and plugins.
They must never import from commands or output.
"""

from modctl.services.orchestrator import Orchestrator
from modctl.services.result import OperationReport

__all__ = ["OperationReport", "Orchestrator"]
