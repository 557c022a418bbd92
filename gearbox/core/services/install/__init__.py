"""Installation orchestration."""

from gearbox.core.services.install.builder import OrchestratorBuilder
from gearbox.core.services.install.orchestrator import InstallationOrchestrator, install_order
from gearbox.core.services.install.report import (
    InstallOptions,
    InstallPlan,
    InstallReport,
    InstallResult,
)

__all__ = [
    "InstallOptions",
    "InstallPlan",
    "InstallReport",
    "InstallResult",
    "InstallationOrchestrator",
    "OrchestratorBuilder",
    "install_order",
]
