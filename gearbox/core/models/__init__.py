"""
Domain models — Pydantic types for gearbox.

All models are re-exported here for convenient access:

    from gearbox.core.models import ToolSpec, BundleSpec, InstallationManifest
"""

from gearbox.core.models.manifest import (
    DependencyRecord,
    InstallationManifest,
    InstallationMethod,
    InstallationRecord,
)
from gearbox.core.models.removal import (
    DependencyAction,
    KeepReason,
    RemovalAction,
    RemovalFailure,
    RemovalMethod,
    RemovalOptions,
    RemovalPlan,
    RemovalResult,
    RemovalSummary,
    SafetyLevel,
    SafetyWarning,
)
from gearbox.core.models.tool import BundleSpec, LanguageSpec, ToolSpec

__all__ = [
    # tool.py
    "BundleSpec",
    "LanguageSpec",
    "ToolSpec",
    # manifest.py
    "DependencyRecord",
    "InstallationManifest",
    "InstallationMethod",
    "InstallationRecord",
    # removal.py
    "DependencyAction",
    "KeepReason",
    "RemovalAction",
    "RemovalFailure",
    "RemovalMethod",
    "RemovalOptions",
    "RemovalPlan",
    "RemovalResult",
    "RemovalSummary",
    "SafetyLevel",
    "SafetyWarning",
]
