"""
Manifest models — the durable record of what gearbox installed.

Serialized to ``~/.gearbox/manifest.json``. This is the only source
consulted when deciding whether something can be removed.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

MANIFEST_SCHEMA_VERSION = "1.0"


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class InstallationMethod(StrEnum):
    """How a tracked entry got onto the system."""

    SOURCE_BUILD = "source-build"
    LANGUAGE_PACKAGE_MANAGER = "language-package-manager"
    SYSTEM_PACKAGE = "system-package"
    PRE_EXISTING = "pre-existing"
    BUNDLE_MARKER = "bundle-marker"


class InstallationRecord(BaseModel):
    """One tracked tool or bundle marker."""

    method: InstallationMethod
    package_manager: str = ""  # cargo, go, pipx, npm
    version: str = ""
    installed_at: str = Field(default_factory=_now_iso)
    binary_paths: list[str] = Field(default_factory=list)
    build_dir: str = ""
    source_repo: str = ""
    dependencies: list[str] = Field(default_factory=list)
    installed_by_bundle: str = ""
    user_requested: bool = False
    installation_context: list[str] = Field(default_factory=list)
    config_files: list[str] = Field(default_factory=list)
    system_packages: list[str] = Field(default_factory=list)


class DependencyRecord(BaseModel):
    """Bookkeeping for a dependency shared between tracked tools."""

    installed_by: str = ""
    version: str = ""
    pre_existing: bool = False
    dependents: list[str] = Field(default_factory=list)
    install_path: str = ""
    installed_at: str = Field(default_factory=_now_iso)


class InstallationManifest(BaseModel):
    """Root manifest document."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: str = MANIFEST_SCHEMA_VERSION

    # ── Records ──────────────────────────────────────────────────
    installations: dict[str, InstallationRecord] = Field(default_factory=dict)
    dependencies: dict[str, DependencyRecord] = Field(default_factory=dict)

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    def get(self, name: str) -> InstallationRecord | None:
        """Look up a tracked record by name."""
        return self.installations.get(name)

    def is_tracked(self, name: str) -> bool:
        return name in self.installations
