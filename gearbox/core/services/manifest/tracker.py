"""
Manifest tracker — high-level record keeping on top of ManifestStore.

Every mutating call takes the tracker's lock, updates the in-memory
manifest, and saves it before releasing the lock, so parallel installs
can report success concurrently without interleaving writes. Readers
get deep copies and never see a half-applied update.
"""

from __future__ import annotations

import logging
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path

from gearbox.core.models.manifest import (
    DependencyRecord,
    InstallationManifest,
    InstallationMethod,
    InstallationRecord,
)
from gearbox.core.persistence.manifest_store import ManifestStore

logger = logging.getLogger(__name__)


@dataclass
class TrackingConfig:
    """Parameters describing a completed installation."""

    method: InstallationMethod = InstallationMethod.SOURCE_BUILD
    package_manager: str = ""
    version: str = ""
    binary_paths: list[str] = field(default_factory=list)
    build_dir: str = ""
    source_repo: str = ""
    dependencies: list[str] = field(default_factory=list)
    installed_by_bundle: str = ""
    user_requested: bool = False
    installation_context: list[str] = field(default_factory=list)
    config_files: list[str] = field(default_factory=list)
    system_packages: list[str] = field(default_factory=list)


class ManifestTracker:
    """Thread-safe tracking of installations, bundles, and dependencies."""

    def __init__(self, store: ManifestStore) -> None:
        self.store = store
        self._manifest = store.load()
        self._lock = threading.Lock()

    # ── Reads ────────────────────────────────────────────────────

    def snapshot(self) -> InstallationManifest:
        """Deep copy of the current manifest."""
        with self._lock:
            return self._manifest.model_copy(deep=True)

    def get(self, name: str) -> InstallationRecord | None:
        with self._lock:
            record = self._manifest.get(name)
            return record.model_copy(deep=True) if record else None

    def is_tracked(self, name: str) -> bool:
        with self._lock:
            return self._manifest.is_tracked(name)

    def dependents(self, tool: str, include_bundles: bool = False) -> list[str]:
        """Tracked entries whose dependency list names ``tool``.

        Bundle markers list their member tools as dependencies; they are
        left out unless ``include_bundles`` is set.
        """
        with self._lock:
            return sorted(
                name
                for name, record in self._manifest.installations.items()
                if name != tool
                and tool in record.dependencies
                and (include_bundles or record.method != InstallationMethod.BUNDLE_MARKER)
            )

    def can_safely_remove(self, tool: str) -> tuple[bool, list[str]]:
        """Check whether a tracked tool can go without breaking anything.

        Returns:
            ``(safe, reasons)`` where reasons explain a refusal.
        """
        record = self.get(tool)
        if record is None:
            return False, [f"Tool {tool} is not tracked"]
        if record.method == InstallationMethod.PRE_EXISTING:
            return False, ["Tool was pre-existing before gearbox"]

        dependents = self.dependents(tool)
        if dependents:
            return False, [f"Required by other tools: {', '.join(dependents)}"]
        return True, []

    def installation_stats(self) -> dict[str, int]:
        """Counts by method, plus ``total``, ``bundles`` and ``tools``."""
        with self._lock:
            records = list(self._manifest.installations.values())

        stats: dict[str, int] = {}
        for record in records:
            stats[record.method.value] = stats.get(record.method.value, 0) + 1
        bundles = stats.get(InstallationMethod.BUNDLE_MARKER.value, 0)
        stats["total"] = len(records)
        stats["bundles"] = bundles
        stats["tools"] = len(records) - bundles
        return stats

    def detect_pre_existing(self, tool: str, binary: str = "") -> str | None:
        """Path of ``binary`` on PATH if the tool exists but is untracked."""
        if self.is_tracked(tool):
            return None
        return shutil.which(binary or tool)

    # ── Writes ───────────────────────────────────────────────────

    def track_installation(self, name: str, config: TrackingConfig) -> None:
        """Create or replace the record for a successfully installed tool."""
        record = InstallationRecord(
            method=config.method,
            package_manager=config.package_manager,
            version=config.version,
            binary_paths=list(config.binary_paths),
            build_dir=config.build_dir,
            source_repo=config.source_repo,
            dependencies=list(config.dependencies),
            installed_by_bundle=config.installed_by_bundle,
            user_requested=config.user_requested,
            installation_context=list(config.installation_context),
            config_files=list(config.config_files),
            system_packages=list(config.system_packages),
        )
        with self._lock:
            previous = self._manifest.installations.get(name)
            if previous is not None:
                logger.info("Updating manifest record for reinstalled %s", name)
                self._unlink_dependencies(name)
            self._manifest.installations[name] = record
            for dep in record.dependencies:
                self._link_dependency(dep, name)
            self.store.save(self._manifest)
        logger.debug("Tracked %s (%s)", name, record.method)

    def track_bundle(self, name: str, tools: list[str], user_requested: bool = True) -> None:
        """Record a bundle marker and tag its member tools with the bundle."""
        context = f"bundle:{name}"
        with self._lock:
            self._manifest.installations[name] = InstallationRecord(
                method=InstallationMethod.BUNDLE_MARKER,
                user_requested=user_requested,
                installation_context=[context],
                dependencies=list(tools),
            )
            for tool in tools:
                record = self._manifest.installations.get(tool)
                if record is None:
                    continue
                if not record.installed_by_bundle:
                    record.installed_by_bundle = name
                if context not in record.installation_context:
                    record.installation_context.append(context)
            self.store.save(self._manifest)
        logger.debug("Tracked bundle %s (%d tools)", name, len(tools))

    def track_pre_existing(self, tool: str, path: str, version: str = "") -> None:
        """Record a tool found on the system that gearbox did not install."""
        with self._lock:
            self._manifest.installations[tool] = InstallationRecord(
                method=InstallationMethod.PRE_EXISTING,
                version=version,
                binary_paths=[path] if path else [],
                installation_context=["pre_existing"],
            )
            self.store.save(self._manifest)
        logger.info("Recorded pre-existing %s at %s", tool, path)

    def untrack(self, name: str) -> bool:
        """Drop a record and its dependency links.

        Returns:
            True if a record was removed.
        """
        with self._lock:
            if name not in self._manifest.installations:
                return False
            self._unlink_dependencies(name)
            del self._manifest.installations[name]
            self.store.save(self._manifest)
        logger.debug("Untracked %s", name)
        return True

    def create_snapshot(self, suffix: str = "") -> Path | None:
        """Back up the manifest file before a destructive operation."""
        with self._lock:
            return self.store.backup(suffix)

    # ── Dependency bookkeeping (caller holds the lock) ──────────

    def _link_dependency(self, dep: str, dependent: str) -> None:
        record = self._manifest.dependencies.get(dep)
        if record is None:
            self._manifest.dependencies[dep] = DependencyRecord(
                installed_by="gearbox",
                dependents=[dependent],
            )
        elif dependent not in record.dependents:
            record.dependents.append(dependent)

    def _unlink_dependencies(self, dependent: str) -> None:
        for dep in list(self._manifest.dependencies):
            record = self._manifest.dependencies[dep]
            if dependent in record.dependents:
                record.dependents.remove(dependent)
                if not record.dependents:
                    del self._manifest.dependencies[dep]
