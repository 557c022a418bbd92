"""
OrchestratorBuilder — assembles an InstallationOrchestrator step by step.

Each concern is its own method so it can be exercised alone:

    detect_paths → load_tools → load_bundles → setup_parallelism
        → detect_package_manager → build()

``build()`` runs whichever steps have not been run yet, in that order.
"""

from __future__ import annotations

import logging
from pathlib import Path

from gearbox.adapters.base import BuildAction
from gearbox.adapters.build.script import ScriptBuildAction
from gearbox.core.config.catalog import ConfigCatalog
from gearbox.core.config.loader import (
    BUNDLES_FILE,
    TOOLS_FILE,
    find_config_dir,
    load_bundles,
    load_tools,
)
from gearbox.core.errors import ConfigError
from gearbox.core.models.tool import BundlesDocument, ToolsDocument
from gearbox.core.services.install.orchestrator import InstallationOrchestrator
from gearbox.core.services.install.parallelism import calculate_parallel_jobs
from gearbox.core.services.install.report import InstallOptions
from gearbox.core.services.manifest.tracker import ManifestTracker
from gearbox.core.services.system.package_manager import PackageManager, detect_package_manager

logger = logging.getLogger(__name__)


class OrchestratorBuilder:
    """Step-wise construction of an orchestrator."""

    def __init__(self, options: InstallOptions | None = None) -> None:
        self.options = options or InstallOptions()
        self.repo_dir: Path | None = None
        self.config_dir: Path | None = None
        self.tools_doc: ToolsDocument | None = None
        self.bundles_doc: BundlesDocument | None = None
        self.package_manager: PackageManager | None = None
        self.build_action: BuildAction | None = None
        self.tracker: ManifestTracker | None = None
        self._parallelism_done = False
        self._package_manager_done = False

    # ── Injection ────────────────────────────────────────────────

    def with_repo_dir(self, path: Path) -> OrchestratorBuilder:
        self.repo_dir = path
        return self

    def with_config_dir(self, path: Path) -> OrchestratorBuilder:
        self.config_dir = path
        return self

    def with_build_action(self, action: BuildAction) -> OrchestratorBuilder:
        self.build_action = action
        return self

    def with_tracker(self, tracker: ManifestTracker) -> OrchestratorBuilder:
        self.tracker = tracker
        return self

    def with_package_manager(self, manager: PackageManager | None) -> OrchestratorBuilder:
        self.package_manager = manager
        self._package_manager_done = True
        return self

    # ── Steps ────────────────────────────────────────────────────

    def detect_paths(self) -> OrchestratorBuilder:
        """Resolve the config directory and the checkout holding ``scripts/``."""
        if self.config_dir is None:
            self.config_dir = find_config_dir()
        if self.config_dir is None:
            raise ConfigError(f"No {TOOLS_FILE} found; pass --config-dir or set GEARBOX_CONFIG_DIR")
        if self.repo_dir is None:
            self.repo_dir = self.config_dir.resolve().parent
        logger.debug("Config dir: %s, repo dir: %s", self.config_dir, self.repo_dir)
        return self

    def load_tools(self) -> OrchestratorBuilder:
        """Load ``tools.json``; fills in the build type from its default."""
        if self.config_dir is None:
            self.detect_paths()
        self.tools_doc = load_tools(self.config_dir / TOOLS_FILE)
        if not self.options.build_type:
            self.options.build_type = self.tools_doc.default_build_type
        return self

    def load_bundles(self) -> OrchestratorBuilder:
        """Load ``bundles.json`` (missing file means no bundles)."""
        if self.config_dir is None:
            self.detect_paths()
        self.bundles_doc = load_bundles(self.config_dir / BUNDLES_FILE)
        return self

    def setup_parallelism(self) -> OrchestratorBuilder:
        """Replace an auto (0) job count with a detected one."""
        self.options.max_parallel_jobs = calculate_parallel_jobs(
            self.options.build_type or "standard",
            self.options.max_parallel_jobs,
        )
        self._parallelism_done = True
        return self

    def detect_package_manager(self) -> OrchestratorBuilder:
        """Find the system package manager; absence is not an error."""
        self.package_manager = detect_package_manager()
        self._package_manager_done = True
        return self

    # ── Assembly ─────────────────────────────────────────────────

    def build(self) -> InstallationOrchestrator:
        """Run any remaining steps and construct the orchestrator.

        Raises:
            ConfigError: If the catalog cannot be found or is invalid.
        """
        if self.config_dir is None:
            self.detect_paths()
        if self.tools_doc is None:
            self.load_tools()
        if not self._parallelism_done:
            self.setup_parallelism()
        if self.bundles_doc is None:
            self.load_bundles()
        if not self._package_manager_done:
            self.detect_package_manager()

        catalog = ConfigCatalog(
            tools=self.tools_doc.tools,
            bundles=self.bundles_doc.bundles,
            default_build_type=self.tools_doc.default_build_type,
            categories=self.tools_doc.categories,
            languages=self.tools_doc.languages,
        )
        action = self.build_action or ScriptBuildAction(self.repo_dir)

        return InstallationOrchestrator(
            catalog,
            action,
            tracker=self.tracker,
            options=self.options,
            package_manager=self.package_manager,
        )
