"""
Installation orchestrator — plan, then build tools on a bounded pool.

Flow:
    names → expand bundles → resolve specs → language order
          → system packages → worker pool → collect results → track

Install order only decides which jobs are *submitted* first; results
complete in any order and are sorted for display. Each build is an
independent unit of work: a failing tool never stops its siblings.
"""

from __future__ import annotations

import concurrent.futures
import logging
import shutil
import time
from collections.abc import Iterable

from gearbox.adapters.base import BuildAction, BuildOptions, BuildOutcome
from gearbox.core.config.catalog import ConfigCatalog, resolve_build_profile
from gearbox.core.errors import ManifestError, UnknownToolError
from gearbox.core.models.manifest import InstallationMethod
from gearbox.core.models.tool import ToolSpec
from gearbox.core.services.bundles.resolver import (
    bundle_tool_map,
    dedupe,
    expand_mixed,
    expand_system_packages,
)
from gearbox.core.services.install.parallelism import calculate_parallel_jobs
from gearbox.core.services.install.report import (
    InstallOptions,
    InstallPlan,
    InstallReport,
    InstallResult,
    ResultCollector,
)
from gearbox.core.services.manifest.tracker import ManifestTracker, TrackingConfig
from gearbox.core.services.system.package_manager import PackageManager, install_packages

logger = logging.getLogger(__name__)

# Bootstrap toolchains first: Go, then Rust, then the rest
LANGUAGE_PRIORITY = ("go", "rust", "python", "c")


def install_order(tools: Iterable[ToolSpec]) -> list[ToolSpec]:
    """Order tools by language priority.

    Each priority group is sorted by name; tools in any other language
    follow in encounter order.
    """
    tools = list(tools)
    ordered: list[ToolSpec] = []
    for language in LANGUAGE_PRIORITY:
        ordered.extend(sorted((t for t in tools if t.language == language), key=lambda t: t.name))
    ordered.extend(t for t in tools if t.language not in LANGUAGE_PRIORITY)
    return ordered


class InstallationOrchestrator:
    """Resolves requests against the catalog and runs builds in parallel."""

    def __init__(
        self,
        catalog: ConfigCatalog,
        build_action: BuildAction,
        *,
        tracker: ManifestTracker | None = None,
        options: InstallOptions | None = None,
        package_manager: PackageManager | None = None,
    ) -> None:
        self.catalog = catalog
        self.build_action = build_action
        self.tracker = tracker
        self.options = options or InstallOptions()
        self.package_manager = package_manager

    @property
    def build_type(self) -> str:
        return self.options.build_type or self.catalog.default_build_type

    # ── Planning ─────────────────────────────────────────────────

    def plan(self, names: list[str]) -> InstallPlan:
        """Resolve names into an ordered install plan.

        Raises:
            CircularDependencyError: A requested bundle contains a cycle.
            UnknownToolError: Names every requested name that is neither
                a bundle nor a tool.
        """
        expanded = expand_mixed(names, self.catalog)

        missing = [n for n in expanded if self.catalog.find_tool(n) is None]
        if missing:
            raise UnknownToolError(missing)

        specs = [self.catalog.find_tool(n) for n in expanded]
        ordered = install_order(specs)

        plan = InstallPlan(
            requested=list(names),
            tools=ordered,
            bundle_tools=bundle_tool_map(names, self.catalog),
            max_parallel_jobs=calculate_parallel_jobs(
                self.build_type, self.options.max_parallel_jobs,
            ),
        )
        for tool in ordered:
            plan.profiles[tool.name] = resolve_build_profile(
                tool, self.build_type, self.catalog.default_build_type,
            )

        if self.package_manager is not None:
            plan.package_manager = self.package_manager.name
            packages: list[str] = []
            for bundle in plan.bundle_tools:
                packages.extend(expand_system_packages(
                    bundle, self.catalog.bundle_map(), self.package_manager.name,
                ))
            plan.system_packages = dedupe(packages)

        logger.info(
            "Planned %d tools (%d jobs): %s",
            len(ordered), plan.max_parallel_jobs, ", ".join(plan.order),
        )
        return plan

    # ── Execution ────────────────────────────────────────────────

    def install(self, names: list[str]) -> InstallReport:
        """Plan and (unless dry-run) execute an install run.

        Per-tool failures are recorded on the report, never raised.
        Call ``report.raise_for_failures()`` for the aggregate error.
        """
        plan = self.plan(names)
        if self.options.dry_run:
            return InstallReport(plan=plan, dry_run=True)

        report = InstallReport(plan=plan)
        report.system_packages_error = self._install_system_packages(plan)

        collector = ResultCollector()
        to_build = self._filter_pre_existing(plan, collector)

        build_options = BuildOptions(
            run_tests=self.options.run_tests,
            no_shell=self.options.no_shell,
            verbose=self.options.verbose,
        )

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=plan.max_parallel_jobs,
            thread_name_prefix="gearbox-build",
        ) as pool:
            futures = [
                pool.submit(self._install_one, tool, plan, build_options, collector)
                for tool in to_build
            ]
            concurrent.futures.wait(futures)

        report.results = collector.results()
        self._track_bundles(plan, report)

        logger.info(
            "Install finished: %d succeeded, %d skipped, %d failed",
            report.succeeded, report.skipped, report.failed,
        )
        return report

    def _install_system_packages(self, plan: InstallPlan) -> str:
        if self.options.skip_system_packages or not plan.system_packages:
            return ""
        if self.package_manager is None:
            return ""

        result = install_packages(self.package_manager, plan.system_packages)
        if not result.ok:
            logger.error("System package install failed: %s", result.error)
            return result.error
        return ""

    def _filter_pre_existing(self, plan: InstallPlan, collector: ResultCollector) -> list[ToolSpec]:
        """Record untracked tools already on PATH and drop them from the build list."""
        if self.tracker is None or self.options.force:
            return list(plan.tools)

        to_build: list[ToolSpec] = []
        for tool in plan.tools:
            path = self.tracker.detect_pre_existing(tool.name, tool.binary)
            if path is None:
                to_build.append(tool)
                continue
            try:
                self.tracker.track_pre_existing(tool.name, path)
            except ManifestError as e:
                logger.error("Cannot record pre-existing %s: %s", tool.name, e)
            collector.add(InstallResult(
                tool=tool.name,
                success=True,
                skipped=True,
                output=f"pre-existing at {path}",
            ))
            logger.info("Skipping %s, already installed at %s (use --force to rebuild)", tool.name, path)
        return to_build

    def _install_one(
        self,
        tool: ToolSpec,
        plan: InstallPlan,
        options: BuildOptions,
        collector: ResultCollector,
    ) -> None:
        profile, _flag = plan.profiles[tool.name]
        start = time.monotonic()
        try:
            outcome = self.build_action.execute(tool, profile, options)
        except Exception as e:
            logger.exception("Build action raised for %s", tool.name)
            outcome = BuildOutcome.failure(f"build action raised: {e}")
        duration = time.monotonic() - start

        if outcome.success:
            logger.info("Installed %s in %.1fs", tool.name, duration)
            self._track_tool(tool, plan, outcome)
        else:
            logger.warning("Failed to install %s: %s", tool.name, outcome.error)

        collector.add(InstallResult(
            tool=tool.name,
            success=outcome.success,
            error=outcome.error,
            duration=duration,
            output=outcome.output,
        ))

    def _track_tool(self, tool: ToolSpec, plan: InstallPlan, outcome: BuildOutcome) -> None:
        if self.tracker is None:
            return

        bundle = next((b for b, tools in plan.bundle_tools.items() if tool.name in tools), "")
        user_requested = tool.name in plan.requested
        context = [f"bundle:{bundle}"] if bundle else []
        if user_requested:
            context.append("user_request")

        binary_paths = outcome.binary_paths
        if not binary_paths:
            found = shutil.which(tool.binary)
            binary_paths = [found] if found else []

        config = TrackingConfig(
            method=InstallationMethod.SOURCE_BUILD,
            version=outcome.version,
            binary_paths=binary_paths,
            build_dir=outcome.build_dir,
            source_repo=tool.repository,
            dependencies=list(tool.dependencies),
            installed_by_bundle=bundle,
            user_requested=user_requested,
            installation_context=context,
        )
        try:
            self.tracker.track_installation(tool.name, config)
        except ManifestError as e:
            logger.error("Installed %s but could not record it in the manifest: %s", tool.name, e)

    def _track_bundles(self, plan: InstallPlan, report: InstallReport) -> None:
        if self.tracker is None:
            return
        ok = {r.tool for r in report.results if r.success}
        for bundle, tools in plan.bundle_tools.items():
            if not all(t in ok for t in tools):
                logger.info("Not marking bundle %s installed: some tools failed", bundle)
                continue
            try:
                self.tracker.track_bundle(bundle, tools, user_requested=True)
            except ManifestError as e:
                logger.error("Cannot record bundle %s: %s", bundle, e)
