"""
Tests for the installation orchestrator — planning, the worker pool,
result collection, and manifest tracking.
"""

from pathlib import Path

import pytest

from gearbox.adapters.mock import MockBuildAction
from gearbox.core.config.catalog import ConfigCatalog
from gearbox.core.errors import CircularDependencyError, InstallationError, UnknownToolError
from gearbox.core.models.manifest import InstallationMethod
from gearbox.core.models.tool import BundleSpec, ToolSpec
from gearbox.core.services.install import (
    InstallationOrchestrator,
    InstallOptions,
    InstallReport,
    InstallResult,
    OrchestratorBuilder,
    install_order,
)
from gearbox.core.services.install.report import InstallPlan, ResultCollector
from gearbox.core.services.manifest.tracker import ManifestTracker
from gearbox.core.services.system.package_manager import PackageInstallResult, PackageManager


def _orchestrator(catalog, build, tracker=None, **opts) -> InstallationOrchestrator:
    opts.setdefault("max_parallel_jobs", 2)
    return InstallationOrchestrator(
        catalog,
        build,
        tracker=tracker,
        options=InstallOptions(**opts),
    )


# ── Planning ─────────────────────────────────────────────────────────


class TestInstallOrder:
    def test_language_priority(self, tools):
        order = [t.name for t in install_order(tools)]
        assert order == [
            "fzf", "lazygit",                   # go
            "bat", "delta", "fd", "ripgrep",    # rust
            "black",                            # python
            "jq",                               # c
            "starship",                         # no language, encounter order
        ]

    def test_ungrouped_keep_encounter_order(self):
        tools = [ToolSpec(name="z", language="zig"), ToolSpec(name="a", language="nim")]
        assert [t.name for t in install_order(tools)] == ["z", "a"]


class TestPlan:
    def test_expands_and_orders(self, catalog, mock_build):
        plan = _orchestrator(catalog, mock_build).plan(["jq", "test-bundle", "fzf"])
        assert plan.order == ["fzf", "fd", "ripgrep", "jq"]
        assert plan.bundle_tools == {"test-bundle": ["fd", "ripgrep"]}
        assert plan.requested == ["jq", "test-bundle", "fzf"]

    def test_duplicates_removed(self, catalog, mock_build):
        plan = _orchestrator(catalog, mock_build).plan(["fd", "test-bundle", "fd"])
        assert plan.order == ["fd", "ripgrep"]

    def test_unknown_tools_all_named(self, catalog, mock_build):
        with pytest.raises(UnknownToolError) as exc:
            _orchestrator(catalog, mock_build).plan(["fd", "nope", "ghost"])
        assert exc.value.names == ["nope", "ghost"]
        assert mock_build.call_count == 0

    def test_cycle_aborts_before_building(self, mock_build):
        catalog = ConfigCatalog(
            tools=[ToolSpec(name="fd")],
            bundles=[
                BundleSpec(name="a", tools=["fd"], includes_bundles=["b"]),
                BundleSpec(name="b", includes_bundles=["a"]),
            ],
        )
        with pytest.raises(CircularDependencyError):
            _orchestrator(catalog, mock_build).install(["a"])
        assert mock_build.call_count == 0

    def test_profiles_resolved(self, catalog, mock_build):
        plan = _orchestrator(catalog, mock_build, build_type="maximum").plan(["fd", "starship"])
        assert plan.profiles["fd"] == ("maximum", "-o")
        assert plan.profiles["starship"] == ("maximum", "")

    def test_build_type_defaults_to_catalog(self, catalog, mock_build):
        assert _orchestrator(catalog, mock_build).build_type == "standard"

    def test_system_packages_for_manager(self, catalog, mock_build):
        orch = _orchestrator(catalog, mock_build)
        orch.package_manager = PackageManager("brew", ("brew", "install"), needs_sudo=False)
        plan = orch.plan(["core-bundle"])
        assert plan.package_manager == "brew"
        assert plan.system_packages == ["git"]

    def test_explicit_jobs_used(self, catalog, mock_build):
        plan = _orchestrator(catalog, mock_build, max_parallel_jobs=3).plan(["fd"])
        assert plan.max_parallel_jobs == 3


# ── Execution ────────────────────────────────────────────────────────


class TestInstall:
    def test_all_succeed(self, catalog, mock_build):
        report = _orchestrator(catalog, mock_build).install(["test-bundle", "jq"])
        assert report.all_ok
        assert report.status == "ok"
        assert report.succeeded == 3
        assert sorted(mock_build.built) == ["fd", "jq", "ripgrep"]
        report.raise_for_failures()

    def test_submission_follows_install_order(self, catalog, mock_build):
        """With one worker, builds run exactly in plan order."""
        orch = _orchestrator(catalog, mock_build, max_parallel_jobs=1)
        orch.install(["jq", "fd", "fzf", "black"])
        assert mock_build.built == ["fzf", "fd", "black", "jq"]

    def test_profile_and_options_passed(self, catalog, mock_build):
        orch = _orchestrator(catalog, mock_build, build_type="minimal", run_tests=True, no_shell=True)
        orch.install(["fd"])
        tool, profile, options = mock_build.call_log[0]
        assert (tool, profile) == ("fd", "minimal")
        assert options.run_tests and options.no_shell
        assert options.skip_deps and options.force

    def test_failure_does_not_stop_siblings(self, catalog, mock_build):
        mock_build.set_failure("ripgrep", "linker error")
        report = _orchestrator(catalog, mock_build).install(["fd", "ripgrep", "bat"])

        assert report.failed_tools == ["ripgrep"]
        assert report.succeeded == 2
        assert report.status == "partial"
        failed = next(r for r in report.results if r.tool == "ripgrep")
        assert failed.error == "linker error"

    def test_exception_is_a_failed_result(self, catalog, mock_build):
        mock_build.set_exception("fd", RuntimeError("boom"))
        report = _orchestrator(catalog, mock_build).install(["fd", "jq"])
        assert report.failed_tools == ["fd"]
        assert "boom" in next(r for r in report.results if r.tool == "fd").error

    def test_all_failed_status(self, catalog, mock_build):
        mock_build.set_failure("fd")
        report = _orchestrator(catalog, mock_build).install(["fd"])
        assert report.status == "failed"

    def test_aggregate_error_names_every_failure(self, catalog, mock_build):
        mock_build.set_failure("fd")
        mock_build.set_failure("jq")
        report = _orchestrator(catalog, mock_build).install(["fd", "jq", "bat"])
        with pytest.raises(InstallationError) as exc:
            report.raise_for_failures()
        assert exc.value.failed == ["fd", "jq"]

    def test_pool_is_bounded(self, catalog):
        build = MockBuildAction(delay=0.05)
        report = _orchestrator(catalog, build, max_parallel_jobs=2).install(
            ["fd", "ripgrep", "bat", "jq", "fzf", "delta"]
        )
        assert report.total == 6
        assert build.peak_concurrency <= 2

    def test_one_result_per_tool(self, catalog):
        build = MockBuildAction(delay=0.01)
        report = _orchestrator(catalog, build, max_parallel_jobs=4).install(
            ["fd", "ripgrep", "bat", "jq", "fzf", "delta", "black", "starship"]
        )
        assert sorted(r.tool for r in report.results) == sorted(
            ["fd", "ripgrep", "bat", "jq", "fzf", "delta", "black", "starship"]
        )

    def test_dry_run_builds_nothing(self, catalog, mock_build, tracker: ManifestTracker):
        report = _orchestrator(catalog, mock_build, tracker=tracker, dry_run=True).install(["test-bundle"])
        assert report.dry_run
        assert report.results == []
        assert report.plan.order == ["fd", "ripgrep"]
        assert report.to_dict()["status"] == "planned"
        assert mock_build.call_count == 0
        assert not tracker.store.exists()


class TestSystemPackages:
    def test_failure_recorded_and_builds_continue(self, catalog, mock_build, monkeypatch):
        calls = []

        def fake_install(manager, packages, **kwargs):
            calls.append(list(packages))
            return PackageInstallResult(manager=manager.name, packages=packages, ok=False, error="E: locked")

        monkeypatch.setattr(
            "gearbox.core.services.install.orchestrator.install_packages", fake_install,
        )
        orch = _orchestrator(catalog, mock_build)
        orch.package_manager = PackageManager("apt", ("apt-get", "install", "-y"))
        report = orch.install(["core-bundle"])

        assert calls == [["git", "curl"]]
        assert report.system_packages_error == "E: locked"
        assert report.succeeded == 3

    def test_skipped_when_requested(self, catalog, mock_build, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("should not install system packages")

        monkeypatch.setattr("gearbox.core.services.install.orchestrator.install_packages", fail)
        orch = _orchestrator(catalog, mock_build, skip_system_packages=True)
        orch.package_manager = PackageManager("apt", ("apt-get", "install", "-y"))
        assert orch.install(["core-bundle"]).all_ok


# ── Tracking ─────────────────────────────────────────────────────────


class TestTracking:
    def test_successful_tools_tracked(self, catalog, mock_build, tracker, empty_path):
        mock_build.set_failure("jq")
        _orchestrator(catalog, mock_build, tracker=tracker).install(["lazygit", "jq"])

        record = tracker.get("lazygit")
        assert record.method == InstallationMethod.SOURCE_BUILD
        assert record.user_requested
        assert record.dependencies == ["delta"]
        assert "user_request" in record.installation_context
        assert not tracker.is_tracked("jq")

    def test_bundle_marker_tracked_when_complete(self, catalog, mock_build, tracker, empty_path):
        _orchestrator(catalog, mock_build, tracker=tracker).install(["test-bundle"])

        marker = tracker.get("test-bundle")
        assert marker.method == InstallationMethod.BUNDLE_MARKER
        assert marker.dependencies == ["fd", "ripgrep"]
        fd = tracker.get("fd")
        assert fd.installed_by_bundle == "test-bundle"
        assert not fd.user_requested

    def test_no_marker_when_a_member_fails(self, catalog, mock_build, tracker, empty_path):
        mock_build.set_failure("ripgrep")
        _orchestrator(catalog, mock_build, tracker=tracker).install(["test-bundle"])
        assert tracker.is_tracked("fd")
        assert not tracker.is_tracked("test-bundle")

    def test_pre_existing_skipped(self, catalog, mock_build, tracker, empty_path: Path):
        rg = empty_path / "rg"
        rg.write_text("#!/bin/sh\n")
        rg.chmod(0o755)

        report = _orchestrator(catalog, mock_build, tracker=tracker).install(["fd", "ripgrep"])

        assert mock_build.built == ["fd"]
        assert report.skipped == 1
        assert report.all_ok
        assert tracker.get("ripgrep").method == InstallationMethod.PRE_EXISTING

    def test_force_rebuilds_pre_existing(self, catalog, mock_build, tracker, empty_path: Path):
        rg = empty_path / "rg"
        rg.write_text("#!/bin/sh\n")
        rg.chmod(0o755)

        _orchestrator(catalog, mock_build, tracker=tracker, force=True).install(["ripgrep"])
        assert mock_build.built == ["ripgrep"]
        assert tracker.get("ripgrep").method == InstallationMethod.SOURCE_BUILD


# ── Report types ─────────────────────────────────────────────────────


class TestReport:
    def test_sorted_results(self):
        report = InstallReport(plan=InstallPlan(), results=[
            InstallResult(tool="zoxide", success=False),
            InstallResult(tool="bat", success=True),
            InstallResult(tool="fd", success=False),
            InstallResult(tool="ack", success=True),
        ])
        assert [r.tool for r in report.sorted_results()] == ["ack", "bat", "fd", "zoxide"]

    def test_collector(self):
        collector = ResultCollector()
        collector.add(InstallResult(tool="fd", success=True))
        results = collector.results()
        results.clear()
        assert len(collector) == 1


class TestBuilder:
    def test_build_from_config_dir(self, project_root, mock_build):
        orch = (
            OrchestratorBuilder(InstallOptions(max_parallel_jobs=2))
            .with_config_dir(project_root / "config")
            .with_build_action(mock_build)
            .with_package_manager(None)
            .build()
        )
        assert orch.catalog.find_tool("fd") is not None
        assert orch.catalog.is_bundle("essential")
        assert orch.build_type == "standard"
        assert orch.options.max_parallel_jobs == 2

    def test_missing_config_dir(self, tmp_path, monkeypatch):
        from gearbox.core.errors import ConfigError

        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GEARBOX_CONFIG_DIR", str(tmp_path / "nowhere"))
        with pytest.raises(ConfigError):
            OrchestratorBuilder().build()

    def test_auto_jobs_resolved(self, project_root, mock_build):
        orch = (
            OrchestratorBuilder()
            .with_config_dir(project_root / "config")
            .with_build_action(mock_build)
            .with_package_manager(None)
            .build()
        )
        assert 1 <= orch.options.max_parallel_jobs <= 8
