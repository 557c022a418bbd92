"""
Shared test fixtures and configuration.
"""

from pathlib import Path
from typing import Any

import pytest

from gearbox.adapters.mock import MockBuildAction
from gearbox.core.config.catalog import ConfigCatalog
from gearbox.core.models.manifest import InstallationMethod
from gearbox.core.models.removal import RemovalMethod
from gearbox.core.models.tool import BundleSpec, ToolSpec
from gearbox.core.persistence.manifest_store import ManifestStore
from gearbox.core.services.manifest.tracker import ManifestTracker, TrackingConfig
from gearbox.core.services.uninstall.uninstaller import Uninstaller

PROFILES = {"minimal": "-m", "standard": "-r", "maximum": "-o"}


def make_tool(name: str, language: str = "", **kwargs: Any) -> ToolSpec:
    kwargs.setdefault("build_types", PROFILES)
    return ToolSpec(name=name, language=language, **kwargs)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def tools() -> list[ToolSpec]:
    return [
        make_tool("fd", "rust"),
        make_tool("ripgrep", "rust", binary_name="rg"),
        make_tool("bat", "rust"),
        make_tool("jq", "c"),
        make_tool("fzf", "go"),
        make_tool("lazygit", "go", dependencies=["delta"]),
        make_tool("delta", "rust"),
        make_tool("black", "python"),
        make_tool("starship", "", build_types={}),
    ]


@pytest.fixture
def bundles() -> list[BundleSpec]:
    return [
        BundleSpec(name="test-bundle", tools=["fd", "ripgrep"]),
        BundleSpec(
            name="core-bundle",
            tools=["jq", "fd"],
            includes_bundles=["test-bundle"],
            system_packages=["git", "curl"],
            package_managers={"brew": ["git"]},
        ),
        BundleSpec(name="git-bundle", tools=["lazygit", "delta"]),
    ]


@pytest.fixture
def catalog(tools, bundles) -> ConfigCatalog:
    return ConfigCatalog(tools=tools, bundles=bundles)


@pytest.fixture
def mock_build() -> MockBuildAction:
    return MockBuildAction()


@pytest.fixture
def empty_path(tmp_path: Path, monkeypatch) -> Path:
    """PATH pointing at an empty directory, so no tool looks pre-existing."""
    bin_dir = tmp_path / "empty-bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", str(bin_dir))
    return bin_dir


@pytest.fixture
def store(tmp_path: Path) -> ManifestStore:
    return ManifestStore(tmp_path / "home" / "manifest.json")


@pytest.fixture
def tracker(store: ManifestStore) -> ManifestTracker:
    return ManifestTracker(store)


@pytest.fixture
def track(tracker: ManifestTracker):
    """Record a tool in the manifest the way a successful install would."""

    def _track(
        name: str,
        dependencies: list[str] | None = None,
        method: InstallationMethod = InstallationMethod.SOURCE_BUILD,
        **kwargs: Any,
    ) -> None:
        tracker.track_installation(
            name,
            TrackingConfig(method=method, dependencies=dependencies or [], **kwargs),
        )

    return _track


class RecordingUninstaller(Uninstaller):
    """Uninstaller that records package-manager calls instead of running them.

    Filesystem deletion is real, so tests point it at ``tmp_path``.
    """

    def __init__(self) -> None:
        super().__init__(system_manager="apt")
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, str] = {}

    def _outcome(self, package: str) -> dict[str, Any]:
        if package in self.failures:
            return {"ok": False, "error": self.failures[package]}
        return {"ok": True}

    def package_uninstall(self, method: RemovalMethod, package: str) -> dict[str, Any]:
        self.calls.append((str(method), package))
        return self._outcome(package)

    def go_clean(self) -> dict[str, Any]:
        self.calls.append(("go-clean", ""))
        return {"ok": True}

    def system_remove(self, package: str) -> dict[str, Any]:
        self.calls.append(("system-uninstall", package))
        return self._outcome(package)


@pytest.fixture
def uninstaller() -> RecordingUninstaller:
    return RecordingUninstaller()
