"""
Tests for the CLI — commands, exit codes, and JSON output.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from gearbox.core.persistence.manifest_store import ManifestStore
from gearbox.core.services.manifest.tracker import ManifestTracker, TrackingConfig
from gearbox.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def home(tmp_path: Path, monkeypatch, empty_path) -> Path:
    """Isolated HOME and GEARBOX_HOME with nothing on PATH."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GEARBOX_HOME", str(home / ".gearbox"))
    monkeypatch.delenv("GEARBOX_LOG_LEVEL", raising=False)
    monkeypatch.delenv("GEARBOX_LOG_FILE", raising=False)
    return home


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """A checkout with a two-tool catalog and install scripts."""
    repo = tmp_path / "repo"
    config = repo / "config"
    config.mkdir(parents=True)
    (config / "tools.json").write_text(json.dumps({
        "tools": [
            {"name": "hello", "language": "go", "build_types": {"standard": "--standard"}},
            {"name": "broken", "language": "rust"},
        ],
    }))
    (config / "bundles.json").write_text(json.dumps({
        "bundles": [{"name": "greetings", "tools": ["hello"]}],
    }))

    scripts = repo / "scripts"
    scripts.mkdir()
    for name, body in (("hello", "echo built hello $1"), ("broken", "echo oops >&2\nexit 3")):
        script = scripts / f"install-{name}.sh"
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(0o755)
    return repo


def _tracker() -> ManifestTracker:
    return ManifestTracker(ManifestStore())


class TestCliBasics:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "gearbox" in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("install", "uninstall", "uninstall-plan", "list", "show", "manifest"):
            assert command in result.output


class TestListAndShow:
    def test_list_tools(self, runner, project_root, home):
        result = runner.invoke(cli, ["--config-dir", str(project_root / "config"), "list"])
        assert result.exit_code == 0
        assert "ripgrep" in result.output
        assert "Core Development Tools" in result.output

    def test_list_bundles_json(self, runner, project_root, home):
        result = runner.invoke(
            cli, ["-q", "--config-dir", str(project_root / "config"), "list", "--bundles", "--json"],
        )
        assert result.exit_code == 0
        names = [b["name"] for b in json.loads(result.output)]
        assert "essential" in names

    def test_show_bundle(self, runner, project_root, home):
        result = runner.invoke(cli, ["--config-dir", str(project_root / "config"), "show", "navigation"])
        assert result.exit_code == 0
        assert "zoxide" in result.output
        assert "Includes bundles: essential" in result.output

    def test_show_unknown_bundle(self, runner, project_root, home):
        result = runner.invoke(cli, ["--config-dir", str(project_root / "config"), "show", "ghost"])
        assert result.exit_code == 1
        assert "bundle not found: ghost" in result.output

    def test_missing_catalog(self, runner, tmp_path, home):
        result = runner.invoke(cli, ["--config-dir", str(tmp_path / "nowhere"), "list"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestInstallCommand:
    def test_dry_run(self, runner, repo, home):
        result = runner.invoke(
            cli, ["--config-dir", str(repo / "config"), "install", "greetings", "broken", "--dry-run"],
        )
        assert result.exit_code == 0
        assert "Installation plan (2 tools)" in result.output
        assert not (home / ".gearbox" / "manifest.json").exists()

    def test_dry_run_json(self, runner, repo, home):
        result = runner.invoke(
            cli, ["-q", "--config-dir", str(repo / "config"), "install", "hello", "--dry-run", "--json", "-j", "3"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "planned"
        assert data["plan"]["order"] == ["hello"]
        assert data["plan"]["max_parallel_jobs"] == 3

    def test_unknown_tool(self, runner, repo, home):
        result = runner.invoke(cli, ["--config-dir", str(repo / "config"), "install", "nope"])
        assert result.exit_code == 1
        assert "unknown tool(s): nope" in result.output

    def test_install_tracks_success(self, runner, repo, home):
        result = runner.invoke(cli, ["--config-dir", str(repo / "config"), "install", "greetings"])
        assert result.exit_code == 0, result.output
        assert "All tools installed successfully" in result.output

        tracker = _tracker()
        assert tracker.is_tracked("hello")
        assert tracker.is_tracked("greetings")

    def test_partial_failure_exits_nonzero(self, runner, repo, home):
        result = runner.invoke(cli, ["--config-dir", str(repo / "config"), "install", "hello", "broken"])
        assert result.exit_code == 1
        assert "installation failed for 1 tool(s): broken" in result.output
        assert _tracker().is_tracked("hello")
        assert not _tracker().is_tracked("broken")

    def test_json_failure(self, runner, repo, home):
        result = runner.invoke(
            cli, ["-q", "--config-dir", str(repo / "config"), "install", "broken", "--json"],
        )
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["status"] == "failed"
        assert data["failed_tools"] == ["broken"]


class TestUninstallCommands:
    def test_uninstall_after_install(self, runner, repo, home):
        runner.invoke(cli, ["--config-dir", str(repo / "config"), "install", "hello"])
        result = runner.invoke(cli, ["uninstall", "hello", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Removal complete" in result.output
        assert not _tracker().is_tracked("hello")
        assert ManifestStore().list_backups()

    def test_kept_target_exits_nonzero(self, runner, home):
        tracker = _tracker()
        tracker.track_installation("fd", TrackingConfig())
        tracker.track_installation("yazi", TrackingConfig(dependencies=["fd"]))

        result = runner.invoke(cli, ["uninstall", "fd", "--yes"])
        assert result.exit_code == 1
        assert "kept: fd" in result.output
        assert "Required by other tools: yazi" in result.output
        assert _tracker().is_tracked("fd")

    def test_dry_run_changes_nothing(self, runner, home):
        _tracker().track_installation("bat", TrackingConfig())

        result = runner.invoke(cli, ["uninstall", "bat", "--dry-run"])
        assert result.exit_code == 0
        assert "Dry Run Summary" in result.output
        assert _tracker().is_tracked("bat")

    def test_declined_confirmation(self, runner, home):
        _tracker().track_installation("bat", TrackingConfig())
        result = runner.invoke(cli, ["uninstall", "bat"], input="n\n")
        assert result.exit_code == 1
        assert _tracker().is_tracked("bat")

    def test_failed_removal_listed(self, runner, home):
        _tracker().track_pre_existing("git", "/usr/bin/git")
        result = runner.invoke(cli, ["uninstall", "git", "--force", "--yes", "--no-backup"])
        assert result.exit_code == 1
        assert "Not removed: git" in result.output

    def test_plan_json(self, runner, home):
        tracker = _tracker()
        tracker.track_installation("delta", TrackingConfig())
        tracker.track_installation("lazygit", TrackingConfig(dependencies=["delta"]))

        result = runner.invoke(
            cli, ["-q", "uninstall-plan", "lazygit", "--cascade", "--safety", "conservative", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [a["target"] for a in data["to_remove"]] == ["lazygit"]
        assert data["dependencies"][0]["action"] == "cascade-delete"
        assert data["validation"][0]["level"] == "info"
        # Planning never writes
        assert _tracker().is_tracked("lazygit")


class TestManifestCommands:
    def test_status_empty(self, runner, home):
        result = runner.invoke(cli, ["manifest", "status"])
        assert result.exit_code == 0
        assert "not created yet" in result.output

    def test_status_json(self, runner, home):
        _tracker().track_installation("bat", TrackingConfig(version="0.24"))
        result = runner.invoke(cli, ["-q", "manifest", "status", "--json"])
        data = json.loads(result.output)
        assert data["stats"]["tools"] == 1
        assert data["installations"]["bat"]["version"] == "0.24"

    def test_corrupt_manifest(self, runner, home):
        path = home / ".gearbox" / "manifest.json"
        path.parent.mkdir(parents=True)
        path.write_text("{{{")
        result = runner.invoke(cli, ["manifest", "status"])
        assert result.exit_code == 1
        assert "Corrupt manifest" in result.output

    def test_backups_and_restore(self, runner, home):
        tracker = _tracker()
        tracker.track_installation("bat", TrackingConfig())
        backup = tracker.create_snapshot("before")
        tracker.untrack("bat")

        listed = runner.invoke(cli, ["manifest", "backups"])
        assert backup.name in listed.output

        result = runner.invoke(cli, ["manifest", "restore", backup.name, "--yes"])
        assert result.exit_code == 0
        assert "Restored 1 entries" in result.output
        assert _tracker().is_tracked("bat")

    def test_no_backups(self, runner, home):
        result = runner.invoke(cli, ["manifest", "backups"])
        assert "No backups found" in result.output
