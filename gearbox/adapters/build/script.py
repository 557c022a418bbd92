"""
Script build action — runs a tool's ``install-<tool>.sh`` recipe.

Scripts live under ``scripts/installation/categories/<category>/`` in
the gearbox checkout, with ``scripts/install-<tool>.sh`` as a flat
fallback. Builds run in ``$HOME/tools/build``.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from gearbox.adapters.base import BuildAction, BuildOptions, BuildOutcome
from gearbox.core.execution.subprocess_runner import run_command
from gearbox.core.models.tool import ToolSpec

logger = logging.getLogger(__name__)

SCRIPT_CATEGORIES = ("core", "development", "system", "text", "media", "ui")

# Source builds (rustc, LLVM-based tools) can be very slow
DEFAULT_TIMEOUT = 3600


def default_build_dir() -> Path:
    return Path.home() / "tools" / "build"


class ScriptBuildAction(BuildAction):
    """Run the per-tool install script.

    Args:
        repo_dir: gearbox checkout holding ``scripts/``.
        build_dir: Working directory for builds.
        timeout: Seconds before a build is killed.
    """

    def __init__(
        self,
        repo_dir: Path,
        build_dir: Path | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        self.repo_dir = repo_dir
        self.build_dir = build_dir or default_build_dir()
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "script"

    def find_script(self, tool: str) -> Path | None:
        """Locate ``install-<tool>.sh``, category folders first."""
        filename = f"install-{tool}.sh"
        categories = self.repo_dir / "scripts" / "installation" / "categories"
        for category in SCRIPT_CATEGORIES:
            candidate = categories / category / filename
            if candidate.is_file():
                return candidate
        fallback = self.repo_dir / "scripts" / filename
        return fallback if fallback.is_file() else None

    def build_args(self, script: Path, tool: ToolSpec, flag: str, options: BuildOptions) -> list[str]:
        """Command line for one build."""
        args = [str(script)]
        if flag:
            args.append(flag)
        if options.skip_deps:
            args.append("--skip-deps")
        if options.force:
            args.append("--force")
        if options.run_tests:
            args.append("--run-tests")
        if options.no_shell and tool.shell_integration:
            args.append("--no-shell")
        if options.verbose:
            args.append("--verbose")
        if options.dry_run:
            args.append("--dry-run")
        return args

    def execute(self, tool: ToolSpec, profile: str, options: BuildOptions) -> BuildOutcome:
        script = self.find_script(tool.name)
        if script is None:
            return BuildOutcome.failure(f"installation script not found for {tool.name}")

        flag = tool.build_types.get(profile, "")
        cmd = self.build_args(script, tool, flag, options)
        if shutil.which("bash"):
            cmd = ["bash"] + cmd

        try:
            self.build_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return BuildOutcome.failure(f"cannot create build directory {self.build_dir}: {e}")

        logger.info("Building %s (%s) via %s", tool.name, profile, script.name)
        result = run_command(cmd, timeout=self.timeout, cwd=str(self.build_dir))

        output = "\n".join(p for p in (result.get("stdout", ""), result.get("stderr", "")) if p)
        if result["ok"]:
            binary = shutil.which(tool.binary)
            return BuildOutcome(
                success=True,
                output=output,
                binary_paths=[binary] if binary else [],
                build_dir=str(self.build_dir / tool.name),
            )
        return BuildOutcome.failure(result["error"], output=output)
