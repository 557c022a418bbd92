"""
Uninstaller — the external side effects of removing things.

Package-manager commands come from ``core/data/uninstall_catalog.py``
and run through the shared subprocess runner. Filesystem deletion
measures what it frees before deleting. Every method returns a result
dict (``{"ok": ..., "error": ...}``) and never raises for a failed
command.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any

from gearbox.core.data.uninstall_catalog import (
    SYSTEM_REMOVE_COMMANDS,
    UNINSTALL_COMMANDS,
    render,
)
from gearbox.core.execution.subprocess_runner import run_command
from gearbox.core.models.removal import RemovalMethod

logger = logging.getLogger(__name__)


def path_size(path: Path) -> int:
    """Total bytes under ``path``; unreadable entries are skipped."""
    if path.is_symlink() or path.is_file():
        try:
            return path.lstat().st_size
        except OSError:
            return 0

    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += (Path(root) / name).lstat().st_size
            except OSError:
                continue
    return total


class Uninstaller:
    """Runs uninstall commands and deletes files."""

    def __init__(self, system_manager: str | None = None, timeout: int = 600) -> None:
        self.system_manager = system_manager
        self.timeout = timeout

    def package_uninstall(self, method: RemovalMethod, package: str) -> dict[str, Any]:
        """``cargo uninstall`` / ``pipx uninstall`` / ``npm uninstall -g``."""
        template = UNINSTALL_COMMANDS.get(method)
        if template is None:
            return {"ok": False, "error": f"no uninstall command for method {method}"}
        result = run_command(
            render(template, package),
            needs_sudo=template["needs_sudo"],
            timeout=self.timeout,
        )
        return _with_detail(result, f"{method} failed")

    def go_clean(self) -> dict[str, Any]:
        """Clean the Go module cache. Best effort: failures are only logged."""
        template = UNINSTALL_COMMANDS[RemovalMethod.GO_CLEAN]
        result = run_command(render(template, ""), timeout=self.timeout)
        if not result["ok"]:
            logger.info("go clean -modcache failed (ignored): %s", result["error"])
        return {"ok": True}

    def system_remove(self, package: str) -> dict[str, Any]:
        """Remove a system package with the host's package manager."""
        manager = self.system_manager or _detect_system_manager()
        if manager is None or manager not in SYSTEM_REMOVE_COMMANDS:
            return {"ok": False, "error": "no supported package manager found"}
        template = SYSTEM_REMOVE_COMMANDS[manager]
        result = run_command(
            render(template, package),
            needs_sudo=template["needs_sudo"],
            timeout=self.timeout,
        )
        return _with_detail(result, "package removal failed")

    def delete_paths(self, paths: list[str]) -> tuple[int, list[str]]:
        """Delete files and directories.

        Returns:
            ``(bytes_freed, errors)``. Missing paths are not errors.
        """
        freed = 0
        errors: list[str] = []
        for raw in paths:
            if not raw:
                continue
            path = Path(raw)
            if not path.exists() and not path.is_symlink():
                continue

            size = path_size(path)
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                errors.append(f"failed to remove {path}: {e}")
                continue
            freed += size
            logger.debug("Deleted %s (%d bytes)", path, size)
        return freed, errors


def _detect_system_manager() -> str | None:
    for name, template in SYSTEM_REMOVE_COMMANDS.items():
        if shutil.which(template["command"][0]):
            return name
    return None


def _with_detail(result: dict[str, Any], prefix: str) -> dict[str, Any]:
    if result["ok"]:
        return result
    detail = result.get("stderr") or result.get("stdout") or ""
    error = f"{prefix}: {result['error']}"
    if detail:
        error += f"\nOutput: {detail.strip()}"
    return {**result, "error": error}
