"""
Removal executor — carries out a RemovalPlan, one action at a time.

Actions run sequentially: each may change dependency bookkeeping in
the manifest. A failing action is recorded and the rest still run.
After every successful real removal the manifest record is dropped.
A cascade-delete only runs once nothing tracked depends on it any
more, so a dependent whose removal failed keeps its dependency.

Dry-run walks the same dispatch (so ``preserve`` and unknown methods
fail exactly as they would for real) but touches neither the
filesystem nor the manifest.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from gearbox.core.errors import UnknownMethodError
from gearbox.core.models.removal import (
    DependencyDecision,
    RemovalAction,
    RemovalFailure,
    RemovalMethod,
    RemovalOptions,
    RemovalPlan,
    RemovalResult,
)
from gearbox.core.services.manifest.tracker import ManifestTracker
from gearbox.core.services.uninstall.planner import removal_method_for
from gearbox.core.services.uninstall.uninstaller import Uninstaller

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_SUFFIX = "pre-removal"


class RemovalExecutor:
    """Executes removal plans against the manifest and the system."""

    def __init__(
        self,
        tracker: ManifestTracker,
        uninstaller: Uninstaller | None = None,
        dry_run: bool = False,
    ) -> None:
        self.tracker = tracker
        self.uninstaller = uninstaller or Uninstaller()
        self.dry_run = dry_run
        self._handlers: dict[RemovalMethod, Callable[[RemovalAction, RemovalResult], str]] = {
            RemovalMethod.SOURCE_BUILD: self._remove_files,
            RemovalMethod.FILESYSTEM_DELETE: self._remove_files,
            RemovalMethod.CARGO_UNINSTALL: self._remove_with_package_manager,
            RemovalMethod.PIPX_UNINSTALL: self._remove_with_package_manager,
            RemovalMethod.NPM_UNINSTALL: self._remove_with_package_manager,
            RemovalMethod.GO_CLEAN: self._remove_go_tool,
            RemovalMethod.SYSTEM_UNINSTALL: self._remove_system_package,
            RemovalMethod.BUNDLE_REMOVE: self._remove_bundle,
        }

    def execute_plan(self, plan: RemovalPlan, options: RemovalOptions | None = None) -> RemovalResult:
        """Execute every removal and cascade action in the plan.

        Raises:
            ManifestError: If the pre-removal snapshot or a manifest
                update fails.
        """
        options = options or RemovalOptions()
        result = RemovalResult(dry_run=self.dry_run)

        if options.backup and not self.dry_run:
            backup = self.tracker.create_snapshot(options.backup_suffix or DEFAULT_BACKUP_SUFFIX)
            result.backup_created = str(backup) if backup else ""

        for action in plan.to_remove:
            self._run(action, result)

        failed = set(result.failed_targets())
        for dep in plan.dependencies:
            if dep.action != DependencyDecision.CASCADE_DELETE:
                continue
            record = self.tracker.get(dep.dependency)
            if record is None:
                logger.info("Cascade: %s is not tracked, nothing to remove", dep.dependency)
                continue
            # A dependent whose removal failed is still installed
            if self.dry_run:
                blocking = [d for d in dep.affected if d in failed]
            else:
                blocking = self.tracker.dependents(dep.dependency)
            if blocking:
                logger.warning("Cascade: keeping %s, still needed by %s", dep.dependency, blocking)
                result.failed.append(RemovalFailure(
                    target=dep.dependency,
                    error=f"still needed by: {', '.join(blocking)}",
                ))
                continue
            try:
                method = removal_method_for(record)
            except UnknownMethodError as e:
                result.failed.append(RemovalFailure(target=dep.dependency, error=str(e)))
                continue
            paths = list(record.binary_paths) + ([record.build_dir] if record.build_dir else [])
            self._run(
                RemovalAction(
                    target=dep.dependency,
                    method=method,
                    paths=paths,
                    reason=dep.reason,
                    is_safe=True,
                ),
                result,
            )

        logger.info(
            "%s: %d removed, %d failed",
            "Dry run" if self.dry_run else "Removal",
            len(result.removed), len(result.failed),
        )
        return result

    def _run(self, action: RemovalAction, result: RemovalResult) -> None:
        error = self._dispatch(action, result)
        if error:
            logger.warning("Failed to remove %s: %s", action.target, error)
            result.failed.append(RemovalFailure(target=action.target, error=error))
            return

        result.removed.append(action.target)
        if not self.dry_run:
            self.tracker.untrack(action.target)

    def _dispatch(self, action: RemovalAction, result: RemovalResult) -> str:
        """Run one action; returns an error message, or "" on success."""
        if action.method == RemovalMethod.PRESERVE:
            return f"cannot remove pre-existing tool: {action.target}"

        handler = self._handlers.get(action.method)
        if handler is None:
            return str(UnknownMethodError(str(action.method)))

        if self.dry_run:
            logger.info("DRY RUN: would remove %s using method %s", action.target, action.method)
            return ""

        logger.info("Removing %s (%s)", action.target, action.method)
        return handler(action, result)

    # ── Handlers (return "" on success) ─────────────────────────

    def _remove_files(self, action: RemovalAction, result: RemovalResult) -> str:
        freed, errors = self.uninstaller.delete_paths(action.paths)
        result.space_freed += freed
        if errors:
            return "removal errors: " + "; ".join(errors)
        return ""

    def _remove_with_package_manager(self, action: RemovalAction, result: RemovalResult) -> str:
        outcome = self.uninstaller.package_uninstall(action.method, action.target)
        return "" if outcome["ok"] else outcome["error"]

    def _remove_go_tool(self, action: RemovalAction, result: RemovalResult) -> str:
        error = self._remove_files(action, result)
        if error:
            return error
        self.uninstaller.go_clean()
        return ""

    def _remove_system_package(self, action: RemovalAction, result: RemovalResult) -> str:
        outcome = self.uninstaller.system_remove(action.target)
        return "" if outcome["ok"] else outcome["error"]

    def _remove_bundle(self, action: RemovalAction, result: RemovalResult) -> str:
        # Only the marker goes; member tools are their own actions
        logger.info("Removing bundle tracking for %s", action.target)
        return ""
