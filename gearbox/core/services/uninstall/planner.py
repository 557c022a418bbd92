"""
Removal planner — decides what an uninstall request may touch.

The manifest is the only input consulted: a target that gearbox did
not record is never planned for removal. Classification per target:

    bundle marker        → bundle-remove (+ members if requested)
    untracked            → info warning, skipped
    pre-existing         → kept unless forced (forced: unsafe)
    has live dependents  → kept unless forced (forced: unsafe)
    dependent was kept   → kept as well, repeated until stable
    otherwise            → safe removal

Dependency analysis then decides, per dependency of the removed tools,
whether it is cascade-deleted (no dependents left and ``cascade``) or
preserved.
"""

from __future__ import annotations

import logging

from gearbox.core.errors import UnknownMethodError
from gearbox.core.models.manifest import InstallationMethod, InstallationRecord
from gearbox.core.models.removal import (
    DependencyAction,
    DependencyDecision,
    KeepReason,
    RemovalAction,
    RemovalMethod,
    RemovalOptions,
    RemovalPlan,
    RemovalSummary,
    SafetyLevel,
    SafetyWarning,
)
from gearbox.core.services.bundles.resolver import dedupe
from gearbox.core.services.manifest.tracker import ManifestTracker

logger = logging.getLogger(__name__)

_PACKAGE_MANAGER_METHODS = {
    "cargo": RemovalMethod.CARGO_UNINSTALL,
    "go": RemovalMethod.GO_CLEAN,
    "pipx": RemovalMethod.PIPX_UNINSTALL,
    "npm": RemovalMethod.NPM_UNINSTALL,
}

METHOD_DESCRIPTIONS = {
    RemovalMethod.SOURCE_BUILD: "Remove binaries and build artifacts from source installation",
    RemovalMethod.CARGO_UNINSTALL: "Use 'cargo uninstall' to remove Rust tool",
    RemovalMethod.GO_CLEAN: "Remove Go tool binary and clean module cache",
    RemovalMethod.PIPX_UNINSTALL: "Use 'pipx uninstall' to remove Python tool",
    RemovalMethod.NPM_UNINSTALL: "Use 'npm uninstall -g' to remove Node.js tool",
    RemovalMethod.SYSTEM_UNINSTALL: "Use system package manager to uninstall",
    RemovalMethod.FILESYSTEM_DELETE: "Delete recorded files and directories",
    RemovalMethod.BUNDLE_REMOVE: "Remove bundle tracking and optionally contained tools",
    RemovalMethod.PRESERVE: "Preserve pre-existing installation",
}


_INSTALL_TO_REMOVAL = {
    InstallationMethod.SOURCE_BUILD: RemovalMethod.SOURCE_BUILD,
    InstallationMethod.SYSTEM_PACKAGE: RemovalMethod.SYSTEM_UNINSTALL,
    InstallationMethod.PRE_EXISTING: RemovalMethod.PRESERVE,
    InstallationMethod.BUNDLE_MARKER: RemovalMethod.BUNDLE_REMOVE,
}


def removal_method_for(record: InstallationRecord) -> RemovalMethod:
    """Map how something was installed to how it is removed.

    Raises:
        UnknownMethodError: For a package manager gearbox cannot drive.
    """
    if record.method == InstallationMethod.LANGUAGE_PACKAGE_MANAGER:
        if not record.package_manager:
            return RemovalMethod.FILESYSTEM_DELETE
        method = _PACKAGE_MANAGER_METHODS.get(record.package_manager)
        if method is None:
            raise UnknownMethodError(f"language-package-manager:{record.package_manager}")
        return method

    method = _INSTALL_TO_REMOVAL.get(record.method)
    if method is None:
        raise UnknownMethodError(str(record.method))
    return method


class RemovalPlanner:
    """Builds and validates removal plans from the manifest."""

    def __init__(
        self,
        tracker: ManifestTracker,
        safety_level: SafetyLevel = SafetyLevel.STANDARD,
    ) -> None:
        self.tracker = tracker
        self.safety_level = safety_level

    # ── Planning ─────────────────────────────────────────────────

    def plan_removal(self, targets: list[str], options: RemovalOptions | None = None) -> RemovalPlan:
        """Classify each target and analyze shared dependencies.

        Raises:
            UnknownMethodError: A tracked record has a method outside
                the known set.
        """
        options = options or RemovalOptions()
        targets = dedupe(targets)
        plan = RemovalPlan()

        requested = self._requested_set(targets, options)
        seen: set[str] = set()
        for target in targets:
            self._analyze_target(target, plan, options, requested, seen)
        self._keep_blocked(plan, options)

        self._analyze_dependencies(plan, options)
        plan.summary = _summarize(plan, len(targets))

        logger.info(
            "Removal plan: %d to remove, %d kept, %d warnings",
            plan.summary.will_remove, plan.summary.will_keep, plan.summary.warning_count,
        )
        return plan

    def _requested_set(self, targets: list[str], options: RemovalOptions) -> set[str]:
        """Everything this request may remove, bundle members included."""
        requested = set(targets)
        if options.remove_bundle_contents:
            pending = list(targets)
            while pending:
                record = self.tracker.get(pending.pop())
                if record is None or record.method != InstallationMethod.BUNDLE_MARKER:
                    continue
                for member in record.dependencies:
                    if member not in requested:
                        requested.add(member)
                        pending.append(member)
        return requested

    def _analyze_target(
        self,
        target: str,
        plan: RemovalPlan,
        options: RemovalOptions,
        requested: set[str],
        seen: set[str],
    ) -> None:
        if target in seen:
            return
        seen.add(target)

        record = self.tracker.get(target)
        if record is None:
            plan.warnings.append(SafetyWarning(
                target=target,
                level="info",
                message="Tool is not tracked by gearbox - may not be installed or is pre-existing",
            ))
            return

        if record.method == InstallationMethod.BUNDLE_MARKER:
            self._analyze_bundle(target, record, plan, options, requested, seen)
            return

        reasons: list[str] = []
        if record.method == InstallationMethod.PRE_EXISTING:
            reasons.append("Tool was pre-existing before gearbox installation (not gearbox-managed)")
        live = [d for d in self.tracker.dependents(target) if d not in requested]
        if live:
            reasons.append(f"Required by other tools: {', '.join(live)}")

        if reasons and not options.force:
            plan.to_keep.append(KeepReason(target=target, reasons=reasons))
            return

        if reasons:
            plan.warnings.append(SafetyWarning(
                target=target,
                level="warning",
                message="Forcing removal despite dependencies: " + ", ".join(reasons),
            ))

        paths = list(record.binary_paths)
        if record.build_dir:
            paths.append(record.build_dir)
        if options.remove_config:
            paths.extend(record.config_files)

        plan.to_remove.append(RemovalAction(
            target=target,
            method=removal_method_for(record),
            paths=paths,
            dependencies=list(record.dependencies),
            is_safe=not reasons,
            reason="User requested removal",
        ))

    def _analyze_bundle(
        self,
        name: str,
        record: InstallationRecord,
        plan: RemovalPlan,
        options: RemovalOptions,
        requested: set[str],
        seen: set[str],
    ) -> None:
        members = list(record.dependencies)
        plan.to_remove.append(RemovalAction(
            target=name,
            method=RemovalMethod.BUNDLE_REMOVE,
            dependencies=members,
            is_safe=True,
            reason="User requested bundle removal",
        ))

        if options.remove_bundle_contents:
            for member in members:
                self._analyze_target(member, plan, options, requested, seen)
        elif members:
            plan.warnings.append(SafetyWarning(
                target=name,
                level="info",
                message=(
                    f"Bundle contains {len(members)} tools that will remain installed: "
                    f"{', '.join(members)}"
                ),
            ))

    def _keep_blocked(self, plan: RemovalPlan, options: RemovalOptions) -> None:
        """Move planned tools back to ``to_keep`` while a dependent stays.

        Targets are first classified against everything requested; a
        requested dependent that was itself kept still needs its
        dependencies, so this repeats until the plan stops changing.
        """
        if options.force:
            return

        changed = True
        while changed:
            changed = False
            removing = set(plan.removal_targets())
            for action in list(plan.to_remove):
                if action.method == RemovalMethod.BUNDLE_REMOVE:
                    continue
                blocked = [d for d in self.tracker.dependents(action.target) if d not in removing]
                if not blocked:
                    continue
                logger.debug("Keeping %s: still required by %s", action.target, blocked)
                plan.to_remove.remove(action)
                plan.to_keep.append(KeepReason(
                    target=action.target,
                    reasons=[f"Required by kept tools: {', '.join(blocked)}"],
                ))
                removing.discard(action.target)
                changed = True

    def _analyze_dependencies(self, plan: RemovalPlan, options: RemovalOptions) -> None:
        removing = set(plan.removal_targets())

        deps: list[str] = []
        for action in plan.to_remove:
            if action.method == RemovalMethod.BUNDLE_REMOVE:
                continue
            deps.extend(d for d in action.dependencies if d not in removing)

        for dep in dedupe(deps):
            affected = self.tracker.dependents(dep)
            remaining = [d for d in affected if d not in removing]
            dep_record = self.tracker.get(dep)

            if dep_record is not None and dep_record.method == InstallationMethod.PRE_EXISTING:
                action, reason = DependencyDecision.PRESERVE, "Pre-existing dependency - not managed by gearbox"
            elif remaining:
                action, reason = DependencyDecision.PRESERVE, f"Still needed by: {', '.join(remaining)}"
            elif options.cascade:
                action, reason = DependencyDecision.CASCADE_DELETE, "No remaining dependents - removing with cascade"
            else:
                action, reason = DependencyDecision.PRESERVE, "No remaining dependents but cascade not enabled - keeping"

            plan.dependencies.append(DependencyAction(
                dependency=dep,
                action=action,
                affected=affected,
                remaining=remaining,
                reason=reason,
            ))

    # ── Validation ───────────────────────────────────────────────

    def validate_plan(self, plan: RemovalPlan) -> list[SafetyWarning]:
        """Extra warnings for a plan, according to the safety level.

        Warnings never block; callers decide whether to prompt.
        """
        warnings: list[SafetyWarning] = []

        for action in plan.to_remove:
            if not action.is_safe:
                warnings.append(SafetyWarning(
                    target=action.target,
                    level="error",
                    message="Forced removal may break other tools",
                ))

        for dep in plan.dependencies:
            if dep.action == DependencyDecision.CASCADE_DELETE and len(dep.affected) > 1:
                warnings.append(SafetyWarning(
                    target=dep.dependency,
                    level="warning",
                    message=(
                        f"Removing shared dependency used by {len(dep.affected)} tools: "
                        f"{', '.join(dep.affected)}"
                    ),
                ))

        if self.safety_level == SafetyLevel.CONSERVATIVE:
            for action in plan.to_remove:
                warnings.append(SafetyWarning(
                    target=action.target,
                    level="info",
                    message="Conservative mode: double-check removal is necessary",
                ))
        elif self.safety_level == SafetyLevel.AGGRESSIVE:
            if plan.summary.will_keep > plan.summary.will_remove:
                warnings.append(SafetyWarning(
                    target="general",
                    level="info",
                    message="Aggressive mode: consider using --force to remove more tools",
                ))

        return warnings


def _summarize(plan: RemovalPlan, total_requested: int) -> RemovalSummary:
    summary = RemovalSummary(
        total_requested=total_requested,
        will_remove=len(plan.to_remove),
        will_keep=len(plan.to_keep),
        warning_count=len(plan.warnings),
    )
    for action in plan.to_remove:
        key = action.method.value
        summary.method_breakdown[key] = summary.method_breakdown.get(key, 0) + 1
    for dep in plan.dependencies:
        key = dep.action.value
        summary.dependency_actions[key] = summary.dependency_actions.get(key, 0) + 1
    return summary
