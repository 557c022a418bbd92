"""
Removal models — plans, options, and results for uninstalling.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class RemovalMethod(StrEnum):
    """Closed set of ways a tracked entry can be removed."""

    SOURCE_BUILD = "source-build"
    CARGO_UNINSTALL = "cargo-uninstall"
    GO_CLEAN = "go-clean"
    PIPX_UNINSTALL = "pipx-uninstall"
    NPM_UNINSTALL = "npm-uninstall"
    SYSTEM_UNINSTALL = "system-uninstall"
    FILESYSTEM_DELETE = "filesystem-delete"
    BUNDLE_REMOVE = "bundle-remove"
    PRESERVE = "preserve"


class SafetyLevel(StrEnum):
    """How loudly the planner warns about risky removals."""

    CONSERVATIVE = "conservative"
    STANDARD = "standard"
    AGGRESSIVE = "aggressive"


class RemovalOptions(BaseModel):
    """Caller switches for planning and executing a removal."""

    force: bool = False
    cascade: bool = False
    remove_config: bool = False
    remove_bundle_contents: bool = False
    backup: bool = True
    backup_suffix: str = ""
    dry_run: bool = False


class RemovalAction(BaseModel):
    """A single planned removal."""

    target: str
    method: RemovalMethod
    paths: list[str] = Field(default_factory=list)
    reason: str = ""
    dependencies: list[str] = Field(default_factory=list)
    is_safe: bool = True


class DependencyDecision(StrEnum):
    """What the planner decided for a dependency of removed tools."""

    PRESERVE = "preserve"
    CASCADE_DELETE = "cascade-delete"


class DependencyAction(BaseModel):
    """What happens to a shared dependency once its dependents go."""

    dependency: str
    action: DependencyDecision
    affected: list[str] = Field(default_factory=list)
    remaining: list[str] = Field(default_factory=list)
    reason: str = ""


class KeepReason(BaseModel):
    """A target the planner refused to remove, and why."""

    target: str
    reasons: list[str] = Field(default_factory=list)


class SafetyWarning(BaseModel):
    """A warning attached to a target in the plan."""

    target: str
    level: str = "warning"  # info, warning, error
    message: str


class RemovalSummary(BaseModel):
    """Counts for a plan."""

    total_requested: int = 0
    will_remove: int = 0
    will_keep: int = 0
    warning_count: int = 0
    method_breakdown: dict[str, int] = Field(default_factory=dict)
    dependency_actions: dict[str, int] = Field(default_factory=dict)


class RemovalPlan(BaseModel):
    """The full output of the removal planner."""

    to_remove: list[RemovalAction] = Field(default_factory=list)
    to_keep: list[KeepReason] = Field(default_factory=list)
    dependencies: list[DependencyAction] = Field(default_factory=list)
    warnings: list[SafetyWarning] = Field(default_factory=list)
    summary: RemovalSummary = Field(default_factory=RemovalSummary)

    def removal_targets(self) -> list[str]:
        return [a.target for a in self.to_remove]

    def kept_targets(self) -> list[str]:
        return [k.target for k in self.to_keep]


class RemovalFailure(BaseModel):
    """A removal that was attempted and failed."""

    target: str
    error: str


_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(size: int) -> str:
    """Render a byte count as ``512 B``, ``1.5 KB``, ``2 GB``."""
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_UNITS) - 1:
        value /= 1024
        unit += 1
    if value == int(value):
        return f"{value:.0f} {_UNITS[unit]}"
    return f"{value:.1f} {_UNITS[unit]}"


class RemovalResult(BaseModel):
    """Outcome of executing a removal plan."""

    removed: list[str] = Field(default_factory=list)
    failed: list[RemovalFailure] = Field(default_factory=list)
    dry_run: bool = False
    space_freed: int = 0
    backup_created: str = ""  # path of the manifest snapshot, if any

    @property
    def ok(self) -> bool:
        return not self.failed

    def failed_targets(self) -> list[str]:
        return [f.target for f in self.failed]

    def format_space_freed(self) -> str:
        return format_bytes(self.space_freed)

    def summary(self) -> str:
        """Multi-line human summary, identical in shape for dry runs."""
        lines = ["🧪 Dry Run Summary:" if self.dry_run else "📊 Removal Summary:"]
        lines.append(f"✅ Successfully removed: {len(self.removed)} tools")
        if self.failed:
            lines.append(f"❌ Failed to remove: {len(self.failed)} tools")
        if self.space_freed > 0:
            lines.append(f"💾 Space freed: {self.format_space_freed()}")
        if self.backup_created:
            lines.append("🔄 Backup created before removal")
        return "\n".join(lines)
