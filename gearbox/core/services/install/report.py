"""
Install plan and report types.

``ResultCollector`` is the only object worker threads write to; it
owns its list and lock, and hands out copies.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from gearbox.core.errors import InstallationError
from gearbox.core.models.tool import ToolSpec


@dataclass
class InstallOptions:
    """Caller switches for an install run."""

    build_type: str = ""  # empty: catalog default
    max_parallel_jobs: int = 0  # 0: auto-detect
    dry_run: bool = False
    force: bool = False
    run_tests: bool = False
    no_shell: bool = False
    verbose: bool = False
    skip_system_packages: bool = False


@dataclass
class InstallPlan:
    """Resolved, ordered work for an install run."""

    requested: list[str] = field(default_factory=list)
    tools: list[ToolSpec] = field(default_factory=list)
    profiles: dict[str, tuple[str, str]] = field(default_factory=dict)  # name → (profile, flag)
    bundle_tools: dict[str, list[str]] = field(default_factory=dict)
    system_packages: list[str] = field(default_factory=list)
    package_manager: str = ""
    max_parallel_jobs: int = 1

    @property
    def order(self) -> list[str]:
        return [t.name for t in self.tools]

    def to_dict(self) -> dict:
        return {
            "requested": self.requested,
            "order": self.order,
            "profiles": {name: {"profile": p, "flag": f} for name, (p, f) in self.profiles.items()},
            "bundles": self.bundle_tools,
            "system_packages": self.system_packages,
            "package_manager": self.package_manager,
            "max_parallel_jobs": self.max_parallel_jobs,
        }


@dataclass
class InstallResult:
    """Outcome of one tool's install."""

    tool: str
    success: bool
    error: str = ""
    duration: float = 0.0  # seconds
    output: str = ""
    skipped: bool = False  # pre-existing, left alone

    def to_dict(self) -> dict:
        return {
            "tool": self.tool,
            "success": self.success,
            "skipped": self.skipped,
            "error": self.error,
            "duration": round(self.duration, 3),
        }


class ResultCollector:
    """Mutex-guarded results list shared by the worker pool."""

    def __init__(self) -> None:
        self._results: list[InstallResult] = []
        self._lock = threading.Lock()

    def add(self, result: InstallResult) -> None:
        with self._lock:
            self._results.append(result)

    def results(self) -> list[InstallResult]:
        with self._lock:
            return list(self._results)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


def sort_results(results: list[InstallResult]) -> list[InstallResult]:
    """Successes first, then by tool name."""
    return sorted(results, key=lambda r: (not r.success, r.tool))


@dataclass
class InstallReport:
    """Result of an install run."""

    plan: InstallPlan
    results: list[InstallResult] = field(default_factory=list)
    dry_run: bool = False
    system_packages_error: str = ""

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success and not r.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed_tools(self) -> list[str]:
        return sorted(r.tool for r in self.results if not r.success)

    @property
    def failed(self) -> int:
        return len(self.failed_tools)

    @property
    def total_duration(self) -> float:
        return sum(r.duration for r in self.results)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded + self.skipped > 0:
            return "partial"
        return "failed"

    @property
    def error(self) -> InstallationError | None:
        """Aggregate error naming every failed tool, if any failed."""
        failed = self.failed_tools
        return InstallationError(failed) if failed else None

    def raise_for_failures(self) -> None:
        err = self.error
        if err is not None:
            raise err

    def sorted_results(self) -> list[InstallResult]:
        return sort_results(self.results)

    def to_dict(self) -> dict:
        return {
            "status": "planned" if self.dry_run else self.status,
            "dry_run": self.dry_run,
            "plan": self.plan.to_dict(),
            "total": self.total,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "failed_tools": self.failed_tools,
            "system_packages_error": self.system_packages_error,
            "results": [r.to_dict() for r in self.sorted_results()],
        }
