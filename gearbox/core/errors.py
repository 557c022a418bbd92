"""
Exception hierarchy for gearbox.

Every error the core raises derives from ``GearboxError`` so callers
(the CLI in particular) can catch one type and render it. Per-tool
install failures and per-target removal failures are *values* on the
report objects, not exceptions.
"""

from __future__ import annotations


class GearboxError(Exception):
    """Base class for all gearbox errors."""


class ConfigError(GearboxError):
    """Raised when the tool/bundle catalog is missing or invalid."""


class CircularDependencyError(GearboxError):
    """Raised when bundle expansion revisits a bundle on its own path.

    ``bundle`` is the name that was revisited; ``root`` is the bundle
    whose expansion was requested (the same name for a direct cycle).
    """

    def __init__(self, bundle: str, root: str | None = None) -> None:
        self.bundle = bundle
        self.root = root or bundle
        message = f"circular dependency detected in bundle: {bundle}"
        if self.root != bundle:
            message += f" (while expanding {self.root})"
        super().__init__(message)


class UnknownBundleError(GearboxError):
    """Raised when a bundle (or an included bundle) does not exist."""

    def __init__(self, bundle: str) -> None:
        self.bundle = bundle
        super().__init__(f"bundle not found: {bundle}")


class UnknownToolError(GearboxError):
    """Raised when one or more requested names resolve to no tool."""

    def __init__(self, names: list[str]) -> None:
        self.names = list(names)
        super().__init__(f"unknown tool(s): {', '.join(self.names)}")


class ManifestError(GearboxError):
    """Raised when the manifest cannot be read, parsed, or written."""


class InstallationError(GearboxError):
    """Aggregate error naming every tool whose install failed."""

    def __init__(self, failed: list[str]) -> None:
        self.failed = list(failed)
        super().__init__(
            f"installation failed for {len(self.failed)} tool(s): {', '.join(self.failed)}"
        )


class UnknownMethodError(GearboxError):
    """Raised when dispatching on a method outside the closed set."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"unknown method: {method}")
