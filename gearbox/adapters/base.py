"""
Build action contract — how the orchestrator asks for a tool to be built.

The orchestrator never knows how a tool is compiled. It hands a
``ToolSpec`` and a build profile to a ``BuildAction`` and gets back a
``BuildOutcome``. Implementations may run a shell script, a binary,
or a container; tests use ``MockBuildAction``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from gearbox.core.models.tool import ToolSpec


class BuildOptions(BaseModel):
    """Switches passed through to every build."""

    skip_deps: bool = True
    force: bool = True
    run_tests: bool = False
    no_shell: bool = False
    verbose: bool = False
    dry_run: bool = False


class BuildOutcome(BaseModel):
    """Result of a single build action."""

    success: bool
    output: str = ""
    error: str = ""

    # Optional install metadata for the manifest
    version: str = ""
    binary_paths: list[str] = Field(default_factory=list)
    build_dir: str = ""

    @classmethod
    def ok(cls, output: str = "") -> BuildOutcome:
        return cls(success=True, output=output)

    @classmethod
    def failure(cls, error: str, output: str = "") -> BuildOutcome:
        return cls(success=False, error=error, output=output)


class BuildAction(ABC):
    """Abstract base class for build actions.

    Build actions perform the external side effect of installing one
    tool. They should report failures in the ``BuildOutcome`` rather
    than raise; the orchestrator still records an unexpected exception
    as a failed result for that tool.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier for logs (e.g., 'script', 'mock')."""

    @abstractmethod
    def execute(self, tool: ToolSpec, profile: str, options: BuildOptions) -> BuildOutcome:
        """Build and install ``tool`` with the given profile."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
