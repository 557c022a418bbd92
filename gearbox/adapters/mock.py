"""
Mock build action — test double for the orchestrator.

Succeeds for every tool by default. Individual tools can be set to
fail, raise, or take a while, and every call is recorded. Also tracks
peak concurrency so tests can check the worker pool bound.
"""

from __future__ import annotations

import threading
import time

from gearbox.adapters.base import BuildAction, BuildOptions, BuildOutcome
from gearbox.core.models.tool import ToolSpec


class MockBuildAction(BuildAction):
    """Configurable, thread-safe build action for tests."""

    def __init__(self, default_output: str = "[mock] built", delay: float = 0.0):
        self._default_output = default_output
        self._delay = delay
        self._responses: dict[str, BuildOutcome] = {}
        self._raises: dict[str, Exception] = {}
        self._call_log: list[tuple[str, str, BuildOptions]] = []
        self._lock = threading.Lock()
        self._active = 0
        self.peak_concurrency = 0

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[tuple[str, str, BuildOptions]]:
        """``(tool, profile, options)`` for every call, in call order."""
        with self._lock:
            return list(self._call_log)

    @property
    def built(self) -> list[str]:
        return [tool for tool, _, _ in self.call_log]

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    def set_failure(self, tool: str, error: str = "Mock failure") -> None:
        """Configure a tool's build to fail."""
        self._responses[tool] = BuildOutcome.failure(error, output="[mock] failed")

    def set_exception(self, tool: str, exc: Exception) -> None:
        """Configure a tool's build to raise."""
        self._raises[tool] = exc

    def execute(self, tool: ToolSpec, profile: str, options: BuildOptions) -> BuildOutcome:
        with self._lock:
            self._call_log.append((tool.name, profile, options))
            self._active += 1
            self.peak_concurrency = max(self.peak_concurrency, self._active)
        try:
            if self._delay:
                time.sleep(self._delay)
            if tool.name in self._raises:
                raise self._raises[tool.name]
            if tool.name in self._responses:
                return self._responses[tool.name]
            return BuildOutcome.ok(self._default_output)
        finally:
            with self._lock:
                self._active -= 1

    def reset(self) -> None:
        """Clear call log and custom responses."""
        with self._lock:
            self._call_log.clear()
            self._responses.clear()
            self._raises.clear()
            self.peak_concurrency = 0
