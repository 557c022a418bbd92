"""Build actions — the boundary between gearbox and real build recipes."""

from gearbox.adapters.base import BuildAction, BuildOptions, BuildOutcome
from gearbox.adapters.mock import MockBuildAction

__all__ = ["BuildAction", "BuildOptions", "BuildOutcome", "MockBuildAction"]
