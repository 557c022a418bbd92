"""Uninstall planning and execution."""

from gearbox.core.services.uninstall.executor import RemovalExecutor
from gearbox.core.services.uninstall.planner import RemovalPlanner, removal_method_for
from gearbox.core.services.uninstall.uninstaller import Uninstaller

__all__ = ["RemovalExecutor", "RemovalPlanner", "Uninstaller", "removal_method_for"]
