"""Bundle expansion."""

from gearbox.core.services.bundles.resolver import (
    bundle_tool_map,
    expand_bundle,
    expand_mixed,
    expand_system_packages,
)

__all__ = [
    "bundle_tool_map",
    "expand_bundle",
    "expand_mixed",
    "expand_system_packages",
]
