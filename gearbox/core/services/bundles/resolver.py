"""
Bundle resolver — flattens bundles into ordered, deduplicated tool lists.

Pure functions over a ``name → BundleSpec`` mapping. Ordering contract:
included bundles are expanded before a bundle's direct tools, and the
first occurrence of a name wins. Install order ties depend on this.

Cycle detection uses a path set that is *copied* into every recursive
branch, so siblings never share state: ``a → [b, c]`` with both ``b``
and ``c`` including ``d`` is a diamond, not a cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from gearbox.core.errors import CircularDependencyError, UnknownBundleError
from gearbox.core.models.tool import BundleSpec

if TYPE_CHECKING:
    from gearbox.core.config.catalog import ConfigCatalog

logger = logging.getLogger(__name__)


def dedupe(names: Iterable[str]) -> list[str]:
    """Drop repeated names, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            unique.append(name)
    return unique


def expand_bundle(
    name: str,
    bundles: Mapping[str, BundleSpec],
    visited: frozenset[str] = frozenset(),
) -> list[str]:
    """Expand a bundle into its tool names.

    Args:
        name: Bundle to expand.
        bundles: All known bundles by name.
        visited: Bundles already on the current expansion path.

    Returns:
        Deduplicated tool names, included-bundle tools first.

    Raises:
        CircularDependencyError: If a bundle is reached again on its own
            path. No partial result is returned.
        UnknownBundleError: If ``name`` or an included bundle is missing.
    """
    try:
        return _expand(name, bundles, visited, _direct_tools)
    except CircularDependencyError as e:
        if visited:
            raise
        raise CircularDependencyError(e.bundle, root=name) from e


def expand_system_packages(
    name: str,
    bundles: Mapping[str, BundleSpec],
    manager: str,
    visited: frozenset[str] = frozenset(),
) -> list[str]:
    """Collect system packages for a bundle and everything it includes.

    A bundle's ``package_managers[manager]`` list wins over its generic
    ``system_packages``. Same ordering and cycle rules as ``expand_bundle``.
    """
    def direct(bundle: BundleSpec) -> list[str]:
        if manager in bundle.package_managers:
            return list(bundle.package_managers[manager])
        return list(bundle.system_packages)

    try:
        return _expand(name, bundles, visited, direct)
    except CircularDependencyError as e:
        if visited:
            raise
        raise CircularDependencyError(e.bundle, root=name) from e


def _direct_tools(bundle: BundleSpec) -> list[str]:
    return list(bundle.tools)


def _expand(name, bundles, visited, direct) -> list[str]:
    if name in visited:
        raise CircularDependencyError(name)

    bundle = bundles.get(name)
    if bundle is None:
        raise UnknownBundleError(name)

    path = visited | {name}
    collected: list[str] = []
    for included in bundle.includes_bundles:
        collected.extend(_expand(included, bundles, path, direct))
    collected.extend(direct(bundle))

    return dedupe(collected)


def expand_mixed(names: Iterable[str], catalog: ConfigCatalog) -> list[str]:
    """Expand a mix of bundle and tool names into one tool list.

    Names that are bundles in the catalog are expanded; anything else
    is passed through as a literal tool name (resolution happens later).
    The result is deduplicated across the whole input.
    """
    bundles = catalog.bundle_map()
    collected: list[str] = []
    for name in names:
        if catalog.is_bundle(name):
            expanded = expand_bundle(name, bundles)
            logger.debug("Bundle %s expanded to %d tools", name, len(expanded))
            collected.extend(expanded)
        else:
            collected.append(name)
    return dedupe(collected)


def bundle_tool_map(names: Iterable[str], catalog: ConfigCatalog) -> dict[str, list[str]]:
    """Map each requested bundle name to the tools it expands to.

    Non-bundle names are ignored.
    """
    bundles = catalog.bundle_map()
    return {
        name: expand_bundle(name, bundles)
        for name in dedupe(names)
        if catalog.is_bundle(name)
    }
