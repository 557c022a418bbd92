"""
ConfigCatalog — immutable lookup over tool and bundle specifications.

Constructed once (usually by ``load_catalog``) and passed explicitly
to every component. Nothing mutates it after ``__init__``; hot reload
goes through ``CatalogHandle`` which swaps the whole reference.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType

from gearbox.core.errors import ConfigError
from gearbox.core.models.tool import BUILD_PROFILES, BundleSpec, LanguageSpec, ToolSpec

logger = logging.getLogger(__name__)


class ConfigCatalog:
    """Validated, read-only catalog of tools and bundles.

    Validation is eager: duplicate names, a tool and a bundle sharing a
    name, and bundles referencing undefined tools or bundles all fail
    here rather than during expansion.
    """

    def __init__(
        self,
        tools: Iterable[ToolSpec],
        bundles: Iterable[BundleSpec] = (),
        default_build_type: str = "standard",
        categories: Mapping[str, str] | None = None,
        languages: Mapping[str, LanguageSpec] | None = None,
    ) -> None:
        self._tools = MappingProxyType(_index(tools, "tool"))
        self._bundles = MappingProxyType(_index(bundles, "bundle"))
        self._default_build_type = default_build_type
        self._categories = MappingProxyType(dict(categories or {}))
        self._languages = MappingProxyType(dict(languages or {}))
        self._validate()

    # ── Lookup ───────────────────────────────────────────────────

    def find_tool(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def find_bundle(self, name: str) -> BundleSpec | None:
        return self._bundles.get(name)

    def is_bundle(self, name: str) -> bool:
        return name in self._bundles

    def all_tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def all_bundles(self) -> list[BundleSpec]:
        return list(self._bundles.values())

    def bundle_map(self) -> Mapping[str, BundleSpec]:
        """Read-only name → bundle view, as consumed by the resolver."""
        return self._bundles

    def tools_in_category(self, category: str) -> list[ToolSpec]:
        return [t for t in self._tools.values() if t.category == category]

    @property
    def default_build_type(self) -> str:
        return self._default_build_type

    @property
    def categories(self) -> Mapping[str, str]:
        return self._categories

    @property
    def languages(self) -> Mapping[str, LanguageSpec]:
        return self._languages

    # ── Validation ───────────────────────────────────────────────

    def _validate(self) -> None:
        clashes = sorted(set(self._tools) & set(self._bundles))
        if clashes:
            raise ConfigError(
                f"Names used by both a tool and a bundle: {', '.join(clashes)}"
            )

        for bundle in self._bundles.values():
            for tool in bundle.tools:
                if tool not in self._tools:
                    raise ConfigError(
                        f"Bundle '{bundle.name}' references undefined tool '{tool}'"
                    )
            for included in bundle.includes_bundles:
                if included not in self._bundles:
                    raise ConfigError(
                        f"Bundle '{bundle.name}' includes undefined bundle '{included}'"
                    )

        if self._default_build_type not in BUILD_PROFILES:
            raise ConfigError(
                f"Unknown default_build_type '{self._default_build_type}' "
                f"(expected one of: {', '.join(BUILD_PROFILES)})"
            )


def _index(items: Iterable, kind: str) -> dict:
    """Index specs by name, rejecting duplicates."""
    index: dict = {}
    for item in items:
        if item.name in index:
            raise ConfigError(f"Duplicate {kind} name: {item.name}")
        index[item.name] = item
    return index


def resolve_build_profile(
    tool: ToolSpec,
    profile: str,
    default: str = "standard",
) -> tuple[str, str]:
    """Pick the build profile and flag to use for a tool.

    An unsupported profile falls back to ``default``, then ``standard``,
    then the first profile the tool declares. A tool with no profiles
    gets an empty flag (the build script's own default).

    Returns:
        ``(profile, flag)``
    """
    if not tool.build_types:
        return profile, ""

    if profile in tool.build_types:
        return profile, tool.build_types[profile]

    candidate = next(
        (c for c in (default, "standard") if c in tool.build_types),
        next(iter(tool.build_types)),
    )
    logger.info(
        "Tool %s does not support build type '%s', using '%s'",
        tool.name, profile, candidate,
    )
    return candidate, tool.build_types[candidate]


class CatalogHandle:
    """Hot-reloadable reference to a ConfigCatalog.

    Readers call ``current()`` and keep the returned catalog for the
    rest of their operation; ``reload()`` builds a fresh catalog and
    swaps the reference under a lock. A failed reload keeps the old one.
    """

    def __init__(
        self,
        catalog: ConfigCatalog,
        loader: Callable[[], ConfigCatalog] | None = None,
    ) -> None:
        self._catalog = catalog
        self._loader = loader
        self._lock = threading.Lock()

    def current(self) -> ConfigCatalog:
        with self._lock:
            return self._catalog

    def reload(self) -> ConfigCatalog:
        """Rebuild the catalog via the loader and swap it in.

        Raises:
            ConfigError: If no loader was given or the new catalog is invalid.
        """
        if self._loader is None:
            raise ConfigError("Catalog handle has no loader to reload from")

        fresh = self._loader()
        with self._lock:
            self._catalog = fresh
        logger.info("Catalog reloaded: %d tools", len(fresh.all_tools()))
        return fresh
