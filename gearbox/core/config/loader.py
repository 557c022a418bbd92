"""
Configuration loader — reads tools.json / bundles.json into a catalog.

Documents are parsed with PyYAML (JSON is a subset of YAML, so both
formats are accepted), validated against Pydantic schemas, and handed
to ``ConfigCatalog`` which checks cross-references eagerly.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gearbox.core.config.catalog import ConfigCatalog
from gearbox.core.errors import ConfigError
from gearbox.core.models.tool import BundlesDocument, ToolsDocument

logger = logging.getLogger(__name__)

TOOLS_FILE = "tools.json"
BUNDLES_FILE = "bundles.json"

CONFIG_DIR_ENV = "GEARBOX_CONFIG_DIR"

# Searched after walking up from the CWD
_FALLBACK_DIRS = (Path.home() / ".gearbox", Path("/etc/gearbox"))


def find_config_dir(start_dir: Path | None = None) -> Path | None:
    """Locate the directory holding ``tools.json``.

    Search order: ``$GEARBOX_CONFIG_DIR``, then ``config/`` in the start
    directory or any parent, then ``~/.gearbox`` and ``/etc/gearbox``.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        The config directory, or None if not found.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)

    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / "config"
        if (candidate / TOOLS_FILE).is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    for candidate in _FALLBACK_DIRS:
        if (candidate / TOOLS_FILE).is_file():
            return candidate

    return None


def _read_document(path: Path) -> dict[str, Any]:
    """Read and parse a single catalog document."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid document in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")
    return data


def load_tools(path: Path) -> ToolsDocument:
    """Load ``tools.json``. A missing file is a ConfigError."""
    if not path.is_file():
        raise ConfigError(f"Tool catalog not found: {path}")

    logger.debug("Loading tools from %s", path)
    try:
        return ToolsDocument.model_validate(_read_document(path))
    except ValidationError as e:
        raise ConfigError(f"Invalid tool catalog {path}: {e}") from e


def load_bundles(path: Path) -> BundlesDocument:
    """Load ``bundles.json``. A missing file means no bundles."""
    if not path.is_file():
        logger.info("No bundle catalog at %s, continuing without bundles", path)
        return BundlesDocument()

    logger.debug("Loading bundles from %s", path)
    try:
        return BundlesDocument.model_validate(_read_document(path))
    except ValidationError as e:
        raise ConfigError(f"Invalid bundle catalog {path}: {e}") from e


def load_catalog(config_dir: Path | None = None) -> ConfigCatalog:
    """Load and validate the full catalog.

    Args:
        config_dir: Directory holding the catalog files. If None,
            ``find_config_dir()`` is used.

    Returns:
        An immutable ConfigCatalog.

    Raises:
        ConfigError: If documents are missing, malformed, or inconsistent.
    """
    if config_dir is None:
        config_dir = find_config_dir()

    if config_dir is None:
        raise ConfigError(
            f"No {TOOLS_FILE} found. Create config/{TOOLS_FILE}, "
            f"set {CONFIG_DIR_ENV}, or pass --config-dir."
        )

    tools_doc = load_tools(config_dir / TOOLS_FILE)
    bundles_doc = load_bundles(config_dir / BUNDLES_FILE)

    catalog = ConfigCatalog(
        tools=tools_doc.tools,
        bundles=bundles_doc.bundles,
        default_build_type=tools_doc.default_build_type,
        categories=tools_doc.categories,
        languages=tools_doc.languages,
    )
    logger.info(
        "Loaded catalog from %s: %d tools, %d bundles",
        config_dir, len(tools_doc.tools), len(bundles_doc.bundles),
    )
    return catalog
