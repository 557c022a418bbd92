"""
Manifest persistence — atomic read/write and backups for the manifest.

The manifest is stored as JSON in ``~/.gearbox/manifest.json``
(``$GEARBOX_HOME`` overrides the directory). Writes are atomic
(write to temp file, then rename) so a crash mid-write never leaves a
truncated manifest behind.

A missing file means "nothing installed yet". An unreadable, corrupt,
or wrong-version file is a ``ManifestError``: silently starting fresh
would make gearbox forget what it installed.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from gearbox.core.errors import ManifestError
from gearbox.core.models.manifest import MANIFEST_SCHEMA_VERSION, InstallationManifest

logger = logging.getLogger(__name__)

HOME_ENV = "GEARBOX_HOME"
DEFAULT_HOME_DIR = ".gearbox"
MANIFEST_FILE = "manifest.json"
BACKUP_DIR = "backups"


def default_home() -> Path:
    """Directory holding the manifest and its backups."""
    override = os.environ.get(HOME_ENV)
    if override:
        return Path(override)
    return Path.home() / DEFAULT_HOME_DIR


class ManifestStore:
    """Loads, saves, and snapshots one manifest file."""

    def __init__(self, path: Path | None = None, backup_dir: Path | None = None) -> None:
        self.path = path or default_home() / MANIFEST_FILE
        self.backup_dir = backup_dir or self.path.parent / BACKUP_DIR
        self._write_lock = threading.Lock()

    def exists(self) -> bool:
        return self.path.is_file()

    # ── Read ─────────────────────────────────────────────────────

    def load(self) -> InstallationManifest:
        """Load the manifest.

        Returns:
            The stored manifest, or a fresh empty one if no file exists.

        Raises:
            ManifestError: If the file is unreadable, invalid, or from an
                unsupported schema version.
        """
        if not self.path.is_file():
            logger.info("No manifest at %s, starting with an empty manifest", self.path)
            return InstallationManifest()

        return _parse(self.path)

    # ── Write ────────────────────────────────────────────────────

    def save(self, manifest: InstallationManifest) -> None:
        """Write the manifest atomically (temp file, then rename).

        Raises:
            ManifestError: If the write fails. The previous file is left intact.
        """
        manifest.touch()
        data = manifest.model_dump(mode="json")
        content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

        with self._write_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=self.path.parent,
                    prefix=".manifest_",
                    suffix=".tmp",
                )
                os.close(fd)
                tmp = Path(tmp_path)
                try:
                    tmp.write_text(content, encoding="utf-8")
                    tmp.replace(self.path)
                except Exception:
                    tmp.unlink(missing_ok=True)
                    raise
            except OSError as e:
                logger.error("Failed to save manifest to %s: %s", self.path, e)
                raise ManifestError(f"Cannot save manifest to {self.path}: {e}") from e

        logger.debug("Manifest saved to %s", self.path)

    # ── Backups ──────────────────────────────────────────────────

    def backup(self, suffix: str = "") -> Path | None:
        """Copy the current manifest into the backup directory.

        Backups are named ``manifest-YYYYMMDD-HHMMSS[-suffix].json``.

        Returns:
            Path of the backup, or None when there is no manifest yet.
        """
        if not self.path.is_file():
            return None

        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        stem = f"manifest-{stamp}" + (f"-{suffix}" if suffix else "")
        target = self.backup_dir / f"{stem}.json"
        counter = 1
        while target.exists():
            target = self.backup_dir / f"{stem}-{counter}.json"
            counter += 1

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(self.path.read_bytes())
        except OSError as e:
            raise ManifestError(f"Cannot back up manifest to {target}: {e}") from e

        logger.info("Manifest backed up to %s", target)
        return target

    def list_backups(self) -> list[str]:
        """Backup file names, oldest first."""
        if not self.backup_dir.is_dir():
            return []
        return sorted(
            p.name for p in self.backup_dir.iterdir()
            if p.is_file() and p.suffix == ".json"
        )

    def restore_backup(self, name: str) -> InstallationManifest:
        """Replace the manifest with a backup.

        The current manifest is backed up first (suffix ``pre-restore``)
        and the backup is validated before anything is overwritten.

        Raises:
            ManifestError: If the backup is missing or invalid.
        """
        source = self.backup_dir / name
        if not source.is_file():
            raise ManifestError(f"Backup file does not exist: {name}")

        manifest = _parse(source)
        self.backup("pre-restore")
        self.save(manifest)
        logger.info("Manifest restored from %s", source)
        return manifest


def _parse(path: Path) -> InstallationManifest:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Corrupt manifest {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Corrupt manifest {path}: expected a JSON object")

    version = data.get("schema_version")
    if version != MANIFEST_SCHEMA_VERSION:
        raise ManifestError(
            f"Unsupported manifest schema version {version!r} in {path} "
            f"(expected {MANIFEST_SCHEMA_VERSION!r})"
        )

    try:
        manifest = InstallationManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest {path}: {e}") from e

    logger.debug("Loaded manifest from %s (%d records)", path, len(manifest.installations))
    return manifest
