"""
CLI commands for the installation manifest.
"""

from __future__ import annotations

import json
import sys

import click


def _store():
    from gearbox.core.persistence.manifest_store import ManifestStore

    return ManifestStore()


@click.group()
def manifest() -> None:
    """Inspect, back up, and restore the installation manifest."""


@manifest.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def status(as_json: bool) -> None:
    """Show what gearbox is tracking."""
    from gearbox.core.errors import ManifestError
    from gearbox.core.services.manifest.tracker import ManifestTracker

    store = _store()
    try:
        tracker = ManifestTracker(store)
    except ManifestError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    snapshot = tracker.snapshot()
    stats = tracker.installation_stats()

    if as_json:
        click.echo(json.dumps({
            "path": str(store.path),
            "exists": store.exists(),
            "stats": stats,
            "installations": {
                name: rec.model_dump(mode="json")
                for name, rec in sorted(snapshot.installations.items())
            },
        }, indent=2))
        return

    click.secho(f"\n📒 Manifest: {store.path}", fg="cyan", bold=True)
    if not store.exists():
        click.echo("   (not created yet)")
    click.echo(f"   Tools:   {stats['tools']}")
    click.echo(f"   Bundles: {stats['bundles']}")

    for name, rec in sorted(snapshot.installations.items()):
        version = f" {rec.version}" if rec.version else ""
        click.echo(f"     • {name:<18} {rec.method.value}{version}")
    click.echo()


@manifest.command()
def backups() -> None:
    """List manifest backups, oldest first."""
    store = _store()
    names = store.list_backups()
    if not names:
        click.echo("No backups found.")
        return
    click.secho(f"\n💾 Backups in {store.backup_dir}", bold=True)
    for name in names:
        click.echo(f"   • {name}")
    click.echo()


@manifest.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def restore(name: str, yes: bool) -> None:
    """Replace the manifest with backup NAME.

    The current manifest is backed up first.
    """
    from gearbox.core.errors import ManifestError

    if not yes:
        click.confirm(f"Restore manifest from {name}?", abort=True)

    try:
        restored = _store().restore_backup(name)
    except ManifestError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    click.secho(
        f"✅ Restored {len(restored.installations)} entries from {name}",
        fg="green", bold=True,
    )
