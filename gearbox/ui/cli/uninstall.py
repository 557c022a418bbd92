"""
CLI commands for removing tools.

Thin wrappers over ``gearbox.core.services.uninstall``: the planner
decides, the executor acts, these commands only render.
"""

from __future__ import annotations

import json
import sys

import click

from gearbox.core.models.removal import SafetyLevel

_LEVEL_ICONS = {"info": "ℹ️ ", "warning": "⚠️ ", "error": "🚨"}


def _tracker():
    from gearbox.core.persistence.manifest_store import ManifestStore
    from gearbox.core.services.manifest.tracker import ManifestTracker

    return ManifestTracker(ManifestStore())


def _print_plan(plan, warnings) -> None:
    """Render a removal plan the same way for both commands."""
    from gearbox.core.services.uninstall.planner import METHOD_DESCRIPTIONS

    s = plan.summary
    click.secho(f"\n📋 Removal Plan ({s.total_requested} requested)", fg="cyan", bold=True)

    if plan.to_remove:
        click.secho(f"\n   🗑️  Will remove ({s.will_remove}):", bold=True)
        for action in plan.to_remove:
            marker = "" if action.is_safe else click.style(" [forced]", fg="red")
            click.echo(f"     • {action.target:<18} {action.method.value}{marker}")
            click.echo(f"       {METHOD_DESCRIPTIONS.get(action.method, '')}")
            for path in action.paths:
                click.echo(f"       - {path}")

    if plan.to_keep:
        click.secho(f"\n   🛡️  Will keep ({s.will_keep}):", bold=True)
        for kept in plan.to_keep:
            click.echo(f"     • {kept.target}")
            for reason in kept.reasons:
                click.echo(f"       {reason}")

    if plan.dependencies:
        click.secho("\n   🔗 Dependencies:", bold=True)
        for dep in plan.dependencies:
            click.echo(f"     • {dep.dependency:<18} {dep.action}: {dep.reason}")

    all_warnings = list(plan.warnings) + list(warnings)
    if all_warnings:
        click.secho("\n   Warnings:", bold=True)
        for w in all_warnings:
            click.echo(f"     {_LEVEL_ICONS.get(w.level, '•')} {w.target}: {w.message}")
    click.echo()


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--force", is_flag=True, help="Remove even if other tools depend on it.")
@click.option("--cascade", is_flag=True, help="Also remove dependencies nothing else needs.")
@click.option("--remove-config", is_flag=True, help="Also delete recorded config files.")
@click.option("--remove-bundle-contents", is_flag=True, help="Remove the tools a bundle installed.")
@click.option("--no-backup", is_flag=True, help="Skip the manifest snapshot before removal.")
@click.option("--dry-run", is_flag=True, help="Show what would happen without removing anything.")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def uninstall(
    ctx: click.Context,
    names: tuple[str, ...],
    force: bool,
    cascade: bool,
    remove_config: bool,
    remove_bundle_contents: bool,
    no_backup: bool,
    dry_run: bool,
    yes: bool,
) -> None:
    """Remove tools and bundles installed by gearbox.

    Tools that other installed tools still need, and tools that were
    already present before gearbox, are kept unless --force is given.
    """
    from gearbox.core.errors import GearboxError
    from gearbox.core.models.removal import RemovalOptions
    from gearbox.core.services.uninstall import RemovalExecutor, RemovalPlanner

    options = RemovalOptions(
        force=force,
        cascade=cascade,
        remove_config=remove_config,
        remove_bundle_contents=remove_bundle_contents,
        backup=not no_backup,
        dry_run=dry_run,
    )

    try:
        tracker = _tracker()
        planner = RemovalPlanner(tracker)
        plan = planner.plan_removal(list(names), options)
        warnings = planner.validate_plan(plan)
    except GearboxError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    _print_plan(plan, warnings)

    if not plan.to_remove:
        if plan.to_keep:
            click.secho(f"❌ Nothing removed; kept: {', '.join(plan.kept_targets())}", fg="red")
            sys.exit(1)
        click.echo("Nothing to remove.")
        return

    if not dry_run and not yes:
        click.confirm("Proceed with removal?", abort=True)

    try:
        result = RemovalExecutor(tracker, dry_run=dry_run).execute_plan(plan, options)
    except GearboxError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    click.echo(result.summary())
    if result.backup_created:
        click.echo(f"   Backup: {result.backup_created}")

    if result.failed:
        for failure in result.failed:
            click.secho(f"   ❌ {failure.target}: {failure.error}", fg="red")
    if result.failed or plan.to_keep:
        problems = result.failed_targets() + plan.kept_targets()
        click.secho(f"\n❌ Not removed: {', '.join(problems)}", fg="red")
        sys.exit(1)

    click.secho("\n✅ Removal complete", fg="green", bold=True)


@click.command("uninstall-plan")
@click.argument("names", nargs=-1, required=True)
@click.option(
    "--safety",
    type=click.Choice([level.value for level in SafetyLevel]),
    default=SafetyLevel.STANDARD.value,
    help="How cautious the validation warnings are.",
)
@click.option("--force", is_flag=True, help="Plan as if --force were given.")
@click.option("--cascade", is_flag=True, help="Plan as if --cascade were given.")
@click.option("--remove-bundle-contents", is_flag=True, help="Include bundle members.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def uninstall_plan(
    names: tuple[str, ...],
    safety: str,
    force: bool,
    cascade: bool,
    remove_bundle_contents: bool,
    as_json: bool,
) -> None:
    """Show what an uninstall would do, without doing it."""
    from gearbox.core.errors import GearboxError
    from gearbox.core.models.removal import RemovalOptions
    from gearbox.core.services.uninstall import RemovalPlanner

    options = RemovalOptions(
        force=force,
        cascade=cascade,
        remove_bundle_contents=remove_bundle_contents,
    )
    try:
        planner = RemovalPlanner(_tracker(), SafetyLevel(safety))
        plan = planner.plan_removal(list(names), options)
        warnings = planner.validate_plan(plan)
    except GearboxError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        data = plan.model_dump(mode="json")
        data["validation"] = [w.model_dump(mode="json") for w in warnings]
        click.echo(json.dumps(data, indent=2))
        return

    _print_plan(plan, warnings)
