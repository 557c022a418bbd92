"""
gearbox — CLI entrypoint.

Usage:
    gearbox --help
    gearbox install ripgrep fd
    gearbox install essential --dry-run
    gearbox uninstall-plan ripgrep --safety conservative
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from gearbox import __version__
from gearbox.core.models.tool import BUILD_PROFILES
from gearbox.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="gearbox")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config-dir",
    "-c",
    "config_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding tools.json and bundles.json (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_dir: str | None,
) -> None:
    """gearbox — install, track, and safely remove developer tools."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_dir"] = Path(config_dir) if config_dir else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(level=resolve_level(debug=debug, verbose=verbose, quiet=quiet))


def _load_catalog(ctx: click.Context):
    """Load the catalog or exit with a red error."""
    from gearbox.core.config.loader import load_catalog
    from gearbox.core.errors import GearboxError

    try:
        return load_catalog(ctx.obj.get("config_dir"))
    except GearboxError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


@cli.command()
@click.argument("names", nargs=-1, required=True)
@click.option(
    "--build-type", "-b",
    type=click.Choice(BUILD_PROFILES),
    default=None,
    help="Build profile (default: from tools.json).",
)
@click.option("--jobs", "-j", default=0, type=int, help="Parallel jobs (0 = auto-detect).")
@click.option("--dry-run", is_flag=True, help="Show the plan without installing.")
@click.option("--force", is_flag=True, help="Rebuild tools that are already on PATH.")
@click.option("--run-tests", is_flag=True, help="Run each tool's test suite after building.")
@click.option("--no-shell", is_flag=True, help="Skip shell integration setup.")
@click.option("--skip-system-packages", is_flag=True, help="Do not install bundle system packages.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    names: tuple[str, ...],
    build_type: str | None,
    jobs: int,
    dry_run: bool,
    force: bool,
    run_tests: bool,
    no_shell: bool,
    skip_system_packages: bool,
    as_json: bool,
) -> None:
    """Install tools and bundles.

    NAMES may mix tool names and bundle names; bundles are expanded.

    Examples:

        gearbox install ripgrep fd bat

        gearbox install essential --build-type minimal --jobs 2
    """
    from gearbox.core.errors import GearboxError
    from gearbox.core.persistence.manifest_store import ManifestStore
    from gearbox.core.services.install import InstallOptions, OrchestratorBuilder
    from gearbox.core.services.manifest.tracker import ManifestTracker

    options = InstallOptions(
        build_type=build_type or "",
        max_parallel_jobs=jobs,
        dry_run=dry_run,
        force=force,
        run_tests=run_tests,
        no_shell=no_shell,
        verbose=ctx.obj.get("verbose", False),
        skip_system_packages=skip_system_packages,
    )

    try:
        builder = OrchestratorBuilder(options)
        if ctx.obj.get("config_dir"):
            builder.with_config_dir(ctx.obj["config_dir"])
        builder.with_tracker(ManifestTracker(ManifestStore()))
        orchestrator = builder.build()
        report = orchestrator.install(list(names))
    except GearboxError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        if not report.all_ok:
            sys.exit(1)
        return

    plan = report.plan

    if report.dry_run:
        click.secho(f"\n🧪 Installation plan ({len(plan.tools)} tools)", fg="cyan", bold=True)
        click.echo(f"   Build type:    {orchestrator.build_type}")
        click.echo(f"   Parallel jobs: {plan.max_parallel_jobs}")
        for bundle, tools in plan.bundle_tools.items():
            click.echo(f"   📦 Bundle '{bundle}': {len(tools)} tools")
        if plan.system_packages:
            click.echo(
                f"   System packages ({plan.package_manager}): {', '.join(plan.system_packages)}"
            )
        click.echo()
        for i, tool in enumerate(plan.tools, 1):
            profile, flag = plan.profiles[tool.name]
            click.echo(f"   {i:2d}. {tool.name:<15} ({tool.language or '-'}) {flag or '(default)'}")
        click.echo()
        return

    if report.system_packages_error:
        click.secho(f"⚠️  System packages failed: {report.system_packages_error}", fg="yellow")

    click.secho("\n📊 Installation Results", bold=True)
    for r in report.sorted_results():
        if r.skipped:
            click.secho(f"   ⏭️  {r.tool:<15} {r.output}", fg="white")
        elif r.success:
            click.secho(f"   ✅ {r.tool:<15} ({r.duration:6.1f}s)", fg="green")
        else:
            click.secho(f"   ❌ {r.tool:<15} ({r.duration:6.1f}s) - {r.error}", fg="red")

    click.echo()
    click.echo(f"   Successful: {report.succeeded}")
    if report.skipped:
        click.echo(f"   Skipped:    {report.skipped}")
    click.echo(f"   Failed:     {report.failed}")
    click.echo(f"   Total time: {report.total_duration:.1f}s")

    if report.error is not None:
        click.secho(f"\n❌ {report.error}", fg="red")
        sys.exit(1)

    click.secho("\n🎉 All tools installed successfully!", fg="green", bold=True)


@cli.command("list")
@click.option("--category", default=None, help="Only show tools in this category.")
@click.option("--bundles", "show_bundles", is_flag=True, help="List bundles instead of tools.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, category: str | None, show_bundles: bool, as_json: bool) -> None:
    """List available tools (or bundles)."""
    catalog = _load_catalog(ctx)

    if show_bundles:
        items = sorted(catalog.all_bundles(), key=lambda b: (b.category, b.name))
    else:
        items = catalog.tools_in_category(category) if category else catalog.all_tools()
        items = sorted(items, key=lambda t: (t.category, t.name))

    if as_json:
        click.echo(json.dumps([i.model_dump(mode="json") for i in items], indent=2))
        return

    if not items:
        click.echo("Nothing to list.")
        return

    title = "📦 Available Bundles" if show_bundles else "📋 Available Tools"
    click.secho(f"\n{title} ({len(items)})", fg="cyan", bold=True)

    current = None
    for item in items:
        if item.category != current:
            current = item.category
            label = catalog.categories.get(current) or (current or "other").title()
            click.secho(f"\n   🔧 {label}", bold=True)
        click.echo(f"     • {item.name:<20} {item.description}")
    click.echo()


@cli.command()
@click.argument("bundle")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, bundle: str, as_json: bool) -> None:
    """Show what a bundle expands to."""
    from gearbox.core.errors import GearboxError
    from gearbox.core.services.bundles.resolver import expand_bundle, expand_system_packages
    from gearbox.core.services.system.package_manager import detect_package_manager

    catalog = _load_catalog(ctx)
    bundle_spec = catalog.find_bundle(bundle)
    if bundle_spec is None:
        click.secho(f"❌ bundle not found: {bundle}", fg="red")
        sys.exit(1)

    manager = detect_package_manager()
    try:
        tools = expand_bundle(bundle, catalog.bundle_map())
        packages = (
            expand_system_packages(bundle, catalog.bundle_map(), manager.name) if manager else []
        )
    except GearboxError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({
            **bundle_spec.model_dump(mode="json"),
            "expanded_tools": tools,
            "package_manager": manager.name if manager else "",
            "expanded_system_packages": packages,
        }, indent=2))
        return

    click.secho(f"\n📦 {bundle_spec.name}", fg="cyan", bold=True)
    if bundle_spec.description:
        click.echo(f"   {bundle_spec.description}")
    click.echo(f"   Category: {bundle_spec.category or '-'}")
    if bundle_spec.tags:
        click.echo(f"   Tags: {', '.join(bundle_spec.tags)}")
    if bundle_spec.includes_bundles:
        click.echo(f"   Includes bundles: {', '.join(bundle_spec.includes_bundles)}")
    click.echo(f"   Total tools: {len(tools)}")
    for tool in tools:
        click.echo(f"     • {tool}")
    if packages:
        click.echo(f"   System packages ({manager.name}): {len(packages)}")
        for pkg in packages:
            click.echo(f"     • {pkg}")
    click.echo()


# ── Register sub-commands from gearbox/ui/cli/ ────────────────────

from gearbox.ui.cli.manifest import manifest  # noqa: E402
from gearbox.ui.cli.uninstall import uninstall, uninstall_plan  # noqa: E402

cli.add_command(uninstall)
cli.add_command(uninstall_plan)
cli.add_command(manifest)


if __name__ == "__main__":
    cli()
