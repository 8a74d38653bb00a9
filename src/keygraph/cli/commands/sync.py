"""
Sync Command - One-shot scan and artifact synchronization.
"""

import click

from ...core.coordinator import ChangeCoordinator
from ..utils import configure_logging, echo_info, echo_success, echo_warning, load_project_config, relative


@click.command()
@click.argument("directory", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--force", is_flag=True, help="Rewrite the RouteKeyMap from this scan only")
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output")
def sync(directory: str, force: bool, verbose: bool):
    """
    Scan the project and bring every route's server companion in sync.

    Artifacts whose content would not change are never written.
    """
    configure_logging(verbose)
    config = load_project_config(directory, verbose=verbose or None)

    click.echo(f"🔍 Scanning {config.routes_dir}")

    coordinator = ChangeCoordinator(config)
    coordinator.reload_key_source()
    summary = coordinator.full_rescan(reason="sync", replace_route_map=force)
    coordinator.stop()

    if verbose:
        for path in summary.report.written:
            echo_info(f"wrote {relative(path, config.project_root)}")

    for path in summary.report.abandoned:
        echo_warning(f"Could not write {relative(path, config.project_root)}")

    echo_success("Sync complete")
    click.echo(f"   Routes scanned:    {summary.routes}")
    click.echo(f"   Files written:     {summary.written}")
    click.echo(f"   Routes in sync:    {len(summary.synced)}")
    if summary.abandoned:
        click.echo(f"   Abandoned writes:  {summary.abandoned}")
