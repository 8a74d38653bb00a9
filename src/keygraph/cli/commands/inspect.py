"""
Inspect Command - Show the keys every route resolves to, without writing.
"""

import json

import click
from rich.console import Console
from rich.table import Table

from ...analysis.routes import find_route_entries
from ...core.coordinator import ChangeCoordinator
from ..utils import configure_logging, echo_warning, load_project_config, relative

console = Console()


@click.command()
@click.argument("directory", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output")
def inspect(directory: str, as_json: bool, verbose: bool):
    """
    Print each route's function id and resolved translation keys.
    """
    configure_logging(verbose, quiet=as_json)
    config = load_project_config(directory)

    coordinator = ChangeCoordinator(config)
    coordinator.reload_key_source()
    routes = find_route_entries(config.routes_dir, config)
    route_keys = coordinator.compute_route_keys(routes)

    if as_json:
        payload = {
            "routes": [
                {
                    "function_id": route.function_id,
                    "route": route.route_path,
                    "entry": relative(route.entry_path, config.project_root),
                    "artifact": relative(route.artifact_path, config.project_root),
                    "keys": keys,
                }
                for route, keys in route_keys.items()
            ],
            "graph": coordinator.graph.get_stats() if coordinator.graph else {},
        }
        click.echo(json.dumps(payload, indent=2))
        return

    if not routes:
        echo_warning(f"No routes found under {config.routes_dir}")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Function", style="cyan")
    table.add_column("Artifact", style="dim")
    table.add_column("Keys")

    for route, keys in route_keys.items():
        table.add_row(
            route.function_id,
            relative(route.artifact_path, config.project_root),
            ", ".join(keys) if keys else "[dim]none[/dim]",
        )

    console.print(table)
