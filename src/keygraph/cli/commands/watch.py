"""
Watch Command.

Starts the file system watcher for real-time artifact updates.
"""

import click
from rich.console import Console

from ..utils import configure_logging, load_project_config

console = Console()


@click.command()
@click.argument("directory", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output")
def watch(directory: str, verbose: bool):
    """
    Start the watcher.

    Monitors the project's source tree and keeps every route's generated
    key manifest in sync as components change. Stop with Ctrl+C.
    """
    configure_logging(verbose)
    config = load_project_config(directory, verbose=verbose or None)

    # Lazy import: watchdog is only needed when this command actually runs
    from ..watcher import KeygraphWatcher

    console.print("[bold green]keygraph watch[/bold green]")
    console.print(f"Watching: [cyan]{config.source_dir}[/cyan]")

    watcher = KeygraphWatcher(config)
    watcher.run_forever()
