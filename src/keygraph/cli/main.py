"""
keygraph CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

import click

from .commands import inspect, sync, watch


@click.group()
@click.version_option(package_name="keygraph")
def main():
    """keygraph: translation key manifests for SvelteKit routes.

    Finds the translation keys every route uses, through every component
    it renders, and keeps a generated key list in each route's server
    companion in sync.

    \b
    Quick Start:
      keygraph sync
      keygraph watch
      keygraph inspect --json
    """
    pass


# Register commands
main.add_command(sync.sync)
main.add_command(watch.watch)
main.add_command(inspect.inspect)

if __name__ == "__main__":
    main()
