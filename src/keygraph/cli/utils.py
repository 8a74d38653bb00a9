"""
CLI Utilities - Shared helper functions for command line operations.

Formatted printing, logging setup and project configuration loading used
across the keygraph commands.
"""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from ..config import ConfigError, EngineConfig, load_config


def echo_success(message: str) -> None:
    """
    Print a success message with a green checkmark.

    Args:
        message (str): The message to display.
    """
    click.echo(click.style(f"✅ {message}", fg="green"))


def echo_error(message: str) -> None:
    """
    Print an error message with a red cross.

    Args:
        message (str): The error message to display.
    """
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)


def echo_warning(message: str) -> None:
    click.echo(click.style(f"⚠️  {message}", fg="yellow"))


def echo_info(message: str) -> None:
    click.echo(click.style(f"   {message}", dim=True))


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route keygraph logging through rich; ``verbose`` enables DEBUG, ``quiet`` keeps only warnings."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_project_config(directory: str, **overrides) -> EngineConfig:
    """Load the configuration of the project at ``directory`` or exit with an error."""
    try:
        return load_config(Path(directory).absolute(), **overrides)
    except ConfigError as e:
        echo_error(str(e))
        sys.exit(1)


def relative(path: Path, root: Path) -> str:
    """Shorten a path for display."""
    try:
        return str(Path(path).relative_to(root))
    except ValueError:
        return str(path)
