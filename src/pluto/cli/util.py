"""CLI utility functions"""

from pathlib import Path
from typing import Any, Dict

import click
from rich.console import Console

from ..config import load_config
from ..exception import ConfigurationError

console = Console(stderr=True)


def get_log_dir(path: str | None = None) -> Path:
    """Get log directory, default to ~/.pluto/logs

    Args:
        path: Custom path (relative or absolute), None for default

    Returns:
        Resolved absolute path
    """
    if path is None:
        return Path.home() / ".pluto" / "logs"
    return Path(path).resolve()


def load_overrides(config_path: str | None) -> Dict[str, Any]:
    """Load config overrides for a command, aborting on errors

    Args:
        config_path: TOML file given with --config, or None

    Returns:
        Override mapping (empty when no file was given)
    """
    if config_path is None:
        return {}
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Error loading config: {e.message}[/red]")
        raise click.Abort()


def describe(value: Any) -> str:
    """Printable form of a config value (producers shown by name)"""
    if callable(value):
        return f"<{getattr(value, '__name__', type(value).__name__)}>"
    return repr(value)
