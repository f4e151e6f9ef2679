"""Geometry command implementation"""

import click
from rich.console import Console
from rich.table import Table

from ...config import DEFAULTS, resolve
from ...exception import ConfigurationError
from ...geometry import Viewport, calculate_geometry
from ..util import load_overrides

console = Console()


@click.command(name="geometry", help="Show the terminal rectangle for a viewport")
@click.option("--columns", type=int, required=True, help="Viewport columns")
@click.option("--lines", type=int, required=True, help="Viewport lines")
@click.option("--config", "config_path", type=click.Path(), help="TOML config overrides")
def geometry(columns: int, lines: int, config_path: str = None):
    """Show the surface rectangle computed from the configured dimensions

    Args:
        columns: Viewport columns
        lines: Viewport lines
        config_path: Optional TOML file with overrides
    """
    overrides = load_overrides(config_path)
    try:
        cfg = resolve(DEFAULTS, overrides)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise click.Abort()

    geom = calculate_geometry(cfg.dimensions, Viewport(columns=columns, lines=lines))

    table = Table(title=f"Viewport {columns}x{lines}")
    table.add_column("field", style="cyan")
    table.add_column("value", justify="right")
    for name in ("width", "height", "col", "row"):
        table.add_row(name, str(getattr(geom, name)))
    console.print(table)
