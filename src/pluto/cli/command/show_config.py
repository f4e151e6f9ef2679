"""Config command implementation"""

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ...config import DEFAULTS, resolve
from ...exception import ConfigurationError
from ..util import describe, load_overrides

console = Console()


@click.command(name="config", help="Show the resolved terminal configuration")
@click.option("--config", "config_path", type=click.Path(), help="TOML config overrides")
def show_config(config_path: str = None):
    """Print every resolved configuration field

    Args:
        config_path: Optional TOML file with overrides
    """
    overrides = load_overrides(config_path)
    try:
        cfg = resolve(DEFAULTS, overrides)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise click.Abort()

    table = Table(title="Pluto configuration")
    table.add_column("key", style="cyan")
    table.add_column("value")
    for key in type(cfg).model_fields:
        value = getattr(cfg, key)
        if key in ("dimensions", "task"):
            for sub_key, sub_value in value.model_dump().items():
                table.add_row(f"{key}.{sub_key}", Text(describe(sub_value)))
        else:
            table.add_row(key, Text(describe(value)))
    console.print(table)
