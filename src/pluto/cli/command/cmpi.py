"""Cmpi command implementation"""

import time

import click
from rich.console import Console

from ...exception import PlutoException
from ...geometry import Viewport
from ...logging import setup_logging
from ..util import get_log_dir, load_overrides

console = Console(stderr=True)


@click.command(name="cmpi", help="Compile SOURCE and run it in a pseudo-terminal")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(), help="TOML config overrides")
@click.option("--shell", help="Shell command (default: $SHELL)")
@click.option(
    "--idle",
    type=float,
    default=2.0,
    show_default=True,
    help="Seconds without output before the terminal is closed",
)
@click.option("--log-dir", type=click.Path(), help="Log directory (default: ~/.pluto/logs)")
def cmpi(source: str, config_path: str = None, shell: str = None, idle: float = 2.0, log_dir: str = None):
    """Compile SOURCE, run the result and stream the terminal output

    Args:
        source: Source file to compile
        config_path: Optional TOML file with overrides
        shell: Shell command overriding config and $SHELL
        idle: Idle timeout in seconds
        log_dir: Log directory
    """
    from ... import plugin
    from ...host.pty_host import PtyHost

    setup_logging(get_log_dir(log_dir))

    overrides = load_overrides(config_path)
    if shell:
        overrides["cmd"] = shell

    last_output = time.monotonic()

    def echo(process, text):
        nonlocal last_output
        last_output = time.monotonic()
        click.echo(text, nl=False)

    overrides["on_stdout"] = echo
    # Keep the terminal around until it goes idle even if the shell exits early
    overrides["auto_close"] = False

    host = PtyHost(viewport_size=Viewport(columns=100, lines=40), current_file_path=source)
    try:
        session = plugin.setup(overrides, host=host)
        host.execute_command(plugin.COMMAND_NAME)

        while session.process is not None:
            host.poll(timeout=0.1)
            if time.monotonic() - last_output > idle:
                break
    except PlutoException as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise click.Abort()
    finally:
        plugin.reset()
        host.poll(timeout=0.2)
        host.shutdown()

    click.echo()
    console.print("[cyan]Terminal closed[/cyan]")
