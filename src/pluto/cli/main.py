"""Pluto CLI entry point"""

import click

from .command import cmpi, geometry, show_config


@click.group(
    name="pluto",
    help="Pluto - floating terminal session with compile-and-run",
)
def main():
    """Main CLI entry point"""
    pass


# Register commands
main.add_command(cmpi)
main.add_command(geometry)
main.add_command(show_config)


if __name__ == "__main__":
    main()
