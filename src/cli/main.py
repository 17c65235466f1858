"""chatmem command-line entry point."""

import click

from cli.commands import memory
from cli.config import load_config
from cli.logging_config import setup_logging_from_config


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """chatmem - memories extracted from chat turns."""
    try:
        config = load_config()
    except ValueError as e:
        raise click.ClickException(str(e))
    if verbose:
        config["logging"]["level"] = "DEBUG"
    setup_logging_from_config(config)


cli.add_command(memory)


def main():
    cli()


if __name__ == "__main__":
    main()
