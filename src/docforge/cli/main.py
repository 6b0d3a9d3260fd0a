"""docforge CLI entry point."""

import click


@click.group()
def cli():
    """docforge: declarative REST resources CLI."""
    pass


# Register subcommands
from docforge.cli.models_cmd import models  # noqa: E402
from docforge.cli.server_cmd import openapi, serve, token  # noqa: E402

cli.add_command(models)
cli.add_command(openapi)
cli.add_command(serve)
cli.add_command(token)
