"""autocrud CLI entry point."""

import click


@click.group()
def cli():
    """autocrud: generic CRUD endpoints from record types."""
    pass


# Register subcommands
from autocrud.cli.schema_cmd import describe, routes  # noqa: E402
from autocrud.cli.serve_cmd import serve  # noqa: E402

cli.add_command(describe)
cli.add_command(routes)
cli.add_command(serve)
