"""Schema inspection commands: describe and routes."""

import click
from fastapi import APIRouter
from fastapi.routing import APIRoute

from autocrud.api.router import mount
from autocrud.config import load_model
from autocrud.errors import SchemaError
from autocrud.persistence import DatabaseConfig, create_adapter
from autocrud.schema import Schema
from autocrud.schema import describe as describe_schema


def _load_schema(model: str) -> Schema:
    try:
        return describe_schema(load_model(model))
    except (ValueError, SchemaError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)


def _type_name(python_type: object) -> str:
    return getattr(python_type, "__name__", str(python_type))


@click.command()
@click.argument("model")
def describe(model: str):
    """Show the fields of MODEL (package.module:Class)."""
    schema = _load_schema(model)

    click.echo(click.style(f"{schema.name} ({len(schema.fields)} fields)", bold=True))
    for f in schema.fields:
        marker = "*" if f.is_identifier else " "
        storage = f.storage_name if f.storage_name != f.name else ""
        click.echo(f"  {marker} {f.name:<20} {storage:<20} {_type_name(f.python_type)}")
    if schema.identifier is None:
        click.echo(click.style("  (no identifier field)", fg="yellow"))


@click.command()
@click.argument("model")
@click.option("--name", default=None, help="Path name to mount under (default: lower-cased class name).")
@click.option("--prefix", default="", help="Path prefix, e.g. /api.")
def routes(model: str, name: str | None, prefix: str):
    """List the endpoints that would be mounted for MODEL."""
    schema = _load_schema(model)

    # Nothing is connected; the adapter only satisfies mount()
    adapter = create_adapter(DatabaseConfig(url="sqlite://"))
    router = mount(APIRouter(prefix=prefix), adapter, name or schema.name.lower(), schema.record_type)

    for route in router.routes:
        if not isinstance(route, APIRoute):
            continue
        for method in sorted(route.methods):
            click.echo(f"{method:<7} {route.path}")
