"""Serve command: run the CRUD API with uvicorn."""

import logging
from pathlib import Path

import click
import uvicorn

from autocrud.api.app import create_app
from autocrud.config import AppConfig, load_model
from autocrud.persistence import DatabaseConfig, create_adapter

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


@click.command()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file.",
)
@click.option("--model", "models", multiple=True, help="Record type (package.module:Class). Repeatable.")
@click.option("--name", "names", multiple=True, help="Path name for the matching --model. Repeatable.")
@click.option("--host", default="127.0.0.1", envvar="AUTOCRUD_HOST", show_default=True)
@click.option("--port", default=8000, type=int, envvar="AUTOCRUD_PORT", show_default=True)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    envvar="AUTOCRUD_LOG_LEVEL",
    show_default=True,
)
def serve(
    config_path: Path | None,
    models: tuple[str, ...],
    names: tuple[str, ...],
    host: str,
    port: int,
    log_level: str,
):
    """Serve CRUD endpoints for the configured record types."""
    if names and len(names) != len(models):
        raise click.UsageError("Give one --name per --model, or none at all.")
    if not config_path and not models:
        raise click.UsageError("Nothing to serve: pass --config or at least one --model.")

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if config_path:
            config = AppConfig.load(config_path)
            mounts = config.resolved_mounts()
            db_config, prefix = config.database, config.prefix
        else:
            mounts, db_config, prefix = [], DatabaseConfig.from_env(Path.cwd()), ""

        for index, model in enumerate(models):
            record_type = load_model(model)
            mounts.append((names[index] if names else record_type.__name__.lower(), record_type))

        adapter = create_adapter(db_config)
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    for name, record_type in mounts:
        click.echo(f"  {record_type.__name__} -> {prefix}/{name}")

    app = create_app(mounts, adapter, prefix=prefix)
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())
