"""
teleport/cli/sync.py

teleport sync status: synchronizer checkpoints stored in the database.
"""

import json
import sys

import click
from sqlalchemy.exc import SQLAlchemyError

from teleport.config import load_config
from teleport.core.exceptions import ConfigError
from teleport.sync.store import SyncStatusRepository


@click.group(name="sync")
def sync_group() -> None:
    """Synchronizer utilities."""


@sync_group.command(name="status")
@click.option("--database-url", default=None, help="SQLAlchemy URL of the checkpoint database.")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML config; its database_url is used when --database-url is absent.",
)
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table", show_default=True)
def status_command(database_url, config_path, fmt) -> None:
    """List (name, domain) → next block checkpoints."""
    if database_url is None:
        if config_path is None:
            click.echo("Error: pass --database-url or --config", err=True)
            sys.exit(2)
        try:
            database_url = load_config(config_path).database_url
        except ConfigError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(2)

    try:
        statuses = SyncStatusRepository.from_url(database_url).all()
    except SQLAlchemyError as exc:
        click.echo(f"Error: cannot read checkpoints: {exc}", err=True)
        sys.exit(2)

    if fmt == "json":
        click.echo(json.dumps(
            [{"name": s.name, "domain": s.domain, "block": s.block} for s in statuses],
            indent=2,
        ))
        return

    if not statuses:
        click.echo("No checkpoints recorded.")
        return
    width = max(len(s.name) for s in statuses)
    for s in statuses:
        click.echo(f"{s.name:<{width}}  {s.domain:<16}  {s.block}")
