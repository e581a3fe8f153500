"""
teleport/cli/__init__.py

Teleport CLI: root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    teleport = "teleport.cli:cli"

Adding a new command:
    1. Create teleport/cli/your_command.py with a @click.command() or group
    2. Import it here
    3. cli.add_command(your_command)
"""

import logging

import click

from teleport.cli.audit import audit_group
from teleport.cli.guid import guid_group, oracle_group
from teleport.cli.sync import sync_group


@click.group()
@click.version_option(package_name="teleport-ledger")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for library output (stderr).",
)
def cli(log_level: str) -> None:
    """
    Teleport: cross-domain ledger and oracle tooling.

    \b
    Commands:
      guid hash       Canonical hash of a TeleportGUID
      oracle keygen   Create an oracle signing key
      oracle attest   Sign a GUID with an oracle key
      audit verify    Verify an audit log hash chain
      sync status     Show synchronizer checkpoints
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(guid_group)
cli.add_command(oracle_group)
cli.add_command(audit_group)
cli.add_command(sync_group)
