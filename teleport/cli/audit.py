"""
teleport/cli/audit.py

teleport audit verify: audit log chain verification.

Exit codes:
    0  Log fully valid
    1  Log has violations
    2  Error  (file missing, malformed JSON)
"""

import json
import sys
from pathlib import Path

import click

from teleport.ledger.audit import AuditLog


@click.group(name="audit")
def audit_group() -> None:
    """Audit log utilities."""


@audit_group.command(name="verify")
@click.argument("path", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"]),
    default="human",
    show_default=True,
)
@click.option("--quiet", "-q", is_flag=True, help="Exit code only.")
def verify_command(path: str, fmt: str, quiet: bool) -> None:
    """Verify the hash chain of the audit log at PATH."""
    log_path = Path(path)
    if not log_path.exists():
        if not quiet:
            click.echo(f"Error: audit log not found: {log_path}", err=True)
        sys.exit(2)

    try:
        result = AuditLog.verify_file(log_path)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        if not quiet:
            click.echo(f"Error: cannot read audit log: {exc}", err=True)
        sys.exit(2)

    if quiet:
        sys.exit(0 if result.valid else 1)

    if fmt == "json":
        click.echo(json.dumps({
            "path":          str(log_path),
            "valid":         result.valid,
            "total_records": result.total_records,
            "errors":        result.errors,
        }, indent=2))
    else:
        status = "VALID" if result.valid else "INVALID"
        click.echo(f"{log_path}: {status} ({result.total_records} records)")
        for error in result.errors:
            click.echo(f"  - {error}")

    sys.exit(0 if result.valid else 1)
