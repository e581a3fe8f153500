"""
teleport/cli/guid.py

    teleport guid hash --source ETH-GOE-A --target OPT-GOE-A --receiver 0x.. \\
                       --amount 100 --nonce 0 --timestamp 1646234074
    teleport oracle keygen oracle.pem
    teleport oracle attest oracle.pem guid.json

attest prints {"guid": {...}, "hash": "0x..", "oracle": "0x..", "signatures": "0x.."};
the signatures field is ready to pass to request_mint.
"""

import json
import sys
from pathlib import Path

import click

from teleport.core.crypto import OracleKey
from teleport.core.exceptions import ValidationError
from teleport.core.guid import ZERO_IDENTITY, TeleportGUID
from teleport.oracle.attestation import Oracle, encode_signatures


@click.group(name="guid")
def guid_group() -> None:
    """TeleportGUID utilities."""


@guid_group.command(name="hash")
@click.option("--source",    "source_domain", required=True, help="Source domain name.")
@click.option("--target",    "target_domain", required=True, help="Target domain name.")
@click.option("--receiver",  required=True, help="Receiver identity (0x-hex).")
@click.option("--operator",  default=ZERO_IDENTITY, show_default=True, help="Operator identity.")
@click.option("--amount",    required=True, type=int)
@click.option("--nonce",     required=True, type=int)
@click.option("--timestamp", required=True, type=int)
@click.option("--encoding",  is_flag=True, help="Also print the 224-byte encoding.")
def hash_command(source_domain, target_domain, receiver, operator, amount, nonce, timestamp, encoding):
    """Print the canonical hash of a GUID."""
    try:
        guid = TeleportGUID(
            source_domain= source_domain,
            target_domain= target_domain,
            receiver=      receiver,
            operator=      operator,
            amount=        amount,
            nonce=         nonce,
            timestamp=     timestamp,
        )
    except ValidationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    click.echo(guid.hash_hex())
    if encoding:
        click.echo("0x" + guid.encode().hex())


@click.group(name="oracle")
def oracle_group() -> None:
    """Oracle key and attestation utilities."""


@oracle_group.command(name="keygen")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, help="Overwrite an existing key file.")
def keygen_command(path: str, force: bool) -> None:
    """Generate an Ed25519 oracle key and print its identity."""
    target = Path(path)
    if target.exists() and not force:
        click.echo(f"Error: {target} exists (use --force to overwrite)", err=True)
        sys.exit(2)
    key = OracleKey.generate()
    key.save(target)
    click.echo(key.identity)


@oracle_group.command(name="attest")
@click.argument("key_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("guid_path", type=click.Path(exists=True, dir_okay=False))
def attest_command(key_path: str, guid_path: str) -> None:
    """Sign the GUID in GUID_PATH (JSON) with the key in KEY_PATH."""
    try:
        oracle = Oracle(OracleKey.from_file(Path(key_path)))
        with open(guid_path, "r", encoding="utf-8") as f:
            guid = TeleportGUID.from_dict(json.load(f))
    except (ValueError, ValidationError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    attestation = oracle.attest(guid)
    click.echo(json.dumps({
        "guid":       guid.to_dict(),
        "hash":       guid.hash_hex(),
        "oracle":     attestation.oracle,
        "signatures": "0x" + encode_signatures([attestation]).hex(),
    }, indent=2))
