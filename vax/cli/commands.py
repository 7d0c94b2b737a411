"""
vax/cli/commands.py

Small one-shot commands around the encoder and the chain engine.

    vax canon [FILE|-] [--hash]       canonical bytes (or their SHA-256)
    vax genesis ACTOR_ID SALT_HEX     genesis SAI
    vax genesis ACTOR_ID --new-salt   fresh salt + genesis SAI
    vax chain-id PREV_HEX [FILE|-]    SAI for envelope bytes
    vax schema FILE                   transport form of a schema file

Exit codes:
    0  success
    2  unreadable input, bad hex, or a value that cannot be canonicalized
"""

import hashlib
import sys

import click

from vax.config import load_schema
from vax.core.canonical import encode, encode_text
from vax.core.chain import (
    GENESIS_SALT_SIZE,
    SAI_SIZE,
    chain_id,
    from_hex,
    generate_genesis_salt,
    genesis_id,
)
from vax.core.exceptions import EncodingError, InvalidInput


def read_input(source) -> bytes:
    """Read a click File opened in binary mode, dropping one trailing newline."""
    data = source.read()
    if data.endswith(b"\r\n"):
        return data[:-2]
    if data.endswith(b"\n"):
        return data[:-1]
    return data


def parse_hex(value: str, size: int, label: str) -> bytes:
    try:
        return from_hex(value, size)
    except InvalidInput as exc:
        raise click.BadParameter(str(exc), param_hint=label) from exc


def fail(message: str) -> None:
    click.echo(f"error: {message}", err=True)
    sys.exit(2)


# ── canon ─────────────────────────────────────────────────────

@click.command(name="canon")
@click.argument("source", type=click.File("rb"), default="-")
@click.option("--hash", "as_hash", is_flag=True, default=False,
              help="Print the SHA-256 of the canonical bytes instead.")
def canon_command(source, as_hash: bool) -> None:
    """
    Print the canonical VAX-JCS form of SOURCE (a file, or - for stdin).
    """
    try:
        canonical = encode_text(read_input(source))
    except EncodingError as exc:
        fail(str(exc))

    if as_hash:
        click.echo(hashlib.sha256(canonical).hexdigest())
    else:
        click.echo(canonical.decode("ascii"))


# ── genesis ───────────────────────────────────────────────────

@click.command(name="genesis")
@click.argument("actor_id")
@click.argument("salt_hex", required=False)
@click.option("--new-salt", is_flag=True, default=False,
              help="Generate a fresh 16-byte salt and print it first.")
def genesis_command(actor_id: str, salt_hex: str, new_salt: bool) -> None:
    """Compute the genesis SAI of ACTOR_ID (user:device) under SALT_HEX."""
    if new_salt == bool(salt_hex):
        raise click.UsageError("give exactly one of SALT_HEX or --new-salt")

    if new_salt:
        salt = generate_genesis_salt()
        click.echo(f"salt    {salt.hex()}")
        click.echo(f"genesis {genesis_id(actor_id, salt).hex()}")
        return

    salt = parse_hex(salt_hex, GENESIS_SALT_SIZE, "SALT_HEX")
    click.echo(genesis_id(actor_id, salt).hex())


# ── chain-id ──────────────────────────────────────────────────

@click.command(name="chain-id")
@click.argument("prev_hex")
@click.argument("source", type=click.File("rb"), default="-")
def chain_id_command(prev_hex: str, source) -> None:
    """Compute the SAI linking the envelope in SOURCE to PREV_HEX."""
    prev = parse_hex(prev_hex, SAI_SIZE, "PREV_HEX")
    try:
        click.echo(chain_id(prev, read_input(source)).hex())
    except InvalidInput as exc:
        fail(str(exc))


# ── schema ────────────────────────────────────────────────────

@click.command(name="schema")
@click.argument("path", type=click.Path(dir_okay=False))
def schema_command(path: str) -> None:
    """Print the schema in PATH (YAML or JSON) in canonical transport form."""
    try:
        schema = load_schema(path)
        click.echo(encode(schema.to_transport()).decode("ascii"))
    except (FileNotFoundError, InvalidInput, EncodingError) as exc:
        fail(str(exc))
