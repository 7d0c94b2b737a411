"""
vax/cli/verify.py

vax verify — single action admission check
==========================================

Usage:
    vax verify <envelope> --schema S --expected-prev H --prev H --id H
    vax verify <envelope> ... --format json      Machine-readable JSON
    vax verify <envelope> ... --quiet            Exit code only

<envelope> is a file holding canonical envelope bytes, or - for stdin.
One trailing newline is ignored.

Exit codes (POSIX-standard, shell-scriptable):
    0  Action admitted
    1  Action rejected (invalid_input, invalid_prev_sai, validation_failed, sai_mismatch)
    2  Error  (file missing, unreadable schema, malformed hex)
"""

import json
import sys

import click

from vax.cli.commands import parse_hex, read_input
from vax.config import load_schema
from vax.core.chain import SAI_SIZE
from vax.core.exceptions import EncodingError, InvalidInput
from vax.core.verification import VerificationResult, admit


# ── Output ────────────────────────────────────────────────────

def _row(label: str, value: str, ok: bool = True) -> str:
    mark = click.style("OK  ", fg="green") if ok else click.style("FAIL", fg="red")
    return f"  {label:<16}  {mark}  {value}"


def _output_human(result: VerificationResult) -> None:
    click.echo("")
    click.echo(click.style("  VAX verify", bold=True))
    click.echo("")
    if result.admitted:
        env = result.envelope
        click.echo(_row("action_type", env.action_type))
        click.echo(_row("timestamp", str(env.timestamp)))
        click.echo(_row("fields", ", ".join(sorted(env.fields)) or "-"))
        click.echo(_row("sai", result.sai.hex()))
        click.echo("")
        click.echo(click.style("  ADMITTED", fg="green", bold=True))
    else:
        click.echo(_row("reached", result.reached.value))
        click.echo(_row(result.kind, result.reason, ok=False))
        for message in result.errors:
            click.echo(f"      - {message}")
        click.echo("")
        click.echo(click.style(f"  REJECTED ({result.kind})", fg="red", bold=True))
    click.echo("")


def _emit_error(message: str, fmt: str, quiet: bool) -> None:
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({"error": message}))
    else:
        click.echo(f"error: {message}", err=True)


# ── CLI command ───────────────────────────────────────────────

@click.command(name="verify")
@click.argument("envelope", type=click.Path(dir_okay=False, allow_dash=True))
@click.option("--schema", "schema_path", required=True,
              type=click.Path(dir_okay=False), metavar="PATH",
              help="Schema file (YAML or JSON) for this action type.")
@click.option("--expected-prev", required=True, metavar="HEX",
              help="The actor's current chain head.")
@click.option("--prev", "claimed_prev", required=True, metavar="HEX",
              help="Prev SAI claimed by the submitter.")
@click.option("--id", "claimed_id", required=True, metavar="HEX",
              help="SAI claimed by the submitter.")
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--quiet", is_flag=True, default=False,
              help="Suppress all output. Use exit code only (0=admitted, 1=rejected, 2=error).")
def verify_command(
    envelope:      str,
    schema_path:   str,
    expected_prev: str,
    claimed_prev:  str,
    claimed_id:    str,
    fmt:           str,
    quiet:         bool,
) -> None:
    """
    Verify one submitted action against the actor's chain head.

    \b
    Examples:
      vax verify env.json --schema purchase.yaml --expected-prev H --prev H --id H
      vax canon action.json | vax verify - --schema s.json ... --format json
    """
    fmt = fmt.lower()

    expected = parse_hex(expected_prev, SAI_SIZE, "--expected-prev")
    prev     = parse_hex(claimed_prev, SAI_SIZE, "--prev")
    sai      = parse_hex(claimed_id, SAI_SIZE, "--id")

    # ── Load ──────────────────────────────────────────────────
    try:
        schema = load_schema(schema_path)
    except (FileNotFoundError, InvalidInput, EncodingError) as exc:
        _emit_error(str(exc), fmt, quiet)
        sys.exit(2)

    try:
        with click.open_file(envelope, "rb") as source:
            envelope_bytes = read_input(source)
    except OSError as exc:
        _emit_error(f"cannot read envelope: {exc}", fmt, quiet)
        sys.exit(2)

    # ── Verify ────────────────────────────────────────────────
    result = admit(expected, prev, envelope_bytes, sai, schema)

    if quiet:
        sys.exit(0 if result.admitted else 1)

    if fmt == "json":
        click.echo(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    else:
        _output_human(result)

    sys.exit(0 if result.admitted else 1)
