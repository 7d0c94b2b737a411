"""
vax/cli/__init__.py

VAX CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    vax = "vax.cli:cli"

Adding a new command:
    1. Write a @click.command() in vax/cli/
    2. Import it here
    3. cli.add_command(your_command)
"""

from typing import Optional

import click

from vax.cli.commands import canon_command, chain_id_command, genesis_command, schema_command
from vax.cli.verify import verify_command
from vax.config import configure_logging
from vax.core.exceptions import InvalidInput


@click.group()
@click.version_option(package_name="vax")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for the vax loggers (default: $VAX_LOG_LEVEL or WARNING).",
)
def cli(log_level: Optional[str]) -> None:
    """
    VAX — verifiable action chains.

    \b
    Commands:
      canon     Print the canonical VAX-JCS form of a JSON document.
      genesis   Compute an actor's genesis SAI.
      chain-id  Compute the SAI linking an envelope to its predecessor.
      schema    Print a schema file in canonical transport form.
      verify    Verify one submitted action.

    \b
    Quick start:
      vax canon action.json
      vax genesis user123:device456 a1a2a3a4a5a6a7a8a9aaabacadaeafb0
      vax verify envelope.json --schema purchase.yaml \\
          --expected-prev HEX --prev HEX --id HEX
    """
    try:
        configure_logging(log_level)
    except InvalidInput as exc:
        raise click.UsageError(str(exc)) from exc


cli.add_command(canon_command)
cli.add_command(genesis_command)
cli.add_command(chain_id_command)
cli.add_command(schema_command)
cli.add_command(verify_command)
