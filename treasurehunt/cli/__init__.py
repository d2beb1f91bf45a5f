"""
treasurehunt/cli/__init__.py

TreasureHunt CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    treasurehunt = "treasurehunt.cli:cli"

Adding a new command:
    1. Create treasurehunt/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import logging

import click

from treasurehunt.cli.hunt import HUNT_COMMANDS
from treasurehunt.cli.rounds import commit_command, rounds_command
from treasurehunt.cli.verify import verify_command


@click.group()
@click.version_option(package_name="treasurehunt")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging threshold for library messages.",
)
def cli(log_level: str) -> None:
    """
    TreasureHunt — charity treasure hunt escrow.

    \b
    Commands:
      verify    Verify an audit log — chain, signatures, schema.
      rounds    List rounds rebuilt from an audit log.
      commit    Print the commitment hash of a secret.
      create, update, close, deposit, claim, withdraw, show
                Operate on a contract built from --config.

    \b
    Quick start:
      treasurehunt commit "under the old oak"
      treasurehunt create -c hunt.yaml --caller charity-0xaa --charity 1 \\
          --content-ref <46 chars> --commitment <hash>
      treasurehunt verify .treasurehunt/ledger
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(verify_command)
cli.add_command(rounds_command)
cli.add_command(commit_command)
for _command in HUNT_COMMANDS:
    cli.add_command(_command)
