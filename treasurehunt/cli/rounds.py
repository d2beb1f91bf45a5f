"""
treasurehunt/cli/rounds.py

treasurehunt rounds / treasurehunt commit

    treasurehunt rounds <log>                 Round table rebuilt from the log
    treasurehunt rounds <log> --format json   Same, as JSON
    treasurehunt commit <secret>              Commitment hash of a secret
"""

import json
import sys
from pathlib import Path

import click

from treasurehunt.core.commitment import make_commitment
from treasurehunt.core.exceptions import LedgerError
from treasurehunt.ledger.replay import ReplayEngine


@click.command(name="rounds")
@click.argument("ledger", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
def rounds_command(ledger: str, fmt: str) -> None:
    """List every round recorded in an audit log."""
    engine = ReplayEngine()
    try:
        engine.load(Path(ledger))
        state = engine.rebuild()
    except (FileNotFoundError, ValueError, LedgerError) as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(2)

    rounds = [state.rounds[rid] for rid in sorted(state.rounds)]

    if fmt == "json":
        click.echo(json.dumps({
            "rounds":  [r.to_dict() for r in rounds],
            "next_id": state.next_id,
            "balance": state.balance,
        }, indent=2))
        return

    if not rounds:
        click.echo("No rounds.")
        return

    click.echo(f"{'ID':>4}  {'CHARITY':>7}  {'STATUS':<6}  {'POOL':>14}  {'PLAYERS':>7}  CONTENT")
    for r in rounds:
        click.echo(
            f"{r.id:>4}  {r.charity_id:>7}  {r.status.value:<6}  "
            f"{r.total_deposit:>14}  {r.participant_count:>7}  {r.content_ref}"
        )
    click.echo(f"\nContract balance: {state.balance}")


@click.command(name="commit")
@click.argument("secret")
def commit_command(secret: str) -> None:
    """Print the commitment hash to publish for SECRET."""
    try:
        click.echo(make_commitment(secret))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="SECRET")
