"""
treasurehunt/cli/hunt.py

Contract operations against a configured deployment.

    treasurehunt create   -c hunt.yaml --caller charity-0xaa --charity 1 \\
                          --content-ref Qm... --commitment <hash> [--target N]
    treasurehunt update   -c hunt.yaml --caller charity-0xaa --charity 1 --round 1 \\
                          --content-ref Qm...
    treasurehunt close    -c hunt.yaml --caller charity-0xaa --charity 1 --round 1
    treasurehunt deposit  -c hunt.yaml --caller player-1 --round 1 --amount 100
    treasurehunt claim    -c hunt.yaml --caller player-1 --round 1 --reveal <hash>
    treasurehunt withdraw -c hunt.yaml --caller admin-0x01 --to treasury-0x01
    treasurehunt show     -c hunt.yaml [--round 1]

Every command loads the contract from its audit log, runs one entrypoint
and lets the contract commit the resulting events. A rejected call prints
``ERROR <code>: <message>`` and exits 1; nothing is written.
"""

import functools
import json
import sys
from typing import Callable

import click

from treasurehunt.config import HuntConfig
from treasurehunt.contract import TreasureHunt
from treasurehunt.core.exceptions import TreasureHuntError


def _config_option(f: Callable) -> Callable:
    return click.option(
        "--config", "-c", "config_path",
        type=click.Path(dir_okay=False),
        required=True,
        help="Deployment config (YAML).",
    )(f)


def _caller_option(f: Callable) -> Callable:
    return click.option(
        "--caller", required=True, help="Address the call is made from."
    )(f)


def _reports_errors(f: Callable) -> Callable:
    """Turn domain rejections into ERROR lines and exit code 1."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except TreasureHuntError as e:
            click.echo(f"ERROR {e.code}: {e}", err=True)
            sys.exit(1)
    return wrapper


def _load(config_path: str) -> TreasureHunt:
    return HuntConfig.from_yaml(config_path).build()


@click.command(name="create")
@_config_option
@_caller_option
@click.option("--charity", "charity_id", type=int, required=True)
@click.option("--content-ref", required=True, help="46-character content reference.")
@click.option("--commitment", required=True, help="Output of `treasurehunt commit`.")
@click.option("--target", "deposit_target", type=int, default=0, show_default=True)
@_reports_errors
def create_command(config_path, caller, charity_id, content_ref, commitment, deposit_target):
    """Open a new round."""
    hunt = _load(config_path)
    round_id = hunt.create(caller, charity_id, content_ref, deposit_target, commitment)
    click.echo(f"Round {round_id} created")


@click.command(name="update")
@_config_option
@_caller_option
@click.option("--charity", "charity_id", type=int, required=True)
@click.option("--round", "round_id", type=int, required=True)
@click.option("--content-ref", required=True)
@_reports_errors
def update_command(config_path, caller, charity_id, round_id, content_ref):
    """Replace the content reference of an open round."""
    hunt = _load(config_path)
    hunt.update(caller, charity_id, round_id, content_ref)
    click.echo(f"Round {round_id} updated")


@click.command(name="close")
@_config_option
@_caller_option
@click.option("--charity", "charity_id", type=int, required=True)
@click.option("--round", "round_id", type=int, required=True)
@_reports_errors
def close_command(config_path, caller, charity_id, round_id):
    """Close an open round without settlement."""
    hunt = _load(config_path)
    hunt.close(caller, charity_id, round_id)
    stranded = hunt.get_round(round_id).total_deposit
    click.echo(f"Round {round_id} closed ({stranded} left in contract)")


@click.command(name="deposit")
@_config_option
@_caller_option
@click.option("--round", "round_id", type=int, required=True)
@click.option("--amount", type=int, required=True)
@_reports_errors
def deposit_command(config_path, caller, round_id, amount):
    """Add value to an open round's pool."""
    hunt = _load(config_path)
    total = hunt.deposit(caller, round_id, amount)
    click.echo(f"Deposited {amount} into round {round_id} (your total: {total})")


@click.command(name="claim")
@_config_option
@_caller_option
@click.option("--round", "round_id", type=int, required=True)
@click.option("--reveal", "revealed_hash", required=True, help="Hash of the secret.")
@_reports_errors
def claim_command(config_path, caller, round_id, revealed_hash):
    """Settle a round by revealing its secret hash."""
    hunt = _load(config_path)
    split = hunt.claim(caller, round_id, revealed_hash)
    click.echo(
        f"Round {round_id} settled: pool {split.pool}, fee {split.platform_fee}, "
        f"charity {split.charity_amount}, player {split.player_amount}"
    )


@click.command(name="withdraw")
@_config_option
@_caller_option
@click.option("--to", "destination", required=True, help="Destination address.")
@_reports_errors
def withdraw_command(config_path, caller, destination):
    """Sweep the whole contract balance to an address (admins only)."""
    hunt = _load(config_path)
    amount = hunt.withdraw(caller, destination)
    click.echo(f"Withdrew {amount} to {destination}")


@click.command(name="show")
@_config_option
@click.option("--round", "round_id", type=int, default=None, help="Show one round.")
@_reports_errors
def show_command(config_path, round_id):
    """Print contract stats, or one round as JSON."""
    hunt = _load(config_path)
    if round_id is None:
        click.echo(json.dumps(hunt.get_stats(), indent=2, default=str))
    else:
        data = hunt.get_round(round_id).to_dict()
        data["deposits"] = hunt.contributors(round_id)
        click.echo(json.dumps(data, indent=2))


HUNT_COMMANDS = [
    create_command,
    update_command,
    close_command,
    deposit_command,
    claim_command,
    withdraw_command,
    show_command,
]
