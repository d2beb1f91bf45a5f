"""
TreasureHunt Settlement Engine

Settles a round for the caller who reveals its commitment:

- Commitment check is a plain equality against a pre-hashed reveal
- Status and pool are finalized before any value leaves the contract
- One call latch covers claim and withdraw
- Split: 1% platform fee, charity share of the rest, remainder to the player
"""

from treasurehunt.settlement.engine import SettlementEngine, compute_split

__all__ = ["SettlementEngine", "compute_split"]
