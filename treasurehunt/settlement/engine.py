"""
Settlement engine: commit-reveal claim and the three-way pool split.
"""

import logging
from typing import Any, Dict

from treasurehunt.core.commitment import reveal_matches
from treasurehunt.core.exceptions import InvalidInput, InvalidState, SecretMismatch
from treasurehunt.core.latch import CallLatch
from treasurehunt.core.models import (
    MAX_REVENUE_SHARE,
    PLATFORM_FEE_DIVISOR,
    EventType,
    RoundStatus,
    Split,
)
from treasurehunt.ledger.audit import AuditLog
from treasurehunt.ledger.rounds import RoundLedger
from treasurehunt.registry.gateway import RegistryGateway
from treasurehunt.treasury.vault import Vault

logger = logging.getLogger(__name__)


def compute_split(pool: int, charity_gain: int) -> Split:
    """
    Divide a pool into platform fee, charity amount and player amount.

        platform_fee   = pool // 100
        remaining      = pool - platform_fee
        charity_amount = remaining * charity_gain // 100
        player_amount  = remaining - charity_amount

    The three parts always sum to pool. Flooring leftovers go to the player.
    """
    if not isinstance(pool, int) or isinstance(pool, bool) or pool < 0:
        raise InvalidInput(f"pool must be a non-negative int, got {pool!r}")
    if (
        not isinstance(charity_gain, int)
        or isinstance(charity_gain, bool)
        or not 0 <= charity_gain <= MAX_REVENUE_SHARE
    ):
        raise InvalidInput(
            f"charity revenue share must be in [0, {MAX_REVENUE_SHARE}], "
            f"got {charity_gain!r}"
        )

    platform_fee   = pool // PLATFORM_FEE_DIVISOR
    remaining      = pool - platform_fee
    charity_amount = (remaining * charity_gain) // 100
    player_amount  = remaining - charity_amount

    return Split(
        pool=           pool,
        platform_fee=   platform_fee,
        charity_gain=   charity_gain,
        charity_amount= charity_amount,
        player_amount=  player_amount,
    )


class SettlementEngine:
    """
    Settles a round for the caller who reveals its commitment.

    Ordering is fixed: every local effect (status, pool) is final before
    the first transfer leaves the vault, and the call latch is held from
    the first check to the last transfer. Rollback of a failed transfer is
    the contract's job; this class only has to fail loudly.
    """

    def __init__(
        self,
        rounds:    RoundLedger,
        registry:  RegistryGateway,
        vault:     Vault,
        latch:     CallLatch,
        audit_log: AuditLog,
    ):
        """
        Args:
            rounds:    round records and lifecycle
            registry:  source of charity owner and revenue share
            vault:     contract balance and transfers
            latch:     shared with the admin sweep
            audit_log: receives the round_claimed event
        """
        self.rounds    = rounds
        self.registry  = registry
        self.vault     = vault
        self.latch     = latch
        self.audit_log = audit_log

    def claim(self, caller: str, round_id: int, revealed_hash: str) -> Split:
        """
        Settle round_id for caller.

        Args:
            caller:        claimant, receives the player amount
            round_id:      round to settle
            revealed_hash: pre-hashed secret; must equal the stored commitment

        Returns:
            The Split that was paid out.
        """
        with self.latch.hold("claim"):
            hunt = self.rounds.live(round_id)
            if not hunt.is_open:
                raise InvalidState(
                    f"Round {round_id} is {hunt.status.value}", {"round_id": round_id}
                )
            if not reveal_matches(hunt.commitment_hash, revealed_hash):
                raise SecretMismatch(
                    "Revealed hash does not match the round commitment",
                    {"round_id": round_id},
                )

            # Local effects first.
            hunt.status = RoundStatus.CLOSED
            pool = hunt.total_deposit
            split = compute_split(pool, self.registry.revenue_share(hunt.charity_id))
            hunt.total_deposit = 0

            # Interactions.
            charity_owner = self.registry.owner_of(hunt.charity_id)
            self.vault.transfer(charity_owner, split.charity_amount)
            self.vault.transfer(caller, split.player_amount)

            payload = {k: str(v) for k, v in split.to_dict().items()}
            payload.update({
                "round_id":      round_id,
                "charity_id":    hunt.charity_id,
                "claimant":      caller,
                "charity_owner": charity_owner,
            })
            self.audit_log.stage(EventType.ROUND_CLAIMED, payload)

        logger.info(
            "Round %d claimed by %s: pool=%d fee=%d charity=%d player=%d",
            round_id, caller, split.pool, split.platform_fee,
            split.charity_amount, split.player_amount,
        )
        return split

    def get_settlement_stats(self) -> Dict[str, Any]:
        """Totals over every committed claim in the audit log."""
        stats = {
            "claims":         0,
            "pool":           0,
            "platform_fee":   0,
            "charity_amount": 0,
            "player_amount":  0,
        }
        for event in self.audit_log.events:
            if event.event_type != EventType.ROUND_CLAIMED:
                continue
            stats["claims"] += 1
            for key in ("pool", "platform_fee", "charity_amount", "player_amount"):
                stats[key] += int(event.payload[key])
        return stats
