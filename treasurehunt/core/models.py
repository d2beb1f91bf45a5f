"""
treasurehunt/core/models.py

Round data model and the audit event vocabulary.

═══════════════════════════════════════════════════════════════════
ROUND CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Identity
    id is assigned by RoundLedger from a counter starting at 1.
    0 < id < next_id for every stored round. Ids are never reused.

CONTRACT 2 — Lifecycle
    status moves OPEN → CLOSED exactly once. Never back.

CONTRACT 3 — Pool
    while OPEN: total_deposit == sum of DepositLedger records for the round.
    total_deposit is zeroed exactly once, by a successful claim.

CONTRACT 4 — Commitment
    commitment_hash is written at creation and never again.

CONTRACT 5 — Content reference
    content_ref is exactly CONTENT_REF_LENGTH characters, at create and update.
═══════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Set


CONTENT_REF_LENGTH = 46

FIRST_ROUND_ID = 1

# platform fee = pool // PLATFORM_FEE_DIVISOR  (exactly 1%, floored)
PLATFORM_FEE_DIVISOR = 100

# charity share is a whole percentage of the post-fee remainder
MAX_REVENUE_SHARE = 100


class RoundStatus(Enum):
    OPEN   = "open"
    CLOSED = "closed"


@dataclass
class Round:
    """One treasure hunt: its pool, commitment and lifecycle."""
    id:                int
    charity_id:        int
    creator:           str
    content_ref:       str
    commitment_hash:   str
    deposit_target:    int = 0
    status:            RoundStatus = RoundStatus.OPEN
    total_deposit:     int = 0
    participant_count: int = 0

    @property
    def is_open(self) -> bool:
        return self.status is RoundStatus.OPEN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":                self.id,
            "charity_id":        self.charity_id,
            "creator":           self.creator,
            "content_ref":       self.content_ref,
            "commitment_hash":   self.commitment_hash,
            "deposit_target":    self.deposit_target,
            "status":            self.status.value,
            "total_deposit":     self.total_deposit,
            "participant_count": self.participant_count,
        }


@dataclass(frozen=True)
class Split:
    """Three-way division of a settled pool."""
    pool:           int
    platform_fee:   int
    charity_gain:   int
    charity_amount: int
    player_amount:  int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool":           self.pool,
            "platform_fee":   self.platform_fee,
            "charity_gain":   self.charity_gain,
            "charity_amount": self.charity_amount,
            "player_amount":  self.player_amount,
        }


class EventType:
    """
    Audit event_type constants. The ONLY valid values for HuntEvent.event_type.

    Enforcement points:
        HuntEvent.create()          → ValueError on unknown type
        HuntEvent.validate_schema() → error entry on unknown type
    """
    CONTRACT_DEPLOYED = "contract_deployed"
    ROUND_CREATED     = "round_created"
    ROUND_UPDATED     = "round_updated"
    ROUND_CLOSED      = "round_closed"
    DEPOSIT_MADE      = "deposit_made"
    ROUND_CLAIMED     = "round_claimed"
    FUNDS_WITHDRAWN   = "funds_withdrawn"
    ADMIN_GRANTED     = "admin_granted"
    ADMIN_REVOKED     = "admin_revoked"


VALID_EVENT_TYPES: Set[str] = {
    EventType.CONTRACT_DEPLOYED,
    EventType.ROUND_CREATED,
    EventType.ROUND_UPDATED,
    EventType.ROUND_CLOSED,
    EventType.DEPOSIT_MADE,
    EventType.ROUND_CLAIMED,
    EventType.FUNDS_WITHDRAWN,
    EventType.ADMIN_GRANTED,
    EventType.ADMIN_REVOKED,
}
