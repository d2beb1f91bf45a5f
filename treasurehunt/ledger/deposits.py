"""
Deposit ledger: who put how much into which round.

Records are keyed by (round_id, depositor) and only ever grow. A round's
total_deposit always equals the sum of its records while the round is
open; the settlement engine zeroes the total at claim and leaves the
per-depositor records as history.
"""

import logging
from typing import Dict, Tuple

from treasurehunt.core.exceptions import InvalidInput
from treasurehunt.core.models import EventType
from treasurehunt.ledger.audit import AuditLog
from treasurehunt.ledger.rounds import RoundLedger
from treasurehunt.treasury.vault import Vault

logger = logging.getLogger(__name__)


class DepositLedger:

    def __init__(self, rounds: RoundLedger, vault: Vault, audit_log: AuditLog) -> None:
        self.rounds    = rounds
        self.vault     = vault
        self.audit_log = audit_log
        self._records: Dict[Tuple[int, str], int] = {}

    def deposit(self, caller: str, round_id: int, amount: int) -> int:
        """
        Add amount to round_id's pool on behalf of caller. Any positive amount
        is accepted. Returns the caller's accumulated contribution.
        """
        hunt = self.rounds.require_open(round_id)
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidInput(
                f"deposit amount must be a positive int, got {amount!r}",
                {"round_id": round_id},
            )
        if not isinstance(caller, str) or not caller:
            raise InvalidInput("depositor must be a non-empty address")

        self.vault.receive(amount)
        hunt.total_deposit     += amount
        hunt.participant_count += 1
        key = (round_id, caller)
        self._records[key] = self._records.get(key, 0) + amount

        self.audit_log.stage(EventType.DEPOSIT_MADE, {
            "round_id":      round_id,
            "depositor":     caller,
            "amount":        str(amount),
            "total_deposit": str(hunt.total_deposit),
        })
        logger.debug(
            "Deposit of %d into round %d by %s (pool %d)",
            amount, round_id, caller, hunt.total_deposit,
        )
        return self._records[key]

    # ── Reads ─────────────────────────────────────────────────

    def contribution(self, round_id: int, depositor: str) -> int:
        self.rounds.live(round_id)
        return self._records.get((round_id, depositor), 0)

    def contributors(self, round_id: int) -> Dict[str, int]:
        self.rounds.live(round_id)
        return {
            depositor: amount
            for (rid, depositor), amount in sorted(self._records.items())
            if rid == round_id
        }

    def recorded_total(self, round_id: int) -> int:
        return sum(self.contributors(round_id).values())

    # ── Transaction support ───────────────────────────────────

    def snapshot(self) -> Dict[Tuple[int, str], int]:
        return dict(self._records)

    def restore(self, snapshot: Dict[Tuple[int, str], int]) -> None:
        self._records = dict(snapshot)
