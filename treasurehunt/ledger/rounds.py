"""
Round ledger: round records, the id sequence and the lifecycle state machine.

    OPEN ──close()──▶ CLOSED
    OPEN ──claim()──▶ CLOSED   (SettlementEngine)

CLOSED is terminal. Only this module and the settlement engine change a
round's status; only DepositLedger and the settlement engine touch its pool.
"""

import copy
import logging
from dataclasses import replace
from typing import Dict, List, Tuple

from treasurehunt.access.guard import AccessGuard
from treasurehunt.core.commitment import is_commitment
from treasurehunt.core.exceptions import InvalidInput, InvalidState, NotFound, Unauthorized
from treasurehunt.core.models import (
    CONTENT_REF_LENGTH,
    FIRST_ROUND_ID,
    EventType,
    Round,
    RoundStatus,
)
from treasurehunt.ledger.audit import AuditLog
from treasurehunt.registry.gateway import RegistryGateway

logger = logging.getLogger(__name__)


class RoundLedger:

    def __init__(
        self,
        registry:  RegistryGateway,
        guard:     AccessGuard,
        audit_log: AuditLog,
    ) -> None:
        self.registry  = registry
        self.guard     = guard
        self.audit_log = audit_log
        self._rounds:  Dict[int, Round] = {}
        self._next_id: int = FIRST_ROUND_ID

    # ── Entrypoints ───────────────────────────────────────────

    def create(
        self,
        caller:          str,
        charity_id:      int,
        content_ref:     str,
        deposit_target:  int,
        commitment_hash: str,
    ) -> int:
        """
        Open a new round for charity_id and return its id.

        deposit_target is recorded for display; deposits are never checked
        against it.
        """
        self.registry.is_valid(charity_id)
        self.guard.require_owner(caller, charity_id)
        _require_content_ref(content_ref)
        if not is_commitment(commitment_hash):
            raise InvalidInput(
                "commitment hash must be 64 lowercase hex characters",
                {"commitment_hash": commitment_hash},
            )
        if (
            not isinstance(deposit_target, int)
            or isinstance(deposit_target, bool)
            or deposit_target < 0
        ):
            raise InvalidInput(
                f"deposit target must be a non-negative int, got {deposit_target!r}"
            )

        round_id = self._next_id
        self._next_id += 1
        self._rounds[round_id] = Round(
            id=              round_id,
            charity_id=      charity_id,
            creator=         caller,
            content_ref=     content_ref,
            commitment_hash= commitment_hash,
            deposit_target=  deposit_target,
        )

        self.audit_log.stage(EventType.ROUND_CREATED, {
            "round_id":        round_id,
            "charity_id":      charity_id,
            "creator":         caller,
            "content_ref":     content_ref,
            "commitment_hash": commitment_hash,
            "deposit_target":  str(deposit_target),
        })
        logger.info("Round %d created for charity %d by %s", round_id, charity_id, caller)
        return round_id

    def update(
        self,
        caller:          str,
        charity_id:      int,
        round_id:        int,
        new_content_ref: str,
    ) -> None:
        """Replace the content reference of an open round."""
        hunt = self._require_managed(caller, charity_id, round_id)
        _require_content_ref(new_content_ref)

        previous = hunt.content_ref
        hunt.content_ref = new_content_ref

        self.audit_log.stage(EventType.ROUND_UPDATED, {
            "round_id":             round_id,
            "charity_id":           charity_id,
            "updated_by":           caller,
            "content_ref":          new_content_ref,
            "previous_content_ref": previous,
        })
        logger.info("Round %d content reference updated by %s", round_id, caller)

    def close(self, caller: str, charity_id: int, round_id: int) -> None:
        """
        Cancel an open round without settlement. Its deposits stay in the
        contract balance until an administrator sweeps them.
        """
        hunt = self._require_managed(caller, charity_id, round_id)
        hunt.status = RoundStatus.CLOSED

        self.audit_log.stage(EventType.ROUND_CLOSED, {
            "round_id":        round_id,
            "charity_id":      charity_id,
            "closed_by":       caller,
            "stranded_amount": str(hunt.total_deposit),
        })
        logger.info(
            "Round %d closed by %s with %d stranded",
            round_id, caller, hunt.total_deposit,
        )

    # ── Reads ─────────────────────────────────────────────────

    def get(self, round_id: int) -> Round:
        """A copy of the round. Raises NotFound."""
        return replace(self.live(round_id))

    def rounds(self) -> List[Round]:
        return [replace(r) for _, r in sorted(self._rounds.items())]

    @property
    def next_id(self) -> int:
        return self._next_id

    def live(self, round_id: int) -> Round:
        """The stored record itself, for DepositLedger and SettlementEngine."""
        hunt = None
        if isinstance(round_id, int) and not isinstance(round_id, bool):
            hunt = self._rounds.get(round_id)
        if hunt is None:
            raise NotFound(f"Unknown round {round_id!r}", {"round_id": round_id})
        return hunt

    def require_open(self, round_id: int) -> Round:
        hunt = self.live(round_id)
        if not hunt.is_open:
            raise InvalidState(
                f"Round {round_id} is {hunt.status.value}", {"round_id": round_id}
            )
        return hunt

    # ── Transaction support ───────────────────────────────────

    def snapshot(self) -> Tuple[Dict[int, Round], int]:
        return copy.deepcopy(self._rounds), self._next_id

    def restore(self, snapshot: Tuple[Dict[int, Round], int]) -> None:
        rounds, next_id = snapshot
        self._rounds  = copy.deepcopy(rounds)
        self._next_id = next_id

    # ── Internal ──────────────────────────────────────────────

    def _require_managed(self, caller: str, charity_id: int, round_id: int) -> Round:
        """Checks shared by update and close, in order."""
        self.guard.require_owner(caller, charity_id)
        hunt = self.live(round_id)
        if hunt.charity_id != charity_id:
            raise Unauthorized(
                "Round belongs to a different charity",
                {"round_id": round_id, "charity_id": charity_id},
            )
        if not hunt.is_open:
            raise InvalidState(
                f"Round {round_id} is {hunt.status.value}", {"round_id": round_id}
            )
        return hunt


def _require_content_ref(content_ref) -> None:
    if not isinstance(content_ref, str) or len(content_ref) != CONTENT_REF_LENGTH:
        length = len(content_ref) if isinstance(content_ref, str) else None
        raise InvalidInput(
            f"content reference must be exactly {CONTENT_REF_LENGTH} characters",
            {"length": length},
        )
