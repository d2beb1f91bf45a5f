"""
Admin sweep: move the whole contract balance to an administrator's choice
of address. The balance is accrued platform fees plus deposits stranded by
cancelled rounds.
"""

import logging

from treasurehunt.access.guard import AccessGuard
from treasurehunt.core.exceptions import InvalidInput
from treasurehunt.core.latch import CallLatch
from treasurehunt.core.models import EventType
from treasurehunt.ledger.audit import AuditLog
from treasurehunt.treasury.vault import Vault

logger = logging.getLogger(__name__)


class AdminSweep:

    def __init__(
        self,
        guard:     AccessGuard,
        vault:     Vault,
        latch:     CallLatch,
        audit_log: AuditLog,
    ) -> None:
        self.guard     = guard
        self.vault     = vault
        self.latch     = latch
        self.audit_log = audit_log

    def withdraw(self, caller: str, destination: str) -> int:
        """Transfer the full balance to destination. Returns the amount moved."""
        with self.latch.hold("withdraw"):
            self.guard.require_admin(caller)
            if not isinstance(destination, str) or not destination:
                raise InvalidInput("destination must be a non-empty address")

            amount = self.vault.balance
            self.vault.transfer(destination, amount)

            self.audit_log.stage(EventType.FUNDS_WITHDRAWN, {
                "withdrawn_by": caller,
                "destination":  destination,
                "amount":       str(amount),
            })

        logger.info("Withdrew %d to %s (by %s)", amount, destination, caller)
        return amount

    def reject_direct_transfer(self, sender: str, amount: int) -> None:
        """Value sent outside deposit() is never accepted."""
        raise InvalidInput(
            "direct transfers are not accepted; use deposit()",
            {"sender": sender, "amount": amount},
        )
