"""
Contract-held value and outbound transfers.

The vault holds one balance shared by every round: deposits, the platform
fees left behind by claims, and deposits stranded by cancelled rounds.

transfer() is the only place foreign code runs. An address may register a
recipient callback (a contract wallet, a test double); it is invoked after
the value has left the balance, the way a payable fallback runs. If the
callback raises, the transfer is a TransferFailure and the surrounding
entrypoint rolls back, transfer included.
"""

import copy
import logging
from typing import Callable, Dict, Optional, Tuple

from treasurehunt.core.exceptions import InvalidInput, TransferFailure

logger = logging.getLogger(__name__)

# callback(amount); raising refuses the payment
RecipientHook = Callable[[int], None]


class Vault:

    def __init__(self) -> None:
        self._balance:  int = 0
        self._credited: Dict[str, int] = {}
        self._hooks:    Dict[str, RecipientHook] = {}

    @property
    def balance(self) -> int:
        return self._balance

    def credited(self, address: str) -> int:
        """Total value this contract has paid out to address."""
        return self._credited.get(address, 0)

    # ── Recipients ────────────────────────────────────────────

    def register_recipient(self, address: str, hook: RecipientHook) -> None:
        self._hooks[address] = hook

    def unregister_recipient(self, address: str) -> Optional[RecipientHook]:
        return self._hooks.pop(address, None)

    # ── Value movement ────────────────────────────────────────

    def receive(self, amount: int) -> None:
        """Book value attached to an accounted deposit."""
        if not _is_amount(amount) or amount <= 0:
            raise InvalidInput(f"amount must be a positive int, got {amount!r}")
        self._balance += amount

    def transfer(self, to: str, amount: int) -> None:
        if not isinstance(to, str) or not to:
            raise TransferFailure("transfer destination must be a non-empty address")
        if not _is_amount(amount) or amount < 0:
            raise TransferFailure(f"invalid transfer amount {amount!r}")
        if amount > self._balance:
            raise TransferFailure(
                "insufficient contract balance",
                {"to": to, "amount": amount, "balance": self._balance},
            )

        self._balance -= amount
        self._credited[to] = self._credited.get(to, 0) + amount

        hook = self._hooks.get(to)
        if hook is not None:
            try:
                hook(amount)
            except Exception as exc:
                logger.warning("Transfer of %d to %s refused: %s", amount, to, exc)
                raise TransferFailure(
                    f"recipient {to} refused transfer: {exc}",
                    {"to": to, "amount": amount},
                ) from exc

        logger.debug("Transferred %d to %s", amount, to)

    # ── Transaction support ───────────────────────────────────

    def snapshot(self) -> Tuple[int, Dict[str, int]]:
        return self._balance, dict(self._credited)

    def restore(self, snapshot: Tuple[int, Dict[str, int]]) -> None:
        balance, credited = snapshot
        self._balance  = balance
        self._credited = copy.copy(credited)


def _is_amount(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
