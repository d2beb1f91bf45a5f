"""
treasurehunt/contract.py

TreasureHunt — the contract surface.

Every mutating entrypoint runs as one transaction:

  1. Acquire the contract lock (one call at a time, re-entrant for callbacks)
  2. Snapshot rounds, deposits, vault and administrators; mark the audit log
  3. Run the operation
  4. Outermost call only: commit staged audit events to disk
  5. On ANY exception: restore the snapshot, drop staged events, re-raise

A callback that re-enters the contract during a transfer runs as a nested
transaction with its own savepoint. claim() and withdraw() additionally
hold the call latch, so re-entering either of them fails immediately.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from treasurehunt.access.guard import AccessGuard
from treasurehunt.core.crypto import Ed25519KeyManager
from treasurehunt.core.envelope import HuntEvent
from treasurehunt.core.latch import CallLatch
from treasurehunt.core.models import EventType, Round, Split
from treasurehunt.ledger.audit import AuditLog
from treasurehunt.ledger.deposits import DepositLedger
from treasurehunt.ledger.replay import RebuiltState, rebuild_state
from treasurehunt.ledger.rounds import RoundLedger
from treasurehunt.registry.gateway import RegistryGateway
from treasurehunt.settlement.engine import SettlementEngine
from treasurehunt.treasury.sweep import AdminSweep
from treasurehunt.treasury.vault import RecipientHook, Vault

logger = logging.getLogger(__name__)

DEFAULT_CONTRACT_ID = "treasure-hunt"


class TreasureHunt:
    """
    Treasure hunt escrow for one charity registry.

    Args:
        registry:    charity registry gateway (read only)
        admins:      initial administrators; ignored when resuming from a
                     log that already records them
        key_manager: event signing key; generated when omitted
        contract_id: identifier stamped on every audit event
        ledger_path: directory for audit.jsonl; None keeps the log in memory
        audit_log:   pre-built log (overrides key_manager/contract_id/ledger_path)
    """

    def __init__(
        self,
        registry:    RegistryGateway,
        admins:      Iterable[str] = (),
        key_manager: Optional[Ed25519KeyManager] = None,
        contract_id: str = DEFAULT_CONTRACT_ID,
        ledger_path: Optional[str] = None,
        audit_log:   Optional[AuditLog] = None,
    ) -> None:
        if audit_log is None:
            audit_log = AuditLog(
                key_manager or Ed25519KeyManager.generate(),
                contract_id,
                ledger_path,
            )
        self.audit_log   = audit_log
        self.contract_id = audit_log.contract_id
        self.registry    = registry

        self._lock  = threading.RLock()
        self._depth = 0

        existing = audit_log.events
        state: Optional[RebuiltState] = rebuild_state(existing) if existing else None
        initial_admins = set(admins or ())
        if state is not None and state.admins:
            initial_admins = state.admins

        self.latch      = CallLatch()
        self.vault      = Vault()
        self.guard      = AccessGuard(registry, initial_admins, audit_log)
        self.rounds     = RoundLedger(registry, self.guard, audit_log)
        self.deposits   = DepositLedger(self.rounds, self.vault, audit_log)
        self.settlement = SettlementEngine(
            self.rounds, registry, self.vault, self.latch, audit_log
        )
        self.sweep      = AdminSweep(self.guard, self.vault, self.latch, audit_log)

        if state is not None:
            self._load(state)
            logger.info(
                "Resumed contract %s from %d event(s): %d round(s), balance %d",
                self.contract_id, len(existing), len(state.rounds), state.balance,
            )
        else:
            with self._transaction("deploy"):
                self.audit_log.stage(
                    EventType.CONTRACT_DEPLOYED,
                    {"admins": sorted(self.guard.admins)},
                )
            logger.info("Deployed contract %s", self.contract_id)

    # ── Round lifecycle ───────────────────────────────────────

    def create(
        self,
        caller:          str,
        charity_id:      int,
        content_ref:     str,
        deposit_target:  int,
        commitment_hash: str,
    ) -> int:
        with self._transaction("create"):
            return self.rounds.create(
                caller, charity_id, content_ref, deposit_target, commitment_hash
            )

    def update(self, caller: str, charity_id: int, round_id: int, new_content_ref: str) -> None:
        with self._transaction("update"):
            self.rounds.update(caller, charity_id, round_id, new_content_ref)

    def close(self, caller: str, charity_id: int, round_id: int) -> None:
        with self._transaction("close"):
            self.rounds.close(caller, charity_id, round_id)

    # ── Value ─────────────────────────────────────────────────

    def deposit(self, caller: str, round_id: int, amount: int) -> int:
        with self._transaction("deposit"):
            return self.deposits.deposit(caller, round_id, amount)

    def claim(self, caller: str, round_id: int, revealed_hash: str) -> Split:
        with self._transaction("claim"):
            return self.settlement.claim(caller, round_id, revealed_hash)

    def withdraw(self, caller: str, destination: str) -> int:
        with self._transaction("withdraw"):
            return self.sweep.withdraw(caller, destination)

    def receive(self, sender: str, amount: int) -> None:
        """Plain value transfer into the contract. Always rejected."""
        with self._transaction("receive"):
            self.sweep.reject_direct_transfer(sender, amount)

    # ── Administrators ────────────────────────────────────────

    def grant_admin(self, caller: str, account: str) -> None:
        with self._transaction("grant_admin"):
            self.guard.grant_admin(caller, account)

    def revoke_admin(self, caller: str, account: str) -> None:
        with self._transaction("revoke_admin"):
            self.guard.revoke_admin(caller, account)

    # ── Reads ─────────────────────────────────────────────────

    def get_round(self, round_id: int) -> Round:
        with self._lock:
            return self.rounds.get(round_id)

    def list_rounds(self) -> List[Round]:
        with self._lock:
            return self.rounds.rounds()

    def get_deposit(self, round_id: int, depositor: str) -> int:
        with self._lock:
            return self.deposits.contribution(round_id, depositor)

    def contributors(self, round_id: int) -> Dict[str, int]:
        with self._lock:
            return self.deposits.contributors(round_id)

    @property
    def balance(self) -> int:
        return self.vault.balance

    def credited(self, address: str) -> int:
        return self.vault.credited(address)

    def is_admin(self, account: str) -> bool:
        return self.guard.is_admin(account)

    @property
    def events(self) -> List[HuntEvent]:
        return self.audit_log.events

    def register_recipient(self, address: str, hook: RecipientHook) -> None:
        """Attach code that runs when this contract pays address."""
        self.vault.register_recipient(address, hook)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            rounds = self.rounds.rounds()
            return {
                "contract_id":  self.contract_id,
                "rounds":       len(rounds),
                "open_rounds":  sum(1 for r in rounds if r.is_open),
                "balance":      self.vault.balance,
                "admins":       sorted(self.guard.admins),
                "settlement":   self.settlement.get_settlement_stats(),
                "audit_log":    self.audit_log.get_stats(),
            }

    # ── Internal ──────────────────────────────────────────────

    @contextmanager
    def _transaction(self, entrypoint: str) -> Iterator[None]:
        with self._lock:
            snapshot = self._snapshot()
            mark     = self.audit_log.mark()
            self._depth += 1
            try:
                yield
                if self._depth == 1:
                    self.audit_log.commit()
            except Exception as exc:
                self._restore(snapshot)
                self.audit_log.rollback_to(mark)
                logger.debug("%s rolled back: %s", entrypoint, exc)
                raise
            finally:
                self._depth -= 1

    def _snapshot(self):
        return (
            self.rounds.snapshot(),
            self.deposits.snapshot(),
            self.vault.snapshot(),
            self.guard.snapshot(),
        )

    def _restore(self, snapshot) -> None:
        rounds, deposits, vault, admins = snapshot
        self.rounds.restore(rounds)
        self.deposits.restore(deposits)
        self.vault.restore(vault)
        self.guard.restore(admins)

    def _load(self, state: RebuiltState) -> None:
        self.rounds.restore((state.rounds, state.next_id))
        self.deposits.restore(state.deposits)
        self.vault.restore((state.balance, state.credited))
        if state.admins:
            self.guard.restore(state.admins)

    def __repr__(self) -> str:
        return (
            f"TreasureHunt(contract_id={self.contract_id!r}, "
            f"rounds={len(self.rounds.rounds())}, balance={self.vault.balance})"
        )
