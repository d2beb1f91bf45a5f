"""
treasurehunt/ledger/audit.py

Append-only, signed, hash-chained audit log of contract events.

Events are produced in two steps:

  1. stage()   — build and sign the next HuntEvent, chained onto the last
                 staged (or committed) event. Held in memory only.
  2. commit()  — persist every staged event to JSONL, then advance the
                 committed state. Only after a confirmed write.

A failed entrypoint calls rollback_to(mark) to discard what it staged, so
an aborted call leaves no trace in the log. Committed events are never
rewritten or removed.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from treasurehunt.core.crypto import Ed25519KeyManager
from treasurehunt.core.envelope import GENESIS_HASH, LOG_VERSION, HuntEvent
from treasurehunt.core.exceptions import LedgerError
from treasurehunt.ledger.replay import ReplayEngine

logger = logging.getLogger(__name__)

LOG_FILENAME = "audit.jsonl"


class AuditLog:
    """
    Signed event log for one contract.

    ledger_path=None keeps the log in memory only. Otherwise events are
    appended to <ledger_path>/audit.jsonl and reloaded on construction.
    """

    def __init__(
        self,
        key_manager: Ed25519KeyManager,
        contract_id: str,
        ledger_path: Optional[str] = None,
    ) -> None:
        self.key_manager = key_manager
        self.contract_id = contract_id

        self._lock:      threading.RLock = threading.RLock()
        self._committed: List[HuntEvent] = []
        self._pending:   List[HuntEvent] = []

        self._ledger_file: Optional[Path] = None
        if ledger_path is not None:
            ledger_dir = Path(ledger_path)
            ledger_dir.mkdir(parents=True, exist_ok=True)
            self._ledger_file = ledger_dir / LOG_FILENAME
            self._restore_state()

    # ── Public API ────────────────────────────────────────────

    @property
    def ledger_file(self) -> Optional[Path]:
        return self._ledger_file

    @property
    def events(self) -> List[HuntEvent]:
        """Committed events, oldest first."""
        with self._lock:
            return list(self._committed)

    @property
    def pending(self) -> List[HuntEvent]:
        with self._lock:
            return list(self._pending)

    def __len__(self) -> int:
        return len(self._committed)

    def stage(self, event_type: str, payload: Dict[str, Any]) -> HuntEvent:
        """Create and sign the next event. Not durable until commit()."""
        with self._lock:
            prev = self._last_event()
            event = HuntEvent.create(
                event_type=        event_type,
                contract_id=       self.contract_id,
                signer_public_key= self.key_manager.public_key_hex,
                sequence=          len(self._committed) + len(self._pending),
                payload=           payload,
                prev=              prev,
            ).sign(self.key_manager)
            self._pending.append(event)
            return event

    def mark(self) -> int:
        """Savepoint: the number of staged events right now."""
        with self._lock:
            return len(self._pending)

    def rollback_to(self, mark: int) -> None:
        """Discard events staged after mark."""
        with self._lock:
            dropped = len(self._pending) - mark
            if dropped > 0:
                logger.debug("Discarding %d staged audit event(s)", dropped)
            del self._pending[mark:]

    def commit(self) -> List[HuntEvent]:
        """
        Persist staged events and make them part of the log.
        Raises LedgerError on write failure; nothing advances in that case.
        """
        with self._lock:
            if not self._pending:
                return []
            batch = list(self._pending)
            self._append_to_ledger(batch)
            self._committed.extend(batch)
            self._pending.clear()
            return batch

    def events_for_round(self, round_id: int) -> List[HuntEvent]:
        return [e for e in self.events if e.round_id == round_id]

    def verify_chain(self) -> bool:
        """
        Check every committed event: sequence from 0, causal_hash against its
        predecessor, signature. False on the first violation.
        """
        events = self.events
        for i, event in enumerate(events):
            prev = events[i - 1] if i > 0 else None
            if not event.verify_sequence(i):
                return False
            if not event.verify_chain(prev):
                return False
            if not event.verify_signature():
                return False
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            last = self._committed[-1] if self._committed else None
            return {
                "contract_id":      self.contract_id,
                "committed_events": len(self._committed),
                "pending_events":   len(self._pending),
                "last_event_id":    last.event_id if last else None,
                "head_hash":        HuntEvent.causal_hash_of(last) if last else GENESIS_HASH,
                "ledger_file":      str(self._ledger_file) if self._ledger_file else None,
                "log_version":      LOG_VERSION,
            }

    # ── Internal ──────────────────────────────────────────────

    def _last_event(self) -> Optional[HuntEvent]:
        if self._pending:
            return self._pending[-1]
        if self._committed:
            return self._committed[-1]
        return None

    def _restore_state(self) -> None:
        """
        Reload committed events from disk.

        Every line must parse, pass the schema check and belong to this
        contract, and the whole log must pass the replay verification laws
        (sequence, causal chain, nonces, signatures). Anything else raises
        LedgerError and nothing is restored: appending after a bad line
        would hide later events from every future reload.
        """
        if self._ledger_file is None or not self._ledger_file.exists():
            return

        restored: List[HuntEvent] = []
        with open(self._ledger_file, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    event  = HuntEvent.from_dict(json.loads(line))
                    schema = event.validate_schema()
                    if not schema:
                        raise ValueError(f"schema violation: {schema.errors}")
                    if event.contract_id != self.contract_id:
                        raise ValueError(
                            f"event belongs to contract {event.contract_id!r}"
                        )
                except (ValueError, KeyError, TypeError) as exc:
                    raise LedgerError(
                        f"Cannot restore line {line_num} of {self._ledger_file}: "
                        f"{exc}. Run `treasurehunt verify` on this log.",
                        {"ledger_file": str(self._ledger_file), "line": line_num},
                    ) from exc
                restored.append(event)

        summary = ReplayEngine.from_events(restored).verify()
        if not summary.valid:
            first = summary.violations[0]
            raise LedgerError(
                f"Audit log {self._ledger_file} failed verification with "
                f"{len(summary.violations)} violation(s); first at sequence "
                f"{first.at_sequence}: {first.violation_type}: {first.detail}",
                {"ledger_file": str(self._ledger_file), "event_id": first.event_id},
            )

        self._committed = restored
        logger.info(
            "Restored %d audit event(s) from %s",
            len(self._committed), self._ledger_file,
        )

    def _append_to_ledger(self, batch: List[HuntEvent]) -> None:
        if self._ledger_file is None:
            return
        data = "".join(json.dumps(event.to_dict()) + "\n" for event in batch)
        try:
            with open(self._ledger_file, "a", encoding="utf-8") as f:
                f.write(data)
                f.flush()
        except OSError as exc:
            raise LedgerError(
                f"Audit log write failed: {exc}",
                {"ledger_file": str(self._ledger_file)},
            ) from exc
