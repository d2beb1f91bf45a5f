"""
treasurehunt/ledger/replay.py

Audit log replay: integrity verification and state reconstruction.

Verification laws:
    1. Load     → HuntEvent.from_dict(line), then validate_schema()
    2. Sequence → event i carries sequence i
    3. Chain    → event.verify_chain(prev)
    4. Nonce    → no two events share a nonce
    5. Sig      → event.verify_signature()
    6. Contract → every event carries the same contract_id

Reconstruction:
    rebuild_state(events) folds committed events into the exact state the
    contract held after the last of them: rounds, id counter, deposit
    records, vault balance, payouts and the administrator set. The
    contract uses it to resume from a persisted log; the CLI uses it to
    list rounds.
"""

import json
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from treasurehunt.core.envelope import HuntEvent
from treasurehunt.core.exceptions import LedgerError
from treasurehunt.core.models import FIRST_ROUND_ID, EventType, Round, RoundStatus


# ─────────────────────────────────────────────────────────────
# Verification result types
# ─────────────────────────────────────────────────────────────

@dataclass
class ChainViolation:
    """A single detected violation in the log."""
    at_sequence:    int
    event_id:       str
    violation_type: str   # "chain_break" | "invalid_signature" | "sequence_gap" | "schema"
    detail:         str


@dataclass
class ReplaySummary:
    total_entries:      int
    chain_valid:        bool
    violations:         List[ChainViolation]
    valid_signatures:   int
    invalid_signatures: int
    event_type_counts:  Dict[str, int]
    contract_ids:       List[str]
    first_timestamp:    Optional[str]
    last_timestamp:     Optional[str]

    @property
    def valid(self) -> bool:
        return not self.violations


# ─────────────────────────────────────────────────────────────
# Reconstructed state
# ─────────────────────────────────────────────────────────────

@dataclass
class RebuiltState:
    rounds:   Dict[int, Round]            = field(default_factory=dict)
    next_id:  int                         = FIRST_ROUND_ID
    deposits: Dict[Tuple[int, str], int]  = field(default_factory=dict)
    balance:  int                         = 0
    credited: Dict[str, int]              = field(default_factory=dict)
    admins:   Set[str]                    = field(default_factory=set)


def rebuild_state(events: List[HuntEvent]) -> RebuiltState:
    """
    Fold committed events into contract state.
    Raises LedgerError if an event references state that does not exist.
    """
    state = RebuiltState()
    for event in events:
        try:
            _apply(state, event)
        except (KeyError, ValueError, TypeError) as exc:
            raise LedgerError(
                f"Cannot apply {event.event_type} at sequence {event.sequence}: {exc}",
                {"event_id": event.event_id},
            ) from exc
    return state


def _credit(state: RebuiltState, to: str, amount: int) -> None:
    state.balance -= amount
    state.credited[to] = state.credited.get(to, 0) + amount


def _apply(state: RebuiltState, event: HuntEvent) -> None:
    p    = event.payload
    kind = event.event_type

    if kind == EventType.CONTRACT_DEPLOYED:
        state.admins = set(p["admins"])

    elif kind == EventType.ROUND_CREATED:
        round_id = p["round_id"]
        if round_id != state.next_id:
            raise ValueError(f"round id {round_id} out of sequence, expected {state.next_id}")
        state.rounds[round_id] = Round(
            id=              round_id,
            charity_id=      p["charity_id"],
            creator=         p["creator"],
            content_ref=     p["content_ref"],
            commitment_hash= p["commitment_hash"],
            deposit_target=  int(p["deposit_target"]),
        )
        state.next_id = round_id + 1

    elif kind == EventType.ROUND_UPDATED:
        state.rounds[p["round_id"]].content_ref = p["content_ref"]

    elif kind == EventType.ROUND_CLOSED:
        state.rounds[p["round_id"]].status = RoundStatus.CLOSED

    elif kind == EventType.DEPOSIT_MADE:
        hunt   = state.rounds[p["round_id"]]
        amount = int(p["amount"])
        hunt.total_deposit     += amount
        hunt.participant_count += 1
        key = (hunt.id, p["depositor"])
        state.deposits[key] = state.deposits.get(key, 0) + amount
        state.balance += amount

    elif kind == EventType.ROUND_CLAIMED:
        hunt = state.rounds[p["round_id"]]
        hunt.status        = RoundStatus.CLOSED
        hunt.total_deposit = 0
        _credit(state, p["charity_owner"], int(p["charity_amount"]))
        _credit(state, p["claimant"], int(p["player_amount"]))

    elif kind == EventType.FUNDS_WITHDRAWN:
        _credit(state, p["destination"], int(p["amount"]))

    elif kind == EventType.ADMIN_GRANTED:
        state.admins.add(p["account"])

    elif kind == EventType.ADMIN_REVOKED:
        state.admins.discard(p["account"])

    else:
        raise ValueError(f"unknown event type {kind!r}")


# ─────────────────────────────────────────────────────────────
# Replay Engine
# ─────────────────────────────────────────────────────────────

class ReplayEngine:
    """
    Usage:
        engine = ReplayEngine()
        engine.load(Path("hunt/audit.jsonl"))
        summary = engine.verify()
        state   = engine.rebuild()
        engine.export_json(Path("report.json"))
    """

    def __init__(self) -> None:
        self.events:       List[HuntEvent]      = []
        self.violations:   List[ChainViolation] = []
        self._ledger_path: Optional[Path]       = None

    @classmethod
    def from_events(cls, events: List[HuntEvent]) -> "ReplayEngine":
        engine = cls()
        engine.events = list(events)
        return engine

    # ── Load ──────────────────────────────────────────────────

    def load(self, ledger_path: Path) -> None:
        """
        Load a JSONL audit log. A directory is read as <dir>/audit.jsonl.

        Raises:
            FileNotFoundError — log does not exist
            ValueError        — malformed JSON, missing field or schema violation
        """
        ledger_path = Path(ledger_path)
        if ledger_path.is_dir():
            ledger_path = ledger_path / "audit.jsonl"
        self._ledger_path = ledger_path
        self.events       = []
        self.violations   = []

        if not ledger_path.exists():
            raise FileNotFoundError(f"Audit log not found: {ledger_path}")

        with open(ledger_path, "r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                raw = raw.strip()
                if not raw:
                    continue

                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise ValueError(
                        f"Malformed JSON at audit log line {line_num}: {e}"
                    ) from e

                try:
                    event = HuntEvent.from_dict(data)
                except (KeyError, TypeError) as e:
                    raise ValueError(
                        f"Missing required field at line {line_num}: {e}"
                    ) from e

                schema = event.validate_schema()
                if not schema:
                    raise ValueError(
                        f"Schema violation at line {line_num} "
                        f"(event_id={data.get('event_id', '?')}): {schema.errors}"
                    )

                self.events.append(event)

    # ── Verify ────────────────────────────────────────────────

    def verify(self) -> ReplaySummary:
        """Full verification pass. Events are checked in file order."""
        self.violations = []

        if not self.events:
            return ReplaySummary(
                total_entries=      0,
                chain_valid=        True,
                violations=         [],
                valid_signatures=   0,
                invalid_signatures= 0,
                event_type_counts=  {},
                contract_ids=       [],
                first_timestamp=    None,
                last_timestamp=     None,
            )

        violations:  List[ChainViolation] = []
        seen_nonces: Set[str]             = set()
        valid_sigs   = 0
        invalid_sigs = 0

        for i, event in enumerate(self.events):
            prev = self.events[i - 1] if i > 0 else None

            if not event.verify_sequence(i):
                violations.append(ChainViolation(
                    at_sequence=    i,
                    event_id=       event.event_id,
                    violation_type= "sequence_gap",
                    detail=         f"Expected sequence {i}, got {event.sequence}",
                ))

            if not event.verify_chain(prev):
                expected = HuntEvent.causal_hash_of(prev)
                violations.append(ChainViolation(
                    at_sequence=    event.sequence,
                    event_id=       event.event_id,
                    violation_type= "chain_break",
                    detail=(
                        f"causal_hash mismatch: expected ...{expected[-12:]}, "
                        f"got ...{event.causal_hash[-12:]}"
                    ),
                ))

            if event.nonce in seen_nonces:
                violations.append(ChainViolation(
                    at_sequence=    event.sequence,
                    event_id=       event.event_id,
                    violation_type= "schema",
                    detail=         f"Duplicate nonce '{event.nonce}'",
                ))
            seen_nonces.add(event.nonce)

            if event.verify_signature():
                valid_sigs += 1
            else:
                invalid_sigs += 1
                violations.append(ChainViolation(
                    at_sequence=    event.sequence,
                    event_id=       event.event_id,
                    violation_type= "invalid_signature",
                    detail=f"Signature invalid (signer: {event.signer_public_key[:16]}...)",
                ))

        contract_ids = sorted({e.contract_id for e in self.events})
        if len(contract_ids) > 1:
            violations.append(ChainViolation(
                at_sequence=    self.events[0].sequence,
                event_id=       self.events[0].event_id,
                violation_type= "schema",
                detail=         f"Log mixes contracts: {contract_ids}",
            ))

        counts: Dict[str, int] = defaultdict(int)
        for event in self.events:
            counts[event.event_type] += 1

        self.violations = violations
        return ReplaySummary(
            total_entries=      len(self.events),
            chain_valid=        not violations,
            violations=         list(violations),
            valid_signatures=   valid_sigs,
            invalid_signatures= invalid_sigs,
            event_type_counts=  dict(counts),
            contract_ids=       contract_ids,
            first_timestamp=    self.events[0].timestamp,
            last_timestamp=     self.events[-1].timestamp,
        )

    def rebuild(self) -> RebuiltState:
        return rebuild_state(self.events)

    # ── Export JSON ───────────────────────────────────────────

    def export_json(self, output_path: Path) -> None:
        """
        Write a JSON audit report. Parent directories are created.
        Raises RuntimeError if nothing is loaded.
        """
        if not self.events:
            raise RuntimeError("No events loaded. Call load() before export_json().")

        summary     = self.verify()
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        report = {
            "treasurehunt_replay_report": {
                "ledger":             str(self._ledger_path or "in-memory"),
                "total_entries":      summary.total_entries,
                "chain_valid":        summary.chain_valid,
                "valid_signatures":   summary.valid_signatures,
                "invalid_signatures": summary.invalid_signatures,
                "contract_ids":       summary.contract_ids,
                "first_timestamp":    summary.first_timestamp,
                "last_timestamp":     summary.last_timestamp,
                "event_type_counts":  summary.event_type_counts,
                "violations": [
                    {
                        "at_sequence":    v.at_sequence,
                        "event_id":       v.event_id,
                        "violation_type": v.violation_type,
                        "detail":         v.detail,
                    }
                    for v in summary.violations
                ],
            }
        }

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)
