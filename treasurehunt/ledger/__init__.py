"""
TreasureHunt Ledger - append-only audit log and replay.

Round and deposit ledgers live in treasurehunt.ledger.rounds and
treasurehunt.ledger.deposits; import them from there.
"""

from treasurehunt.ledger.audit import AuditLog
from treasurehunt.ledger.replay import ReplayEngine, ReplaySummary, rebuild_state

__all__ = ["AuditLog", "ReplayEngine", "ReplaySummary", "rebuild_state"]
