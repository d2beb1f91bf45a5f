"""
treasurehunt/__init__.py

TreasureHunt: charity treasure hunt escrow with a signed audit log.

Charity owners open rounds guarded by a committed secret hash, players pool
deposits, and the first caller to reveal the hash settles the pool: 1% to
the platform, the charity's revenue share of the rest to its owner, the
remainder to the player. Every committed state change is an Ed25519-signed,
hash-chained event in an append-only JSONL log, and the contract rebuilds
itself from that log on start.
"""

__version__ = "0.1.0"

from treasurehunt.core.commitment import make_commitment
from treasurehunt.core.envelope import GENESIS_HASH, LOG_VERSION, HuntEvent
from treasurehunt.core.crypto import Ed25519KeyManager
from treasurehunt.core.exceptions import (
    ConfigError,
    InvalidInput,
    InvalidState,
    LedgerError,
    NotFound,
    ReentrancyError,
    SecretMismatch,
    TransferFailure,
    TreasureHuntError,
    Unauthorized,
)
from treasurehunt.core.models import EventType, Round, RoundStatus, Split
from treasurehunt.ledger import AuditLog, ReplayEngine, ReplaySummary
from treasurehunt.registry import InMemoryCharityRegistry, RegistryGateway
from treasurehunt.settlement import compute_split
from treasurehunt.contract import TreasureHunt
from treasurehunt.config import HuntConfig

__all__ = [
    # Contract
    "TreasureHunt",
    "HuntConfig",
    "RegistryGateway",
    "InMemoryCharityRegistry",
    # Model
    "Round",
    "RoundStatus",
    "Split",
    "EventType",
    "compute_split",
    "make_commitment",
    # Audit log
    "AuditLog",
    "HuntEvent",
    "Ed25519KeyManager",
    "ReplayEngine",
    "ReplaySummary",
    # Errors
    "TreasureHuntError",
    "NotFound",
    "InvalidState",
    "Unauthorized",
    "InvalidInput",
    "SecretMismatch",
    "TransferFailure",
    "ReentrancyError",
    "LedgerError",
    "ConfigError",
    # Constants
    "LOG_VERSION",
    "GENESIS_HASH",
]
