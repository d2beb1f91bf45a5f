"""
treasurehunt/core/envelope.py

HuntEvent — the single audit log entry type.

═══════════════════════════════════════════════════════════════════
LOG CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Signing
    bytes_signed = canonicalize(event.to_signing_dict())
    algorithm    = Ed25519, base64url without padding

CONTRACT 2 — Chain
    causal_hash  = SHA-256(canonicalize(prev.to_signing_dict()))
    first event  = GENESIS_HASH ("0" * 64)
    payload is inside the hashed dict, so editing a past payload
    breaks every later event.

CONTRACT 3 — Timestamp
    YYYY-MM-DDTHH:MM:SS.mmmZ, from event_timestamp() only.

CONTRACT 4 — Nonce
    32 hex characters of fresh randomness per event. Uniqueness, not order.
    sequence is the order.

CONTRACT 5 — Vocabulary
    event_type must be an EventType constant.

CONTRACT 6 — Amounts
    Amounts inside payloads are decimal strings, so arbitrarily large
    integers survive JCS number encoding unchanged.
═══════════════════════════════════════════════════════════════════
"""

import secrets
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from treasurehunt.core.canonical import canonical_hash, canonicalize
from treasurehunt.core.crypto import Ed25519KeyManager
from treasurehunt.core.models import VALID_EVENT_TYPES
from treasurehunt.core.time import TIMESTAMP_RE, event_timestamp


LOG_VERSION  = "1.0"
GENESIS_HASH = "0" * 64

_NONCE_HEX_LENGTH      = 32
_PUBLIC_KEY_HEX_LENGTH = 64


def _is_hex(value: Any, length: int) -> bool:
    if not isinstance(value, str) or len(value) != length:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


@dataclass
class SchemaValidationResult:
    """
    Result of HuntEvent.validate_schema(). Returned, not raised.
    bool(result) is True iff valid.
    """
    valid:  bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.valid


@dataclass
class HuntEvent:
    log_version:       str
    event_id:          str
    event_type:        str
    contract_id:       str
    signer_public_key: str
    sequence:          int
    nonce:             str
    timestamp:         str
    causal_hash:       str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    # ── Constructors ──────────────────────────────────────────

    @classmethod
    def create(
        cls,
        event_type:        str,
        contract_id:       str,
        signer_public_key: str,
        sequence:          int,
        payload:           Dict[str, Any],
        prev:              Optional["HuntEvent"] = None,
    ) -> "HuntEvent":
        """
        Build an unsigned event chained onto prev. Follow with .sign():

            event = HuntEvent.create(...).sign(key_manager)
        """
        if event_type not in VALID_EVENT_TYPES:
            raise ValueError(
                f"Invalid event_type '{event_type}'. "
                f"Valid: {sorted(VALID_EVENT_TYPES)}"
            )
        if not isinstance(payload, dict):
            raise TypeError(
                f"payload must be dict, got {type(payload).__name__}"
            )
        if not isinstance(sequence, int) or sequence < 0:
            raise ValueError(
                f"sequence must be non-negative int, got {sequence!r}"
            )
        if not _is_hex(signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            raise ValueError(
                f"signer_public_key must be a {_PUBLIC_KEY_HEX_LENGTH}-char hex string"
            )

        return cls(
            log_version=       LOG_VERSION,
            event_id=          f"evt-{uuid.uuid4()}",
            event_type=        event_type,
            contract_id=       contract_id,
            signer_public_key= signer_public_key,
            sequence=          sequence,
            nonce=             secrets.token_hex(_NONCE_HEX_LENGTH // 2),
            timestamp=         event_timestamp(),
            causal_hash=       cls.causal_hash_of(prev),
            payload=           payload,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HuntEvent":
        """
        Deserialize a JSONL line. Trusts the data; callers run
        validate_schema() to check it. Missing fields raise KeyError.
        """
        return cls(
            log_version=       data["log_version"],
            event_id=          data["event_id"],
            event_type=        data["event_type"],
            contract_id=       data["contract_id"],
            signer_public_key= data["signer_public_key"],
            sequence=          data["sequence"],
            nonce=             data["nonce"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    # ── Schema ────────────────────────────────────────────────

    def validate_schema(self) -> SchemaValidationResult:
        errors: List[str] = []

        if self.log_version != LOG_VERSION:
            errors.append(
                f"log_version: expected '{LOG_VERSION}', got '{self.log_version}'"
            )
        if self.event_type not in VALID_EVENT_TYPES:
            errors.append(f"event_type '{self.event_type}' is not a known event type")
        if not isinstance(self.event_id, str) or not self.event_id.startswith("evt-"):
            errors.append(f"event_id must start with 'evt-', got {self.event_id!r}")
        if not isinstance(self.contract_id, str) or not self.contract_id:
            errors.append("contract_id must be a non-empty string")
        if not _is_hex(self.signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            errors.append(
                f"signer_public_key must be {_PUBLIC_KEY_HEX_LENGTH} hex chars"
            )
        if not isinstance(self.sequence, int) or self.sequence < 0:
            errors.append(f"sequence must be non-negative int, got {self.sequence!r}")
        if not _is_hex(self.nonce, _NONCE_HEX_LENGTH):
            errors.append(f"nonce must be {_NONCE_HEX_LENGTH} hex chars")
        if not isinstance(self.timestamp, str) or not TIMESTAMP_RE.match(self.timestamp):
            errors.append(
                f"timestamp {self.timestamp!r} is not YYYY-MM-DDTHH:MM:SS.mmmZ"
            )
        if not _is_hex(self.causal_hash, 64):
            errors.append("causal_hash must be 64 hex chars")
        if not isinstance(self.payload, dict):
            errors.append(f"payload must be dict, got {type(self.payload).__name__}")

        return SchemaValidationResult(valid=not errors, errors=errors)

    # ── Serialization ─────────────────────────────────────────

    def to_signing_dict(self) -> Dict[str, Any]:
        """Every field except signature. Signed, and hashed by the next event."""
        return {
            "causal_hash":       self.causal_hash,
            "contract_id":       self.contract_id,
            "event_id":          self.event_id,
            "event_type":        self.event_type,
            "log_version":       self.log_version,
            "nonce":             self.nonce,
            "payload":           self.payload,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
        }

    def to_dict(self) -> Dict[str, Any]:
        d = self.to_signing_dict()
        d["signature"] = self.signature
        return d

    # ── Chain / Signature ─────────────────────────────────────

    @staticmethod
    def causal_hash_of(prev: Optional["HuntEvent"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_signing_dict())

    def sign(self, key_manager: Ed25519KeyManager) -> "HuntEvent":
        """Sign in place and return self."""
        self.signature = key_manager.sign(canonicalize(self.to_signing_dict()))
        return self

    def verify_signature(self) -> bool:
        """False when unsigned, tampered or signed by another key. Never raises."""
        if not self.signature:
            return False
        try:
            data = canonicalize(self.to_signing_dict())
        except Exception:
            return False
        return Ed25519KeyManager.verify_detached(
            data, self.signature, self.signer_public_key
        )

    def verify_chain(self, prev: Optional["HuntEvent"]) -> bool:
        return self.causal_hash == HuntEvent.causal_hash_of(prev)

    def verify_sequence(self, expected: int) -> bool:
        return self.sequence == expected

    @property
    def round_id(self) -> Optional[int]:
        """The round this event concerns, if any."""
        value = self.payload.get("round_id")
        return value if isinstance(value, int) else None
