"""
treasurehunt/core/crypto.py

Ed25519 keys for signing audit events.

    public_key_hex  64 lowercase hex chars, stamped on every event
    sign(data)      base64url signature without padding (86 chars)
    verify_detached checks a signature given only the signer's hex key

The contract owns one key. Anyone holding the log can check every event
with verify_detached() and the signer_public_key recorded on it.
"""

import base64
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

_SEED_BYTES      = 32
_SIGNATURE_BYTES = 64


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class Ed25519KeyManager:
    """The contract's event-signing key."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        raw_public = private_key.public_key().public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )
        self._public_key_hex = raw_public.hex()

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        """
        Read an unencrypted PEM signing key.

        Raises FileNotFoundError for a missing file and ValueError for
        anything that is not an Ed25519 private key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Signing key not found: {path}")
        try:
            loaded = load_pem_private_key(path.read_bytes(), password=None)
        except Exception as exc:
            raise ValueError(f"Unreadable signing key {path}: {exc}") from exc
        if not isinstance(loaded, Ed25519PrivateKey):
            raise ValueError(f"Signing key {path} is not an Ed25519 key")
        return cls(loaded)

    @classmethod
    def from_private_bytes(cls, seed: bytes) -> "Ed25519KeyManager":
        """Deterministic key from a raw 32-byte seed."""
        if len(seed) != _SEED_BYTES:
            raise ValueError(
                f"signing seed must be {_SEED_BYTES} bytes, got {len(seed)}"
            )
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    # ── Signatures ────────────────────────────────────────────

    def sign(self, data: bytes) -> str:
        return _b64url_encode(self._private_key.sign(data))

    def verify(self, data: bytes, signature_b64: str) -> bool:
        """Check a signature made by this key."""
        return Ed25519KeyManager.verify_detached(
            data, signature_b64, self._public_key_hex
        )

    @staticmethod
    def verify_detached(
        data:           bytes,
        signature_b64:  str,
        public_key_hex: str,
    ) -> bool:
        """
        True only for a valid signature by public_key_hex over data.
        Malformed keys or signatures give False. Never raises.
        """
        try:
            if not isinstance(public_key_hex, str) or len(public_key_hex) != 2 * _SEED_BYTES:
                return False
            raw_sig = _b64url_decode(signature_b64)
            if len(raw_sig) != _SIGNATURE_BYTES:
                return False
            public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            public_key.verify(raw_sig, data)
        except Exception:
            return False
        return True

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the key as PKCS8 PEM, creating parent directories.
        Raises RuntimeError if the file cannot be written.
        """
        path = Path(path)
        pem = self._private_key.private_bytes(
            encoding=             Encoding.PEM,
            format=               PrivateFormat.PKCS8,
            encryption_algorithm= NoEncryption(),
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(pem)
        except OSError as exc:
            raise RuntimeError(f"Cannot save signing key to {path}: {exc}") from exc

    def __repr__(self) -> str:
        return f"Ed25519KeyManager({self._public_key_hex[:16]}...)"
