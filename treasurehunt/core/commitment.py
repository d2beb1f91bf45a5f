"""
Commit–reveal helpers for round secrets.

A round stores only C = SHA3-256(secret), written as 64 lowercase hex
characters. The secret never reaches the engine: the hunt organiser
computes C off-chain with make_commitment(), and the winner submits the
same pre-hashed value to claim(). The engine compares the two strings;
it never hashes anything itself.
"""

import hmac
import re
from hashlib import sha3_256
from typing import Union

COMMITMENT_HEX_LENGTH = 64

_COMMITMENT_RE = re.compile(rf"[0-9a-f]{{{COMMITMENT_HEX_LENGTH}}}")


def make_commitment(secret: Union[str, bytes]) -> str:
    """Hash a plaintext secret into a commitment. str secrets are UTF-8 encoded."""
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    if not isinstance(secret, (bytes, bytearray)):
        raise TypeError("secret must be str or bytes")
    if len(secret) == 0:
        raise ValueError("secret must be non-empty")
    return sha3_256(secret).hexdigest()


def is_commitment(value) -> bool:
    """True if value is a well-formed commitment string."""
    return isinstance(value, str) and bool(_COMMITMENT_RE.fullmatch(value))


def reveal_matches(stored: str, revealed) -> bool:
    """Constant-time equality of a revealed hash against the stored commitment."""
    if not isinstance(revealed, str):
        return False
    return hmac.compare_digest(stored.encode("utf-8"), revealed.encode("utf-8"))
