"""
TreasureHunt: Canonical JSON Encoding — RFC 8785 (JCS)

Audit events are signed and chained over these bytes. Nothing else in
the package serializes an event for hashing or signing.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

import jcs as _jcs


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Values must be JSON-primitive. Amounts are Python ints and stay exact
    as long as they fit in an IEEE double; larger amounts must be passed
    as strings by the caller (the audit log does this).
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """Lowercase hex SHA-256 of the canonical form (64 characters)."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()
