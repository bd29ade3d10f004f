# src/timecapsule/crypto/kdf.py
from __future__ import annotations

"""Deterministic capsule key derivation.

key = HKDF-SHA256(
    ikm  = lp(owner) || lp(capsule_id) || u64be(unlock_timestamp),
    salt = 32 random bytes stored next to the ciphertext,
    info = KDF_CONTEXT,
)

lp(x) is a 4-byte big-endian length followed by the UTF-8 bytes, so adjacent
identifiers cannot run into each other.

The owner identity is a public address. Anyone who knows the three public
identifiers and the salt can derive the key; release timing is enforced by
when the ledger exposes the cid, not by this function.
"""

import struct
from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from timecapsule.errors import ValidationError

KDF_CONTEXT: Final[bytes] = b"timecapsule/v1/capsule-key"
KEY_LEN: Final[int] = 32
SALT_LEN: Final[int] = 32

_U64_MAX = (1 << 64) - 1


def _lp(value: str) -> bytes:
    b = value.encode("utf-8")
    return struct.pack(">I", len(b)) + b


def _key_material(owner_identity: str, capsule_id: str, unlock_timestamp: int) -> bytes:
    if not isinstance(owner_identity, str) or not owner_identity.strip():
        raise ValidationError("missing_owner_identity")
    if not isinstance(capsule_id, str) or not capsule_id.strip():
        raise ValidationError("missing_capsule_id")
    if isinstance(unlock_timestamp, bool) or not isinstance(unlock_timestamp, int):
        raise ValidationError("bad_unlock_timestamp", {"type": type(unlock_timestamp).__name__})
    if unlock_timestamp < 0 or unlock_timestamp > _U64_MAX:
        raise ValidationError("bad_unlock_timestamp", {"value": unlock_timestamp})
    return _lp(owner_identity) + _lp(capsule_id) + struct.pack(">Q", unlock_timestamp)


def derive_key(owner_identity: str, capsule_id: str, unlock_timestamp: int, salt: bytes) -> bytes:
    """Return the 32-byte symmetric key for a capsule."""
    if not isinstance(salt, (bytes, bytearray)):
        raise ValidationError("bad_salt_length", {"expected": SALT_LEN, "type": type(salt).__name__})
    if len(salt) != SALT_LEN:
        raise ValidationError("bad_salt_length", {"expected": SALT_LEN, "got": len(salt)})

    ikm = _key_material(owner_identity, capsule_id, unlock_timestamp)
    hkdf = HKDF(algorithm=hashes.SHA256(), length=KEY_LEN, salt=bytes(salt), info=KDF_CONTEXT)
    return hkdf.derive(ikm)
