# src/timecapsule/crypto/hashing.py
from __future__ import annotations

import hashlib
import hmac

HASH_LEN = 32


def hash_content(content: bytes) -> bytes:
    """SHA-256 digest used for every content hash in the system."""
    return hashlib.sha256(bytes(content)).digest()


def verify_content_hash(content: bytes, expected_hash: bytes) -> bool:
    if len(expected_hash) != HASH_LEN:
        return False
    return hmac.compare_digest(hash_content(content), bytes(expected_hash))
