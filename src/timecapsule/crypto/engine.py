# src/timecapsule/crypto/engine.py
from __future__ import annotations

import os
from typing import Callable, Final

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from timecapsule.crypto.hashing import hash_content
from timecapsule.crypto.kdf import SALT_LEN, derive_key
from timecapsule.errors import AuthenticationError, ValidationError
from timecapsule.models import EncryptedPayload

NONCE_LEN: Final[int] = 12
TAG_LEN: Final[int] = 16


class EncryptionEngine:
    """ChaCha20-Poly1305 over keys from `derive_key`.

    Stateless apart from the random source, so one instance can be shared by
    concurrent callers.
    """

    def __init__(self, *, random_bytes: Callable[[int], bytes] = os.urandom) -> None:
        self._random_bytes = random_bytes

    def encrypt(
        self,
        plaintext: bytes,
        owner_identity: str,
        capsule_id: str,
        unlock_timestamp: int,
    ) -> EncryptedPayload:
        if not isinstance(plaintext, (bytes, bytearray)):
            raise ValidationError("plaintext_not_bytes", {"type": type(plaintext).__name__})

        salt = self._random_bytes(SALT_LEN)
        nonce = self._random_bytes(NONCE_LEN)
        key = derive_key(owner_identity, capsule_id, unlock_timestamp, salt)

        ciphertext = ChaCha20Poly1305(key).encrypt(nonce, bytes(plaintext), None)
        return EncryptedPayload(
            ciphertext=ciphertext,
            nonce=nonce,
            salt=salt,
            content_hash=hash_content(plaintext),
        )

    def decrypt(
        self,
        ciphertext: bytes,
        nonce: bytes,
        owner_identity: str,
        capsule_id: str,
        unlock_timestamp: int,
        salt: bytes,
    ) -> bytes:
        if len(nonce) != NONCE_LEN:
            raise ValidationError("bad_nonce_length", {"expected": NONCE_LEN, "got": len(nonce)})
        if len(salt) != SALT_LEN:
            raise ValidationError("bad_salt_length", {"expected": SALT_LEN, "got": len(salt)})
        if len(ciphertext) < TAG_LEN:
            raise AuthenticationError("ciphertext_too_short")

        key = derive_key(owner_identity, capsule_id, unlock_timestamp, salt)
        try:
            return ChaCha20Poly1305(key).decrypt(bytes(nonce), bytes(ciphertext), None)
        except InvalidTag as e:
            raise AuthenticationError("tag_mismatch") from e
