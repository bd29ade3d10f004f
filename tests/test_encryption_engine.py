from __future__ import annotations

import hashlib

import pytest

from timecapsule.crypto.engine import NONCE_LEN, EncryptionEngine
from timecapsule.crypto.hashing import verify_content_hash
from timecapsule.crypto.kdf import SALT_LEN
from timecapsule.errors import AuthenticationError, ValidationError

W = "0xabc"
C = "cap-1"
T = 1_700_000_060_000


@pytest.mark.parametrize("plaintext", [b"", b"Hello", bytes(range(256)) * 40, "héllo wörld".encode("utf-8")])
def test_round_trip(plaintext: bytes) -> None:
    eng = EncryptionEngine()
    p = eng.encrypt(plaintext, W, C, T)
    assert eng.decrypt(p.ciphertext, p.nonce, W, C, T, p.salt) == plaintext


def test_payload_shape() -> None:
    p = EncryptionEngine().encrypt(b"Hello", W, C, T)
    assert len(p.nonce) == NONCE_LEN
    assert len(p.salt) == SALT_LEN
    assert p.ciphertext != b"Hello"
    assert len(p.ciphertext) == len(b"Hello") + 16
    assert p.content_hash == hashlib.sha256(b"Hello").digest()
    assert verify_content_hash(b"Hello", p.content_hash)


def test_fresh_salt_and_nonce_per_call() -> None:
    eng = EncryptionEngine()
    p1 = eng.encrypt(b"same", W, C, T)
    p2 = eng.encrypt(b"same", W, C, T)
    assert p1.salt != p2.salt
    assert p1.nonce != p2.nonce
    assert p1.ciphertext != p2.ciphertext
    assert p1.content_hash == p2.content_hash


def test_single_bit_flip_in_ciphertext_fails_authentication() -> None:
    eng = EncryptionEngine()
    p = eng.encrypt(b"Hello", W, C, T)
    for i in range(len(p.ciphertext)):
        for bit in range(8):
            ct = bytearray(p.ciphertext)
            ct[i] ^= 1 << bit
            with pytest.raises(AuthenticationError):
                eng.decrypt(bytes(ct), p.nonce, W, C, T, p.salt)


def test_single_bit_flip_in_nonce_fails_authentication() -> None:
    eng = EncryptionEngine()
    p = eng.encrypt(b"Hello", W, C, T)
    for i in range(len(p.nonce)):
        n = bytearray(p.nonce)
        n[i] ^= 0x01
        with pytest.raises(AuthenticationError):
            eng.decrypt(p.ciphertext, bytes(n), W, C, T, p.salt)


@pytest.mark.parametrize(
    "owner,capsule_id,ts",
    [("0xabd", C, T), (W, "cap-2", T), (W, C, T + 1)],
)
def test_wrong_inputs_fail_authentication(owner, capsule_id, ts) -> None:
    eng = EncryptionEngine()
    p = eng.encrypt(b"Hello", W, C, T)
    with pytest.raises(AuthenticationError):
        eng.decrypt(p.ciphertext, p.nonce, owner, capsule_id, ts, p.salt)


def test_wrong_salt_fails_authentication() -> None:
    eng = EncryptionEngine()
    p = eng.encrypt(b"Hello", W, C, T)
    other = bytes(b ^ 0xFF for b in p.salt)
    with pytest.raises(AuthenticationError):
        eng.decrypt(p.ciphertext, p.nonce, W, C, T, other)


def test_truncated_ciphertext_fails_authentication() -> None:
    eng = EncryptionEngine()
    p = eng.encrypt(b"Hello", W, C, T)
    with pytest.raises(AuthenticationError):
        eng.decrypt(p.ciphertext[:10], p.nonce, W, C, T, p.salt)


def test_bad_nonce_and_salt_lengths_are_validation_errors() -> None:
    eng = EncryptionEngine()
    p = eng.encrypt(b"Hello", W, C, T)
    with pytest.raises(ValidationError) as e:
        eng.decrypt(p.ciphertext, p.nonce + b"\x00", W, C, T, p.salt)
    assert e.value.reason == "bad_nonce_length"
    with pytest.raises(ValidationError) as e:
        eng.decrypt(p.ciphertext, p.nonce, W, C, T, p.salt[:16])
    assert e.value.reason == "bad_salt_length"


def test_encrypt_rejects_text() -> None:
    with pytest.raises(ValidationError):
        EncryptionEngine().encrypt("Hello", W, C, T)  # type: ignore[arg-type]


def test_injected_random_source_is_used() -> None:
    eng = EncryptionEngine(random_bytes=lambda n: b"\x07" * n)
    p = eng.encrypt(b"Hello", W, C, T)
    assert p.salt == b"\x07" * SALT_LEN
    assert p.nonce == b"\x07" * NONCE_LEN
