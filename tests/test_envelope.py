from __future__ import annotations

import pytest

from timecapsule.crypto.engine import EncryptionEngine
from timecapsule.errors import ValidationError
from timecapsule.storage.envelope import pack_envelope, unpack_envelope


def test_envelope_carries_nonce_salt_and_metadata() -> None:
    p = EncryptionEngine().encrypt(b"Hello", "0xabc", "cap-1", 5)
    blob = pack_envelope(p, content_type="text/plain", original_size=5, timestamp_ms=123)

    env = unpack_envelope(blob)
    assert env.payload == p
    assert env.content_type == "text/plain"
    assert env.metadata["originalSize"] == 5
    assert env.metadata["timestamp"] == 123


@pytest.mark.parametrize("cut", [0, 3, 10, 30, -1])
def test_truncated_envelope_is_rejected(cut: int) -> None:
    p = EncryptionEngine().encrypt(b"Hello", "0xabc", "cap-1", 5)
    blob = pack_envelope(p)
    with pytest.raises(ValidationError):
        unpack_envelope(blob[:cut])


def test_trailing_bytes_are_rejected() -> None:
    p = EncryptionEngine().encrypt(b"Hello", "0xabc", "cap-1", 5)
    with pytest.raises(ValidationError) as e:
        unpack_envelope(pack_envelope(p) + b"x")
    assert e.value.reason == "envelope_trailing_bytes"
