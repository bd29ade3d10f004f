from __future__ import annotations

import pytest

from timecapsule.crypto.kdf import KEY_LEN, SALT_LEN, derive_key
from timecapsule.errors import ValidationError

SALT_A = bytes(range(SALT_LEN))
SALT_B = bytes(reversed(range(SALT_LEN)))


def test_derive_key_is_deterministic() -> None:
    k1 = derive_key("0xabc", "cap-1", 1_700_000_000_000, SALT_A)
    k2 = derive_key("0xabc", "cap-1", 1_700_000_000_000, SALT_A)
    assert k1 == k2
    assert len(k1) == KEY_LEN


def test_different_salts_give_independent_keys() -> None:
    k1 = derive_key("0xabc", "cap-1", 1_700_000_000_000, SALT_A)
    k2 = derive_key("0xabc", "cap-1", 1_700_000_000_000, SALT_B)
    assert k1 != k2


def test_each_identifier_changes_the_key() -> None:
    base = derive_key("0xabc", "cap-1", 1000, SALT_A)
    assert derive_key("0xabd", "cap-1", 1000, SALT_A) != base
    assert derive_key("0xabc", "cap-2", 1000, SALT_A) != base
    assert derive_key("0xabc", "cap-1", 1001, SALT_A) != base


def test_identifier_boundaries_do_not_collide() -> None:
    # Plain concatenation would make these identical.
    assert derive_key("ab", "c", 1, SALT_A) != derive_key("a", "bc", 1, SALT_A)


@pytest.mark.parametrize("salt", [b"", b"\x00" * 16, b"\x00" * 33])
def test_bad_salt_length_is_rejected(salt: bytes) -> None:
    with pytest.raises(ValidationError) as e:
        derive_key("0xabc", "cap-1", 1, salt)
    assert e.value.reason == "bad_salt_length"


@pytest.mark.parametrize(
    "owner,capsule_id,ts,reason",
    [
        ("", "cap-1", 1, "missing_owner_identity"),
        ("0xabc", "  ", 1, "missing_capsule_id"),
        ("0xabc", "cap-1", -1, "bad_unlock_timestamp"),
        ("0xabc", "cap-1", 1.5, "bad_unlock_timestamp"),
        ("0xabc", "cap-1", True, "bad_unlock_timestamp"),
    ],
)
def test_bad_identifiers_are_rejected(owner, capsule_id, ts, reason) -> None:
    with pytest.raises(ValidationError) as e:
        derive_key(owner, capsule_id, ts, SALT_A)
    assert e.value.reason == reason


@pytest.mark.parametrize("salt", [5, None, "s" * 32])
def test_non_bytes_salt_is_rejected(salt) -> None:
    with pytest.raises(ValidationError) as e:
        derive_key("0xabc", "cap-1", 1, salt)
    assert e.value.reason == "bad_salt_length"
