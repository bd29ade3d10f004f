# src/timecapsule/storage/envelope.py
from __future__ import annotations

"""Binary envelope uploaded to content-addressed storage.

Layout (all lengths u32 little-endian):

    [nonce_len][nonce][salt_len][salt][ct_len][ciphertext][meta_len][meta JSON]

meta JSON: {"contentType", "originalSize", "timestamp", "contentHash"}
where contentHash is the hex SHA-256 of the plaintext.
"""

import json
import struct
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from timecapsule.errors import ValidationError
from timecapsule.models import EncryptedPayload

Json = Dict[str, Any]

_U32 = struct.Struct("<I")


@dataclass(frozen=True)
class StoredEnvelope:
    payload: EncryptedPayload
    metadata: Json

    @property
    def content_type(self) -> str:
        return str(self.metadata.get("contentType") or "")


def pack_envelope(
    payload: EncryptedPayload,
    *,
    content_type: str = "application/octet-stream",
    original_size: int = 0,
    timestamp_ms: int = 0,
) -> bytes:
    meta = {
        "contentType": str(content_type or "application/octet-stream"),
        "originalSize": int(original_size),
        "timestamp": int(timestamp_ms),
        "contentHash": payload.content_hash.hex(),
    }
    meta_b = json.dumps(meta, sort_keys=True, separators=(",", ":")).encode("utf-8")

    parts = []
    for chunk in (payload.nonce, payload.salt, payload.ciphertext, meta_b):
        parts.append(_U32.pack(len(chunk)))
        parts.append(bytes(chunk))
    return b"".join(parts)


def _read_chunk(data: bytes, offset: int, what: str) -> Tuple[bytes, int]:
    if offset + _U32.size > len(data):
        raise ValidationError("envelope_truncated", {"field": what})
    (n,) = _U32.unpack_from(data, offset)
    offset += _U32.size
    if offset + n > len(data):
        raise ValidationError("envelope_truncated", {"field": what})
    return data[offset : offset + n], offset + n


def unpack_envelope(data: bytes) -> StoredEnvelope:
    data = bytes(data)
    nonce, off = _read_chunk(data, 0, "nonce")
    salt, off = _read_chunk(data, off, "salt")
    ciphertext, off = _read_chunk(data, off, "ciphertext")
    meta_b, off = _read_chunk(data, off, "metadata")
    if off != len(data):
        raise ValidationError("envelope_trailing_bytes", {"extra": len(data) - off})

    try:
        meta = json.loads(meta_b.decode("utf-8")) if meta_b else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError("envelope_bad_metadata") from e
    if not isinstance(meta, dict):
        raise ValidationError("envelope_bad_metadata")

    try:
        content_hash = bytes.fromhex(str(meta.get("contentHash") or ""))
    except ValueError as e:
        raise ValidationError("envelope_bad_content_hash") from e

    payload = EncryptedPayload(ciphertext=ciphertext, nonce=nonce, salt=salt, content_hash=content_hash)
    return StoredEnvelope(payload=payload, metadata=meta)
