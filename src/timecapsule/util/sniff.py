# src/timecapsule/util/sniff.py
from __future__ import annotations

from typing import Tuple

OCTET_STREAM = "application/octet-stream"

_MAGIC: Tuple[Tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"%PDF-", "application/pdf"),
    (b"PK\x03\x04", "application/zip"),
    (b"ID3", "audio/mpeg"),
    (b"OggS", "audio/ogg"),
)


def sniff_content_type(content: bytes) -> str:
    """Best guess from leading bytes; falls back to text/plain for UTF-8."""
    head = bytes(content[:16])
    for magic, ctype in _MAGIC:
        if head.startswith(magic):
            return ctype
    if head.startswith(b"RIFF") and content[8:12] == b"WEBP":
        return "image/webp"
    if len(content) >= 12 and content[4:8] == b"ftyp":
        return "video/mp4"
    if not content:
        return OCTET_STREAM
    sample = bytes(content[:4096])
    try:
        text = sample.decode("utf-8")
    except UnicodeDecodeError as e:
        # A multi-byte sequence split by the sample cut is still text.
        if len(content) <= len(sample) or e.start < len(sample) - 3:
            return OCTET_STREAM
        text = sample[: e.start].decode("utf-8")
    stripped = text.lstrip()
    if stripped.startswith("{") or stripped.startswith("["):
        return "application/json"
    if "\x00" in text:
        return OCTET_STREAM
    return "text/plain"
