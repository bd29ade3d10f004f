from __future__ import annotations

import pytest

from timecapsule.util.sniff import OCTET_STREAM, sniff_content_type


@pytest.mark.parametrize(
    "content,expected",
    [
        (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
        (b"\xff\xd8\xff\xe0JFIF", "image/jpeg"),
        (b"GIF89a...", "image/gif"),
        (b"%PDF-1.7", "application/pdf"),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b'  {"a": 1}', "application/json"),
        ("plain old text ✓".encode("utf-8"), "text/plain"),
        (b"", OCTET_STREAM),
        (b"\xfe\xfe\xfe\xfe", OCTET_STREAM),
        (b"abc\x00def", OCTET_STREAM),
    ],
)
def test_sniff(content: bytes, expected: str) -> None:
    assert sniff_content_type(content) == expected


def test_multibyte_char_split_at_sample_edge_is_text() -> None:
    content = b"a" * 4095 + "é".encode("utf-8") + b"tail"
    assert sniff_content_type(content) == "text/plain"
