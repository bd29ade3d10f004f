# src/timecapsule/util/cid.py
from __future__ import annotations

"""Syntactic CID checks run before any storage round trip.

Accepted shapes:
  - CIDv0: "Qm" + 44 base58btc characters.
  - CIDv1: "b" + lowercase RFC4648 base32 (a-z, 2-7).

No multihash decoding happens here.
"""

import re

from timecapsule.errors import ValidationError

MAX_CID_LEN = 128

_CID_PATTERNS = (
    re.compile(r"^Qm[1-9A-HJ-NP-Za-km-z]{44}$"),
    re.compile(r"^b[a-z2-7]{10,}$"),
)


def require_valid_cid(cid: str) -> str:
    """Return the stripped CID or raise ValidationError."""
    c = (cid or "").strip()
    if not c:
        raise ValidationError("missing_cid")
    if len(c) > MAX_CID_LEN:
        raise ValidationError("cid_too_long", {"cid": c[:MAX_CID_LEN]})
    if not any(p.match(c) for p in _CID_PATTERNS):
        raise ValidationError("invalid_cid_format", {"cid": c})
    return c


def is_valid_cid(cid: str) -> bool:
    try:
        require_valid_cid(cid)
    except ValidationError:
        return False
    return True
