# src/timecapsule/query/mapping.py
from __future__ import annotations

from typing import Any, Dict, Optional

from timecapsule.errors import UnsupportedConditionError
from timecapsule.models import Capsule, Paid, ThresholdApproval, TimeLock, UnlockCondition

Json = Dict[str, Any]

CONDITION_TIME = 1
CONDITION_MULTISIG = 2
CONDITION_PAYMENT = 3

_CONDITION_NAMES = {"time": CONDITION_TIME, "multisig": CONDITION_MULTISIG, "payment": CONDITION_PAYMENT}


class MalformedRecord(ValueError):
    pass


def _unwrap_fields(v: Any) -> Any:
    # Nested Move structs may arrive as {"type": ..., "fields": {...}}.
    if isinstance(v, dict) and isinstance(v.get("fields"), dict):
        return v["fields"]
    return v


def _as_int(v: Any, what: str) -> int:
    if isinstance(v, bool) or v is None:
        raise MalformedRecord(what)
    try:
        return int(str(v).strip())
    except ValueError as e:
        raise MalformedRecord(what) from e


def _as_str(v: Any, what: str) -> str:
    if not isinstance(v, str) or not v.strip():
        raise MalformedRecord(what)
    return v.strip()


def _as_bytes(v: Any) -> bytes:
    if v is None:
        return b""
    if isinstance(v, list):
        try:
            return bytes(int(x) for x in v)
        except (TypeError, ValueError) as e:
            raise MalformedRecord("content_hash") from e
    if isinstance(v, str):
        s = v.strip()
        if s.startswith("0x"):
            s = s[2:]
        try:
            return bytes.fromhex(s)
        except ValueError as e:
            raise MalformedRecord("content_hash") from e
    raise MalformedRecord("content_hash")


def _condition_tag(raw: Any) -> int:
    if isinstance(raw, str) and raw.strip().lower() in _CONDITION_NAMES:
        return _CONDITION_NAMES[raw.strip().lower()]
    try:
        return _as_int(raw, "condition_type")
    except MalformedRecord as e:
        raise UnsupportedConditionError("unknown_condition_type", {"condition_type": raw}) from e


def decode_unlock_condition(raw: Any, fields: Optional[Json] = None) -> UnlockCondition:
    """Decode the ledger's tagged condition record.

    Raises UnsupportedConditionError for an unknown tag and MalformedRecord
    when the tag is known but its fields are unusable.
    """
    cond = _unwrap_fields(raw)
    if not isinstance(cond, dict):
        raise MalformedRecord("unlock_condition")
    if cond.get("condition_type") is None:
        raise MalformedRecord("condition_type")

    tag = _condition_tag(cond.get("condition_type"))
    outer = fields or {}

    if tag == CONDITION_TIME:
        t = cond.get("unlock_time_ms")
        if t is None:
            t = outer.get("unlock_time_ms")
        return TimeLock(unlock_time_ms=_as_int(t, "unlock_time_ms"))

    if tag == CONDITION_MULTISIG:
        approvals = cond.get("approvals") or []
        if not isinstance(approvals, list) or not all(isinstance(a, str) for a in approvals):
            raise MalformedRecord("approvals")
        return ThresholdApproval(
            threshold=_as_int(cond.get("threshold"), "threshold"),
            approvals=frozenset(approvals),
        )

    if tag == CONDITION_PAYMENT:
        paid = cond.get("paid")
        if paid is not None and not isinstance(paid, bool):
            raise MalformedRecord("paid")
        return Paid(price=_as_int(cond.get("price"), "price"), paid=bool(paid))

    raise UnsupportedConditionError("unknown_condition_type", {"condition_type": cond.get("condition_type")})


def parse_capsule_object(obj: Any) -> Optional[Capsule]:
    """Map a ledger object to a Capsule.

    Returns None when the object or its content is absent or malformed.
    An unknown condition tag is not "malformed": it raises
    UnsupportedConditionError.
    """
    if not isinstance(obj, dict):
        return None
    content = obj.get("content")
    if not isinstance(content, dict):
        return None
    if content.get("dataType", "moveObject") != "moveObject":
        return None
    fields = content.get("fields")
    if not isinstance(fields, dict):
        return None

    try:
        inner_id = _unwrap_fields(fields.get("id"))
        if isinstance(inner_id, dict):
            inner_id = inner_id.get("id")
        capsule_id = obj.get("objectId") or inner_id
        created_raw = fields.get("created_at")
        return Capsule(
            id=_as_str(capsule_id, "id"),
            owner=_as_str(fields.get("owner"), "owner"),
            cid=_as_str(fields.get("cid"), "cid"),
            content_hash=_as_bytes(fields.get("content_hash")),
            unlock_condition=decode_unlock_condition(fields.get("unlock_condition"), fields),
            created_at=_as_int(created_raw, "created_at") if created_raw is not None else 0,
            unlocked=bool(fields.get("unlocked") or False),
        )
    except MalformedRecord:
        return None
