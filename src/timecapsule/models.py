# src/timecapsule/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Union


Json = Dict[str, Any]


@dataclass(frozen=True)
class TimeLock:
    unlock_time_ms: int


@dataclass(frozen=True)
class ThresholdApproval:
    threshold: int
    approvals: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class Paid:
    price: int  # MIST
    paid: bool = False


UnlockCondition = Union[TimeLock, ThresholdApproval, Paid]


@dataclass(frozen=True)
class Capsule:
    """Ledger-recorded capsule, decoded at the query boundary.

    `content_hash` is the SHA-256 of the stored envelope bytes (what the
    content store verifies on download). It may be empty for records that
    never recorded one, in which case download verification is skipped.
    """

    id: str
    owner: str
    cid: str
    content_hash: bytes
    unlock_condition: UnlockCondition
    created_at: int
    unlocked: bool = False

    def to_json(self) -> Json:
        cond = self.unlock_condition
        c: Json
        if isinstance(cond, TimeLock):
            c = {"type": "time", "unlock_time_ms": cond.unlock_time_ms}
        elif isinstance(cond, ThresholdApproval):
            c = {"type": "multisig", "threshold": cond.threshold, "approvals": sorted(cond.approvals)}
        else:
            c = {"type": "payment", "price": cond.price, "paid": cond.paid}
        return {
            "id": self.id,
            "owner": self.owner,
            "cid": self.cid,
            "content_hash": self.content_hash.hex(),
            "unlock_condition": c,
            "created_at": self.created_at,
            "unlocked": self.unlocked,
        }


@dataclass(frozen=True)
class EncryptedPayload:
    """Output of one encrypt call. nonce and salt are public."""

    ciphertext: bytes
    nonce: bytes
    salt: bytes
    content_hash: bytes


@dataclass(frozen=True)
class UnlockResult:
    capsule_id: str
    content: bytes
    content_type: str
    cid: str


@dataclass(frozen=True)
class UploadResult:
    cid: str
    size: int
    hash: bytes


@dataclass(frozen=True)
class DownloadResult:
    content: bytes
    size: int


@dataclass(frozen=True)
class ContentStats:
    size: int
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class CapsulePage:
    capsules: List[Capsule]
    has_next_page: bool
    next_cursor: Optional[str] = None


@dataclass(frozen=True)
class ApprovalProgress:
    current: int
    required: int
    percentage: int


@dataclass(frozen=True)
class PaymentStatus:
    required: int
    paid: bool


@dataclass(frozen=True)
class CapsuleStatus:
    can_unlock: bool
    status_message: str
    time_remaining_ms: Optional[int] = None
    approval_progress: Optional[ApprovalProgress] = None
    payment_status: Optional[PaymentStatus] = None

    def to_json(self) -> Json:
        out: Json = {"can_unlock": self.can_unlock, "status_message": self.status_message}
        if self.time_remaining_ms is not None:
            out["time_remaining_ms"] = self.time_remaining_ms
        if self.approval_progress is not None:
            p = self.approval_progress
            out["approval_progress"] = {"current": p.current, "required": p.required, "percentage": p.percentage}
        if self.payment_status is not None:
            out["payment_status"] = {"required": self.payment_status.required, "paid": self.payment_status.paid}
        return out


@dataclass(frozen=True)
class StoredCapsuleContent:
    """What the caller records on the ledger after storing content."""

    cid: str
    content_hash: bytes  # hash of the stored envelope
    size: int
    payload: EncryptedPayload
    metadata: Json = field(default_factory=dict)
