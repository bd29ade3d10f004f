# src/timecapsule/api/schemas.py
from __future__ import annotations

"""Pydantic request/response schemas for the HTTP surface.

These exist only for HTTP validation and response shape stability; the
domain types live in timecapsule.models.
"""

import base64
from typing import List, Optional

from pydantic import BaseModel, Field

from timecapsule.models import Capsule, CapsuleStatus, UnlockResult


class UnlockConditionOut(BaseModel):
    type: str
    unlock_time_ms: Optional[int] = None
    threshold: Optional[int] = None
    approvals: Optional[List[str]] = None
    price: Optional[int] = None
    paid: Optional[bool] = None


class CapsuleOut(BaseModel):
    id: str
    owner: str
    cid: str
    content_hash: str = Field(..., description="Hex SHA-256 of the stored envelope")
    unlock_condition: UnlockConditionOut
    created_at: int
    unlocked: bool

    @classmethod
    def from_capsule(cls, capsule: Capsule) -> "CapsuleOut":
        return cls.model_validate(capsule.to_json())


class ApprovalProgressOut(BaseModel):
    current: int
    required: int
    percentage: int


class PaymentStatusOut(BaseModel):
    required: int
    paid: bool


class CapsuleStatusOut(BaseModel):
    can_unlock: bool
    status_message: str
    time_remaining_ms: Optional[int] = None
    approval_progress: Optional[ApprovalProgressOut] = None
    payment_status: Optional[PaymentStatusOut] = None

    @classmethod
    def from_status(cls, status: CapsuleStatus) -> "CapsuleStatusOut":
        return cls.model_validate(status.to_json())


class CapsulePageOut(BaseModel):
    ok: bool = True
    capsules: List[CapsuleOut]
    has_next_page: bool
    next_cursor: Optional[str] = None


class CapsuleListOut(BaseModel):
    ok: bool = True
    capsules: List[CapsuleOut]


class CapsuleBatchRequest(BaseModel):
    ids: List[str] = Field(..., max_length=50, description="Capsule object ids")


class CapsuleBatchOut(BaseModel):
    ok: bool = True
    capsules: List[Optional[CapsuleOut]]


class UnlockOut(BaseModel):
    ok: bool = True
    capsule_id: str
    cid: str
    content_type: str
    content_b64: str

    @classmethod
    def from_result(cls, res: UnlockResult) -> "UnlockOut":
        return cls(
            capsule_id=res.capsule_id,
            cid=res.cid,
            content_type=res.content_type,
            content_b64=base64.b64encode(res.content).decode("ascii"),
        )
