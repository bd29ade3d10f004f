# src/timecapsule/api/routes.py
from __future__ import annotations

from fastapi import APIRouter, Header, Query, Request

from timecapsule.api.errors import ApiError
from timecapsule.api.schemas import (
    CapsuleBatchOut,
    CapsuleBatchRequest,
    CapsuleListOut,
    CapsuleOut,
    CapsulePageOut,
    CapsuleStatusOut,
    UnlockOut,
)
from timecapsule.sdk import CapsuleSdk

router = APIRouter()


def _sdk(request: Request) -> CapsuleSdk:
    sdk = getattr(request.app.state, "sdk", None)
    if sdk is None:
        raise ApiError.internal("not_ready", "sdk not attached to app.state")
    return sdk


@router.get("/health")
def health() -> dict:
    return {"ok": True}


@router.get("/capsules/owner/{owner}", response_model=CapsulePageOut)
async def capsules_by_owner(
    owner: str,
    request: Request,
    limit: int = Query(default=50, ge=1, le=50),
    cursor: str | None = Query(default=None),
) -> CapsulePageOut:
    page = await _sdk(request).get_capsules_by_owner(owner, limit=limit, cursor=cursor)
    return CapsulePageOut(
        capsules=[CapsuleOut.from_capsule(c) for c in page.capsules],
        has_next_page=page.has_next_page,
        next_cursor=page.next_cursor,
    )


@router.get("/capsules/owner/{owner}/all", response_model=CapsuleListOut)
async def all_capsules_by_owner(owner: str, request: Request) -> CapsuleListOut:
    capsules = await _sdk(request).get_all_capsules_by_owner(owner)
    return CapsuleListOut(capsules=[CapsuleOut.from_capsule(c) for c in capsules])


@router.post("/capsules/batch", response_model=CapsuleBatchOut)
async def capsules_batch(body: CapsuleBatchRequest, request: Request) -> CapsuleBatchOut:
    capsules = await _sdk(request).get_capsules_by_ids(body.ids)
    return CapsuleBatchOut(capsules=[CapsuleOut.from_capsule(c) if c is not None else None for c in capsules])


@router.get("/capsules/{capsule_id}", response_model=CapsuleOut)
async def capsule_by_id(capsule_id: str, request: Request) -> CapsuleOut:
    capsule = await _sdk(request).get_capsule_by_id(capsule_id)
    return CapsuleOut.from_capsule(capsule)


@router.get("/capsules/{capsule_id}/status", response_model=CapsuleStatusOut)
async def capsule_status(capsule_id: str, request: Request) -> CapsuleStatusOut:
    sdk = _sdk(request)
    capsule = await sdk.get_capsule_by_id(capsule_id)
    return CapsuleStatusOut.from_status(sdk.get_capsule_status(capsule))


@router.post("/capsules/{capsule_id}/unlock", response_model=UnlockOut)
async def unlock_capsule(
    capsule_id: str,
    request: Request,
    x_caller_identity: str = Header(default=""),
) -> UnlockOut:
    caller = x_caller_identity.strip()
    if not caller:
        raise ApiError.bad_request("missing_caller", "X-Caller-Identity header is required")
    res = await _sdk(request).unlock_by_id(capsule_id, caller)
    return UnlockOut.from_result(res)
