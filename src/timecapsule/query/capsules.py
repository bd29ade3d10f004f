# src/timecapsule/query/capsules.py
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from timecapsule.errors import NotFoundError, UnsupportedConditionError
from timecapsule.ledger.client import LedgerReader
from timecapsule.logging_util import log_event
from timecapsule.models import Capsule, CapsulePage, CapsuleStatus
from timecapsule.query.mapping import parse_capsule_object
from timecapsule.query.status import compute_status

Json = Dict[str, Any]

log = logging.getLogger("timecapsule.query")

DEFAULT_PAGE_LIMIT = 50


def _now_ms() -> int:
    return int(time.time() * 1000)


def normalize_object_id(object_id: str) -> str:
    """Canonical ledger id: lowercase, "0x" prefix, 64 hex digits."""
    s = str(object_id or "").strip().lower()
    if s.startswith("0x"):
        s = s[2:]
    return "0x" + s.rjust(64, "0")


def _object_id(entry: Any) -> str:
    if not isinstance(entry, dict):
        return ""
    data = entry.get("data")
    if isinstance(data, dict):
        return str(data.get("objectId") or "")
    err = entry.get("error")
    if isinstance(err, dict):
        return str(err.get("object_id") or err.get("objectId") or "")
    return ""


class CapsuleQuery:
    """Turns raw ledger objects into Capsule values.

    Holds no mutable state besides the reader handle, so one instance may
    serve concurrent callers.
    """

    def __init__(
        self,
        ledger: LedgerReader,
        *,
        package_id: str = "0x0",
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self.ledger = ledger
        self.package_id = package_id
        self._clock_ms = clock_ms

    @property
    def struct_type(self) -> str:
        return f"{self.package_id}::capsule::TimeCapsule"

    async def get_by_owner(
        self,
        owner: str,
        *,
        limit: int = DEFAULT_PAGE_LIMIT,
        cursor: Optional[str] = None,
        show_content: bool = True,
    ) -> CapsulePage:
        """Fetch one page. `cursor` and `next_cursor` are opaque ledger tokens.

        Entries without content are skipped; an entry with an unknown
        condition tag fails the whole page.
        """
        resp = await self.ledger.get_owned_objects(
            owner,
            {"StructType": self.struct_type},
            {"showContent": bool(show_content), "showType": True},
            int(limit or DEFAULT_PAGE_LIMIT),
            cursor,
        )

        capsules: List[Capsule] = []
        for entry in resp.get("data") or []:
            data = entry.get("data") if isinstance(entry, dict) else None
            if not data:
                continue
            capsule = parse_capsule_object(data)
            if capsule is not None:
                capsules.append(capsule)

        next_cursor = resp.get("nextCursor")
        return CapsulePage(
            capsules=capsules,
            has_next_page=bool(resp.get("hasNextPage")),
            next_cursor=next_cursor if next_cursor else None,
        )

    async def get_all_by_owner(self, owner: str, *, limit: int = DEFAULT_PAGE_LIMIT) -> List[Capsule]:
        """Walk every page in order. Pages are fetched one after another."""
        out: List[Capsule] = []
        cursor: Optional[str] = None
        pages = 0
        while True:
            page = await self.get_by_owner(owner, limit=limit, cursor=cursor)
            pages += 1
            out.extend(page.capsules)
            if not page.has_next_page:
                break
            if not page.next_cursor or page.next_cursor == cursor:
                # A ledger that claims more pages without advancing would loop forever.
                log_event(log, "pagination_stalled", level=logging.WARNING, owner=owner, pages=pages)
                break
            cursor = page.next_cursor
        log_event(log, "capsules_listed", owner=owner, pages=pages, count=len(out))
        return out

    async def get_by_id(self, capsule_id: str) -> Capsule:
        resp = await self.ledger.get_object(capsule_id, {"showContent": True, "showType": True})
        data = resp.get("data") if isinstance(resp, dict) else None
        if not data:
            raise NotFoundError("capsule_not_found", {"id": capsule_id})
        capsule = parse_capsule_object(data)
        if capsule is None:
            raise NotFoundError("capsule_malformed", {"id": capsule_id})
        return capsule

    async def get_by_ids(self, capsule_ids: Sequence[str]) -> List[Optional[Capsule]]:
        """Batch fetch aligned with `capsule_ids`; unresolved positions are None."""
        ids = list(capsule_ids)
        if not ids:
            return []

        resp = await self.ledger.multi_get_objects(ids, {"showContent": True, "showType": True})

        by_id: Dict[str, Optional[Capsule]] = {}
        for entry in resp or []:
            raw_id = _object_id(entry)
            if not raw_id:
                continue
            oid = normalize_object_id(raw_id)
            if oid in by_id:
                continue
            try:
                by_id[oid] = parse_capsule_object(entry.get("data"))
            except UnsupportedConditionError as e:
                log_event(log, "capsule_skipped", level=logging.WARNING, id=oid, reason=e.reason)
                by_id[oid] = None

        return [by_id.get(normalize_object_id(i)) for i in ids]

    def status(self, capsule: Capsule, now_ms: Optional[int] = None) -> CapsuleStatus:
        return compute_status(capsule, self._clock_ms() if now_ms is None else int(now_ms))

    async def get_by_owner_with_status(
        self,
        owner: str,
        *,
        limit: int = DEFAULT_PAGE_LIMIT,
        cursor: Optional[str] = None,
    ) -> Tuple[CapsulePage, List[Tuple[Capsule, CapsuleStatus]]]:
        page = await self.get_by_owner(owner, limit=limit, cursor=cursor)
        now = self._clock_ms()
        return page, [(c, compute_status(c, now)) for c in page.capsules]
