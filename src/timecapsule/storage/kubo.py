# src/timecapsule/storage/kubo.py
from __future__ import annotations

import json
from typing import Optional, Tuple

import httpx

from timecapsule.errors import StorageError
from timecapsule.models import ContentStats, UploadResult
from timecapsule.storage.base import ContentStore
from timecapsule.storage.retry import RetryPolicy


def parse_ipfs_add_response(raw: bytes) -> Tuple[str, int]:
    """
    IPFS /api/v0/add returns NDJSON (one JSON per line).
    We take the last valid JSON object and extract Hash + Size.
    """
    txt = raw.decode("utf-8", errors="replace").strip()
    if not txt:
        raise StorageError("ipfs_add_failed:empty_response")

    last_obj: Optional[dict] = None
    for line in txt.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            last_obj = obj

    if not isinstance(last_obj, dict):
        raise StorageError("ipfs_add_failed:bad_response", {"body": txt[:200]})

    cid = str(last_obj.get("Hash") or "").strip()
    size_s = str(last_obj.get("Size") or "0").strip()
    try:
        size = int(size_s)
    except ValueError:
        size = 0

    if not cid:
        raise StorageError("ipfs_add_failed:missing_hash", {"body": txt[:200]})

    return cid, size


class KuboContentStore(ContentStore):
    """IPFS (Kubo) HTTP RPC API backend."""

    backend = "kubo"

    def __init__(
        self,
        api_base: str = "http://127.0.0.1:5001",
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 30.0,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        super().__init__(client=client, timeout_s=timeout_s, retry=retry)
        self.api_base = (api_base or "http://127.0.0.1:5001").strip().rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.api_base}/api/v0/{path}"

    async def _add(self, content: bytes) -> UploadResult:
        req = self._client.build_request(
            "POST",
            self._url("add"),
            params={"pin": "true", "wrap-with-directory": "false", "progress": "false"},
            files={"file": ("capsule.bin", content, "application/octet-stream")},
        )
        resp = await self._send("ipfs_add", req)
        cid, size = parse_ipfs_add_response(resp.content)
        return UploadResult(cid=cid, size=size, hash=b"")

    async def _cat(self, cid: str) -> bytes:
        req = self._client.build_request("POST", self._url("cat"), params={"arg": cid})
        resp = await self._send("ipfs_cat", req)
        return resp.content

    async def _stat(self, cid: str) -> ContentStats:
        req = self._client.build_request("POST", self._url("object/stat"), params={"arg": cid})
        resp = await self._send("ipfs_stat", req)
        try:
            obj = resp.json()
        except ValueError as e:
            raise StorageError("ipfs_stat_failed:bad_response") from e
        if not isinstance(obj, dict) or "CumulativeSize" not in obj:
            raise StorageError("ipfs_stat_failed:missing_size")
        try:
            size = int(obj["CumulativeSize"])
        except (TypeError, ValueError) as e:
            raise StorageError("ipfs_stat_failed:bad_size") from e
        return ContentStats(size=size)
