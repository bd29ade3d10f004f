# src/timecapsule/storage/pinata.py
from __future__ import annotations

import json
import time
from typing import Callable, Dict, Optional

import httpx

from timecapsule.errors import ConfigError, StorageError
from timecapsule.models import ContentStats, UploadResult
from timecapsule.storage.base import ContentStore
from timecapsule.storage.retry import RetryPolicy


def _now_ms() -> int:
    return int(time.time() * 1000)


class PinataContentStore(ContentStore):
    """Pinning-service backend: uploads via the pinning API, reads via gateway."""

    backend = "pinata"

    def __init__(
        self,
        *,
        api_base: str = "https://api.pinata.cloud",
        gateway: str = "https://gateway.pinata.cloud",
        jwt: str = "",
        api_key: str = "",
        api_secret: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 30.0,
        retry: Optional[RetryPolicy] = None,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        super().__init__(client=client, timeout_s=timeout_s, retry=retry)
        self.api_base = api_base.strip().rstrip("/")
        self.gateway = gateway.strip().rstrip("/")
        self._jwt = jwt.strip()
        self._api_key = api_key.strip()
        self._api_secret = api_secret.strip()
        self._clock_ms = clock_ms

    def _auth_headers(self) -> Dict[str, str]:
        if self._jwt:
            return {"Authorization": f"Bearer {self._jwt}"}
        if self._api_key and self._api_secret:
            return {"pinata_api_key": self._api_key, "pinata_secret_api_key": self._api_secret}
        raise ConfigError("pinata_credentials_missing")

    async def _add(self, content: bytes) -> UploadResult:
        ts = self._clock_ms()
        metadata = {
            "name": f"time-capsule-{ts}",
            "keyvalues": {"type": "time-capsule-content", "timestamp": str(ts)},
        }
        req = self._client.build_request(
            "POST",
            f"{self.api_base}/pinning/pinFileToIPFS",
            headers=self._auth_headers(),
            data={"pinataMetadata": json.dumps(metadata, separators=(",", ":"))},
            files={"file": (f"encrypted-content-{ts}.bin", content, "application/octet-stream")},
        )
        resp = await self._send("pinata_add", req)
        try:
            obj = resp.json()
        except ValueError as e:
            raise StorageError("pinata_add_failed:bad_response") from e
        cid = str((obj or {}).get("IpfsHash") or "").strip() if isinstance(obj, dict) else ""
        if not cid:
            raise StorageError("pinata_add_failed:missing_hash")
        try:
            size = int(obj.get("PinSize") or 0)
        except (TypeError, ValueError):
            size = 0
        return UploadResult(cid=cid, size=size, hash=b"")

    async def _cat(self, cid: str) -> bytes:
        req = self._client.build_request("GET", f"{self.gateway}/ipfs/{cid}")
        resp = await self._send("gateway_get", req)
        return resp.content

    async def _stat(self, cid: str) -> ContentStats:
        req = self._client.build_request("HEAD", f"{self.gateway}/ipfs/{cid}")
        resp = await self._send("gateway_head", req)
        try:
            size = int(resp.headers.get("content-length") or 0)
        except ValueError:
            size = 0
        return ContentStats(size=size, content_type=resp.headers.get("content-type") or "application/octet-stream")

    def gateway_url(self, cid: str) -> str:
        cid = (cid or "").strip()
        return f"{self.gateway}/ipfs/{cid}" if cid else ""
