# src/timecapsule/ledger/client.py
from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from timecapsule.errors import LedgerError, TransientIOError
from timecapsule.logging_util import log_event

Json = Dict[str, Any]

log = logging.getLogger("timecapsule.ledger")


class LedgerReader(Protocol):
    """Read surface of the ledger consumed by the query layer.

    Response shapes follow the Sui JSON-RPC API:
      get_owned_objects -> {"data": [{"data": <obj>|None}, ...], "hasNextPage": bool, "nextCursor": str|None}
      get_object        -> {"data": <obj>|None, "error": ...}
      multi_get_objects -> [{"data": <obj>|None}, ...]
    """

    async def get_owned_objects(
        self,
        owner: str,
        filter: Json,
        options: Json,
        limit: int,
        cursor: Optional[str],
    ) -> Json: ...

    async def get_object(self, object_id: str, options: Json) -> Json: ...

    async def multi_get_objects(self, object_ids: List[str], options: Json) -> List[Json]: ...


class SuiJsonRpcLedger:
    """JSON-RPC 2.0 client for a Sui fullnode.

    Transport failures surface as TransientIOError and are not retried here.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 30.0,
    ) -> None:
        self.rpc_url = rpc_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "SuiJsonRpcLedger":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: List[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._client.post(self.rpc_url, json=body)
        except httpx.TimeoutException as e:
            raise TransientIOError("ledger_rpc_timeout", {"method": method}) from e
        except httpx.TransportError as e:
            raise TransientIOError("ledger_rpc_transport", {"method": method, "error": str(e)}) from e

        if resp.status_code >= 500 or resp.status_code == 429:
            raise TransientIOError(f"ledger_rpc_http_{resp.status_code}", {"method": method})
        if resp.status_code >= 400:
            raise LedgerError(f"ledger_rpc_http_{resp.status_code}", {"method": method, "body": resp.text[:300]})

        try:
            obj = resp.json()
        except ValueError as e:
            raise LedgerError("ledger_rpc_bad_json", {"method": method}) from e
        if not isinstance(obj, dict):
            raise LedgerError("ledger_rpc_bad_response", {"method": method})

        err = obj.get("error")
        if err is not None:
            log_event(log, "ledger_rpc_error", level=logging.WARNING, method=method, error=err)
            raise LedgerError("ledger_rpc_error", {"method": method, "error": err})
        return obj.get("result")

    async def get_owned_objects(
        self,
        owner: str,
        filter: Json,
        options: Json,
        limit: int,
        cursor: Optional[str],
    ) -> Json:
        query = {"filter": filter, "options": options}
        res = await self._call("suix_getOwnedObjects", [owner, query, cursor, int(limit)])
        return res if isinstance(res, dict) else {"data": [], "hasNextPage": False, "nextCursor": None}

    async def get_object(self, object_id: str, options: Json) -> Json:
        res = await self._call("sui_getObject", [object_id, options])
        return res if isinstance(res, dict) else {"data": None}

    async def multi_get_objects(self, object_ids: List[str], options: Json) -> List[Json]:
        res = await self._call("sui_multiGetObjects", [list(object_ids), options])
        return res if isinstance(res, list) else []
