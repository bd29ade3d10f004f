# src/timecapsule/api/errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from timecapsule.errors import CapsuleSdkError

_KIND_STATUS: Dict[str, int] = {
    "validation": 400,
    "authentication": 422,
    "hash_mismatch": 502,
    "not_found": 404,
    "unsupported_condition": 422,
    "authorization": 403,
    "precondition": 409,
    "transient_io": 503,
    "storage": 502,
    "ledger": 502,
    "config": 500,
    "internal": 500,
}


@dataclass(eq=False)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    @staticmethod
    def from_sdk(err: CapsuleSdkError) -> "ApiError":
        status = _KIND_STATUS.get(err.kind, 500)
        # Internal failures keep their message server-side.
        message = err.message if status < 500 or err.kind in {"transient_io", "storage", "ledger"} else "internal error"
        return ApiError(status, err.kind, message, {})
