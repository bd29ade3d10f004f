# src/timecapsule/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class CapsuleError(Exception):
    """Base class for component errors.

    `kind` is stable and safe to show to UI code; `reason` is a short
    machine-ish string; `details` is optional structured context.
    """

    kind = "internal"

    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.details = details

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.kind}:{self.reason}"
        return f"{self.kind}:{self.reason}:{self.details}"


class ValidationError(CapsuleError):
    kind = "validation"


class AuthenticationError(CapsuleError):
    kind = "authentication"


class HashMismatchError(CapsuleError):
    kind = "hash_mismatch"


class NotFoundError(CapsuleError):
    kind = "not_found"


class UnsupportedConditionError(CapsuleError):
    kind = "unsupported_condition"


class AuthorizationError(CapsuleError):
    kind = "authorization"


class PreconditionError(CapsuleError):
    kind = "precondition"


class TransientIOError(CapsuleError):
    """Network failure or timeout. Only the content store retries these."""

    kind = "transient_io"


class StorageError(CapsuleError):
    kind = "storage"


class LedgerError(CapsuleError):
    kind = "ledger"


class ConfigError(CapsuleError):
    kind = "config"


@dataclass(eq=False)
class CapsuleSdkError(Exception):
    """The single error type raised across the SDK boundary."""

    kind: str
    message: str
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        return f"{self.kind}:{self.message}"

    @staticmethod
    def wrap(exc: BaseException) -> "CapsuleSdkError":
        if isinstance(exc, CapsuleSdkError):
            return exc
        if isinstance(exc, CapsuleError):
            return CapsuleSdkError(exc.kind, exc.reason, exc)
        return CapsuleSdkError("internal", f"{type(exc).__name__}: {exc}", exc)
