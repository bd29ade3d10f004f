# src/timecapsule/storage/retry.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from timecapsule.errors import TransientIOError
from timecapsule.logging_util import log_event

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

log = logging.getLogger("timecapsule.retry")


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff around any async operation.

    attempt k (1-based) that fails is followed by a delay of
    backoff_base_ms * 2^(k-1), capped at backoff_cap_ms when set. No delay
    follows the last attempt; its error is re-raised unchanged.
    Only exceptions in `retry_on` are retried; anything else propagates
    immediately.
    """

    max_attempts: int = 3
    backoff_base_ms: int = 1000
    backoff_cap_ms: Optional[int] = None
    retry_on: Tuple[Type[BaseException], ...] = (TransientIOError,)
    sleep: Sleep = field(default=asyncio.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if int(self.max_attempts) < 1:
            raise ValueError("max_attempts must be >= 1")
        if int(self.backoff_base_ms) < 0:
            raise ValueError("backoff_base_ms must be >= 0")

    def compute_backoff_ms(self, attempt: int) -> int:
        a = max(1, int(attempt))
        delay = int(self.backoff_base_ms) * (2 ** (a - 1))
        if self.backoff_cap_ms is not None and delay > int(self.backoff_cap_ms):
            delay = int(self.backoff_cap_ms)
        return delay

    def max_total_delay_ms(self) -> int:
        return sum(self.compute_backoff_ms(k) for k in range(1, int(self.max_attempts)))

    async def run(self, op: Callable[[], Awaitable[T]], *, name: str = "op") -> T:
        attempt = 1
        while True:
            try:
                return await op()
            except self.retry_on as e:
                if attempt >= int(self.max_attempts):
                    log_event(log, "retry_exhausted", level=logging.WARNING, op=name, attempts=attempt, error=str(e))
                    raise
                delay_ms = self.compute_backoff_ms(attempt)
                log_event(
                    log,
                    "retry_scheduled",
                    level=logging.WARNING,
                    op=name,
                    attempt=attempt,
                    delay_ms=delay_ms,
                    error=str(e),
                )
                await self.sleep(delay_ms / 1000.0)
                attempt += 1
