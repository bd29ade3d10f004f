# src/timecapsule/query/status.py
from __future__ import annotations

from decimal import Decimal

from timecapsule.models import (
    ApprovalProgress,
    Capsule,
    CapsuleStatus,
    Paid,
    PaymentStatus,
    ThresholdApproval,
    TimeLock,
)

READY = "Ready to unlock"
ALREADY_UNLOCKED = "Capsule has already been unlocked"

MIST_PER_SUI = 1_000_000_000


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'}"


def format_time_remaining(ms: int) -> str:
    seconds = max(0, int(ms)) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return _plural(days, "day")
    if hours > 0:
        return _plural(hours, "hour")
    if minutes > 0:
        return _plural(minutes, "minute")
    return _plural(seconds, "second")


def format_sui(mist: int) -> str:
    return format(Decimal(int(mist)) / Decimal(MIST_PER_SUI), "f")


def compute_status(capsule: Capsule, now_ms: int) -> CapsuleStatus:
    """Decide whether the capsule's condition currently allows unlocking.

    TimeLock:          now >= unlock_time_ms and not unlocked
    ThresholdApproval: len(approvals) >= threshold
    Paid:              paid
    """
    cond = capsule.unlock_condition

    if isinstance(cond, TimeLock):
        remaining = max(0, cond.unlock_time_ms - int(now_ms))
        if capsule.unlocked:
            return CapsuleStatus(False, ALREADY_UNLOCKED, time_remaining_ms=remaining)
        can = int(now_ms) >= cond.unlock_time_ms
        msg = READY if can else f"Unlocks in {format_time_remaining(remaining)}"
        return CapsuleStatus(can, msg, time_remaining_ms=remaining)

    if isinstance(cond, ThresholdApproval):
        current = len(cond.approvals)
        required = int(cond.threshold)
        # Half rounds up.
        pct = 0 if required <= 0 else min(100, (current * 100 + required // 2) // required)
        can = current >= required
        msg = READY if can else f"{current}/{required} approvals received"
        return CapsuleStatus(can, msg, approval_progress=ApprovalProgress(current, required, pct))

    if isinstance(cond, Paid):
        msg = READY if cond.paid else f"Payment required: {format_sui(cond.price)} SUI"
        return CapsuleStatus(bool(cond.paid), msg, payment_status=PaymentStatus(cond.price, bool(cond.paid)))

    raise TypeError(f"unhandled unlock condition: {type(cond).__name__}")
