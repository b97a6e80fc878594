"""Collaborator contracts for admission control and pacing.

The executor never looks inside a rate limiter or pacer. It talks to a
ThrottledClient, which asks the limiter for admission and, once a request
is going to be sent, reserves a pacing slot for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from .clock import Clock, SystemClock


@dataclass(frozen=True)
class RateLimitResult:
    """Admission decision from a rate limiter.

    Attributes:
        allowed: Whether the call may proceed now
        retry_after: Suggested seconds to wait before asking again
        next_allowed_attempt: Absolute time of the next permitted attempt
    """

    allowed: bool
    retry_after: float | None = None
    next_allowed_attempt: datetime | None = None


@runtime_checkable
class RateLimiter(Protocol):
    """Per-key admission control.

    Implementations must serialize updates per key; different keys must not
    contend with one another.
    """

    async def acquire(self, key: str) -> RateLimitResult: ...

    async def record_success(self, key: str) -> None: ...

    async def record_failure(self, key: str) -> None: ...


@runtime_checkable
class PacingSlot(Protocol):
    """A reserved send time."""

    async def wait_until_ready(self) -> None:
        """Suspend until the slot time arrives."""
        ...


@runtime_checkable
class RequestPacer(Protocol):
    """Per-key steady-rate slot scheduling."""

    async def acquire(self, key: str) -> PacingSlot: ...


class _ImmediateSlot:
    async def wait_until_ready(self) -> None:
        return None


@dataclass(frozen=True)
class AcquisitionResult:
    """Outcome of one acquisition attempt. Never stored beyond that attempt.

    Attributes:
        can_proceed: Whether the limiter admitted the call
        rate_limit_result: The limiter decision as returned
        slot: Pacing slot, reserved exactly when the caller is going to send
        admission_wait: Seconds to wait before acquiring again, or None to send now
    """

    can_proceed: bool
    rate_limit_result: RateLimitResult
    slot: PacingSlot | None = None
    admission_wait: float | None = None

    @property
    def retry_after(self) -> float | None:
        return self.rate_limit_result.retry_after

    @property
    def next_allowed_attempt(self) -> datetime | None:
        return self.rate_limit_result.next_allowed_attempt

    async def wait_until_ready(self) -> None:
        """Wait for the pacing slot (returns at once when no slot was reserved)."""
        if self.slot is not None:
            await self.slot.wait_until_ready()


class ThrottledClient:
    """Composes a RateLimiter and a RequestPacer behind a single acquire().

    The wait-or-send decision is made here, once, from a single clock
    reading. A denial with a retry_after or a next-allowed time still ahead
    yields an admission_wait and no slot. Otherwise the caller sends (even
    on a denial without a usable hint) and a pacing slot is reserved.

    Args:
        rate_limiter: Admission control
        pacer: Optional slot scheduling (no pacing when omitted)
        clock: Clock used to judge whether a next-allowed time is still ahead
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        pacer: RequestPacer | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._pacer = pacer
        self._clock = clock or SystemClock()

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def pacer(self) -> RequestPacer | None:
        return self._pacer

    async def acquire(self, key: str) -> AcquisitionResult:
        decision = await self._rate_limiter.acquire(key)
        admission_wait = None if decision.allowed else self._admission_wait(decision)

        slot: PacingSlot | None = None
        if admission_wait is None:
            slot = await self._pacer.acquire(key) if self._pacer else _ImmediateSlot()

        return AcquisitionResult(
            can_proceed=decision.allowed,
            rate_limit_result=decision,
            slot=slot,
            admission_wait=admission_wait,
        )

    def _admission_wait(self, decision: RateLimitResult) -> float | None:
        """Seconds until a denied call may ask again (None = no usable hint)."""
        if decision.retry_after is not None:
            return max(0.0, decision.retry_after)

        next_allowed = decision.next_allowed_attempt
        if next_allowed is not None:
            remaining = (next_allowed - self._clock.now()).total_seconds()
            if remaining > 0:
                return remaining

        return None

    async def record_success(self, key: str) -> None:
        await self._rate_limiter.record_success(key)

    async def record_failure(self, key: str) -> None:
        await self._rate_limiter.record_failure(key)
