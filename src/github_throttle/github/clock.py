"""Clock abstraction for waits and wall-clock reads.

Every wait in the executor, limiter and pacer goes through a Clock so that
tests can substitute virtual time.
"""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of time and cooperative sleep."""

    def now(self) -> datetime:
        """Current wall-clock time (aware UTC)."""
        ...

    def monotonic(self) -> float:
        """Monotonic seconds, for scheduling."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task; must be cancellable."""
        ...


class SystemClock:
    """Clock backed by the system time and asyncio.sleep."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        # sleep(0) still yields to the event loop
        await asyncio.sleep(max(0.0, seconds))
