from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Time source for the client engine.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""

    def utcnow(self) -> datetime:
        """Return the current wall-clock time (timezone-aware UTC)."""


class RealClock:
    """Production clock backed by time.monotonic() and the system calendar."""

    def now(self) -> float:
        return time.monotonic()

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)
