from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock used to stamp provisional entries."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
