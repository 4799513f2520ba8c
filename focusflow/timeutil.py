"""Integer-second time helpers. All timestamps are Unix epoch seconds."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Optional


def elapsed_seconds(since: Optional[float], now: float) -> int:
    """Whole seconds from *since* to *now*, floored and never negative."""
    if since is None:
        return 0
    return max(0, int(math.floor(now - since)))


def seconds_until(deadline: float, now: float) -> int:
    """Whole seconds left before *deadline*, rounded up; 0 once it has passed."""
    return max(0, int(math.ceil(deadline - now)))


def utc_day(ts: float) -> date:
    return datetime.fromtimestamp(ts, tz=timezone.utc).date()
