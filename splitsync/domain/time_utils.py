"""Epoch-millisecond clock helpers shared by the store, engine and resolver."""

import time
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], int]

MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * MINUTE_MS


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
