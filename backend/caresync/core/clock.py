"""Wall-clock helpers. Everything that compares against "now" takes a clock callable so tests can pin time."""
from datetime import datetime, timezone
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_now(time_zone: str, clock: Clock = utc_now) -> datetime:
    """Naive wall-clock time in the given IANA zone (matches how availability date_time is stored)."""
    now = clock()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(time_zone)).replace(tzinfo=None)
