"""Time source pinned to a single reference zone."""

from datetime import date, datetime, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Asia/Seoul"


class Clock(Protocol):
    """Anything that can tell the current time in the reference zone."""

    zone: tzinfo | None

    def now(self) -> datetime: ...

    def today(self) -> date: ...


class ZonedClock:
    """Wall clock in a fixed IANA zone, independent of the host's local zone."""

    def __init__(self, timezone: str | tzinfo = DEFAULT_TIMEZONE) -> None:
        self.zone = ZoneInfo(timezone) if isinstance(timezone, str) else timezone

    def now(self) -> datetime:
        return datetime.now(self.zone)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock frozen at one instant. Naive instants are taken as already local."""

    def __init__(self, instant: datetime, zone: tzinfo | None = None) -> None:
        if zone is not None and instant.tzinfo is not None:
            instant = instant.astimezone(zone)
        self.instant = instant
        self.zone = zone if zone is not None else instant.tzinfo

    def now(self) -> datetime:
        return self.instant

    def today(self) -> date:
        return self.instant.date()
