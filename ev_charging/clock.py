from abc import ABC, abstractmethod
from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from ev_charging.config import settings


class Clock(ABC):
    """Source of the current instant, as naive UTC"""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


def get_local_timezone() -> tzinfo:
    return ZoneInfo(settings.LOCAL_TIMEZONE)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC; naive input is taken as UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert a stored naive UTC instant to local wall-clock time"""
    tz = tz or get_local_timezone()
    return value.replace(tzinfo=timezone.utc).astimezone(tz)


def local_to_utc(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Interpret a naive local wall-clock datetime and return naive UTC"""
    tz = tz or get_local_timezone()
    return value.replace(tzinfo=tz).astimezone(timezone.utc).replace(tzinfo=None)


def get_clock() -> Clock:
    """Request dependency; tests override it with a fixed clock"""
    return SystemClock()
