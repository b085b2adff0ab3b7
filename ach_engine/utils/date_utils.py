"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Timezone-aware current time, the default clock for the engine"""
    return datetime.now(timezone.utc)


def business_date(moment: datetime, tz_name: str) -> date:
    """Calendar date of `moment` in the named IANA timezone (e.g. "America/New_York")"""
    return moment.astimezone(ZoneInfo(tz_name)).date()


def days_after(from_date: date, days: int) -> date:
    """Calendar date `days` after from_date (no holiday or weekend handling)"""
    return from_date + timedelta(days=days)


def format_yymmdd(value: date) -> str:
    return value.strftime("%y%m%d")


def format_hhmm(value: datetime) -> str:
    return value.strftime("%H%M")
