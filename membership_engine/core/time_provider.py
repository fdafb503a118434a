from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from membership_engine.config import settings


APP_TIMEZONE = settings.app_timezone or "Europe/Madrid"
APP_ZONEINFO = ZoneInfo(APP_TIMEZONE)


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def today(self) -> date:
        return self.now().date()

    def utc_now(self) -> datetime:
        return datetime.now(timezone.utc)

    def utc_naive(self) -> datetime:
        # Storage columns are naive UTC.
        return self.utc_now().replace(tzinfo=None)


default_time_provider = TimeProvider()


def utc_naive_now() -> datetime:
    return default_time_provider.utc_naive()
