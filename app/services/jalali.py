from __future__ import annotations

from datetime import date, datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

import jdatetime

from app.core.config import settings
from app.models.common import as_utc


@lru_cache(maxsize=4)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def local_zone() -> ZoneInfo:
    return _zone(str(settings.LOCAL_TIMEZONE or "Asia/Tehran"))


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_local(moment: datetime | None = None) -> datetime:
    """Shift an instant to local wall time; naive values are read as UTC."""
    return as_utc(moment or _now_utc()).astimezone(local_zone())


def to_jalali(moment: datetime | None = None) -> jdatetime.datetime:
    return jdatetime.datetime.fromgregorian(datetime=to_local(moment))


def jalali_year_digit_and_month(moment: datetime | None = None) -> tuple[str, str]:
    jalali = to_jalali(moment)
    return str(jalali.year)[-1], f"{jalali.month:02d}"


def invoice_prefix(moment: datetime | None = None) -> str:
    year_digit, month = jalali_year_digit_and_month(moment)
    return f"{year_digit}{month}"


def format_jalali(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    jalali = to_jalali(moment)
    return f"{jalali.year}/{jalali.month:02d}/{jalali.day:02d} {jalali.hour:02d}:{jalali.minute:02d}"


def format_jalali_date(value: date | None) -> str | None:
    if value is None:
        return None
    jalali = jdatetime.date.fromgregorian(date=value)
    return f"{jalali.year}/{jalali.month:02d}/{jalali.day:02d}"


def local_today_iso(moment: datetime | None = None) -> str:
    return to_local(moment).date().isoformat()
