"""Time helpers. Stored timestamps are naive UTC datetimes."""

from datetime import datetime, date
from typing import Optional, Union

import pytz


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(pytz.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(pytz.utc).replace(tzinfo=None)


def parse_provider_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from the provider.

    football-data.org returns e.g. "2024-08-16T19:00:00Z".
    """
    if not value:
        return None
    return to_utc_naive(datetime.fromisoformat(value.replace("Z", "+00:00")))


def parse_provider_date(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD provider date."""
    if not value:
        return None
    return date.fromisoformat(value[:10])


def isoformat_utc(value: Optional[Union[datetime, date]]) -> Optional[str]:
    """Render a stored timestamp as ISO-8601 with an explicit UTC offset."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return pytz.utc.localize(to_utc_naive(value)).isoformat()
    return value.isoformat()
