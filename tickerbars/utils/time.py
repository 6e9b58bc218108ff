"""
Session time utilities for daily bar requests.

All functions take and return timezone-aware datetimes. Exchange hours are
evaluated in the exchange's local timezone so daylight saving transitions
are handled by the timezone database.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ..config.defaults import MarketHoursParams


def _hours(market_hours: Optional[MarketHoursParams]) -> MarketHoursParams:
    return market_hours if market_hours is not None else MarketHoursParams()


def utc_now() -> datetime:
    """Current wall-clock time in UTC."""
    return datetime.now(timezone.utc)


def session_close_instant(day: date, market_hours: Optional[MarketHoursParams] = None) -> datetime:
    """
    Get the session close of a trading day as a UTC datetime.

    Args:
        day: Session date
        market_hours: Exchange hours, defaults to US equities

    Returns:
        UTC datetime of the close on that date
    """
    hours = _hours(market_hours)
    local_close = datetime.combine(day, hours.session_close, tzinfo=ZoneInfo(hours.timezone))
    return local_close.astimezone(timezone.utc)


def is_session_open(now: datetime, market_hours: Optional[MarketHoursParams] = None) -> bool:
    """
    Check whether ``now`` falls inside the regular session window.

    The window runs from the open until the bar settles, so the daily bar
    for the current date is not final anywhere inside it.
    """
    hours = _hours(market_hours)
    local = now.astimezone(ZoneInfo(hours.timezone))
    return hours.session_open <= local.time() < hours.settle_until


def reference_time(now: Optional[datetime] = None,
                   market_hours: Optional[MarketHoursParams] = None) -> datetime:
    """
    Get the "as-of" time for a historical bar request.

    Inside the trading session the prior day's session close is used, since
    today's bar is not final. Otherwise the current instant is used.
    """
    if now is None:
        now = utc_now()

    if is_session_open(now, market_hours):
        hours = _hours(market_hours)
        local_day = now.astimezone(ZoneInfo(hours.timezone)).date()
        return session_close_instant(local_day - timedelta(days=1), hours)

    return now


def elapsed_days(reference: datetime, last_cached: datetime) -> int:
    """Whole days between the last cached bar and the reference time."""
    return (reference - last_cached).days


def incremental_span_days(reference: datetime, last_cached: datetime) -> int:
    """
    Number of days to request for an incremental sync.

    Pads by two days to cover weekends and holidays and to include at least
    one already cached bar, which reconciliation compares against.
    """
    return max(elapsed_days(reference, last_cached), 0) + 2


def duration_string(span_days: int) -> str:
    """Format a span as a broker duration; spans beyond a year go in years."""
    if span_days > 365:
        years = -(-span_days // 365)
        return f"{years} Y"
    return f"{span_days} D"
