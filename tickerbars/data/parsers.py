"""
Conversion of broker bar payloads into Quote objects.

Broker bars carry their session date either as a ``YYYYMMDD`` string, a
``date`` or a ``datetime``. Every form is normalized to the session close
of that date in UTC so that the same trading day always maps to the same
stored timestamp.
"""

from datetime import date, datetime
from typing import Any, Optional

from ..config.defaults import MarketHoursParams
from ..errors import MalformedDataError
from ..utils.time import session_close_instant
from .models import Quote

BAR_DATE_FORMAT = "%Y%m%d"


def parse_bar_date(raw_date: Any, market_hours: Optional[MarketHoursParams] = None) -> datetime:
    """
    Normalize a broker bar date to the UTC session close of that day.

    Args:
        raw_date: ``YYYYMMDD`` string, ``date`` or ``datetime``
        market_hours: Exchange hours, defaults to US equities

    Returns:
        UTC datetime of the session close

    Raises:
        MalformedDataError: If the value cannot be read as a date
    """
    if isinstance(raw_date, datetime):
        day = raw_date.date()
    elif isinstance(raw_date, date):
        day = raw_date
    elif isinstance(raw_date, str):
        text = raw_date.strip()
        try:
            day = datetime.strptime(text[:8], BAR_DATE_FORMAT).date()
        except ValueError as e:
            raise MalformedDataError(
                f"Unparseable bar date {raw_date!r}",
                raw_data=raw_date,
                expected_format=BAR_DATE_FORMAT
            ) from e
    else:
        raise MalformedDataError(
            f"Unsupported bar date type {type(raw_date).__name__}",
            raw_data=repr(raw_date),
            expected_format=BAR_DATE_FORMAT
        )

    return session_close_instant(day, market_hours)


def bar_to_quote(bar: Any, market_hours: Optional[MarketHoursParams] = None) -> Quote:
    """
    Convert a broker bar object into a Quote.

    The bar must expose ``date``, ``open``, ``high``, ``low``, ``close``,
    ``average``, ``volume`` and ``barCount`` attributes.
    """
    try:
        return Quote(
            timestamp=parse_bar_date(bar.date, market_hours),
            open=float(bar.open),
            high=float(bar.high),
            low=float(bar.low),
            close=float(bar.close),
            avg=float(bar.average),
            volume=int(bar.volume),
            count=int(bar.barCount),
        )
    except (AttributeError, TypeError, ValueError) as e:
        raise MalformedDataError(f"Malformed bar: {e}", raw_data=repr(bar)) from e
