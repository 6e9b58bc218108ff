"""
Canonical data models for daily bars.

Quotes are immutable once fetched. Timestamps are the bar's session date
normalized to market close and expressed in UTC.
"""

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class Quote:
    """One day's aggregated bar for a ticker."""
    timestamp: datetime  # UTC session close
    open: float
    high: float
    low: float
    close: float
    avg: float           # Volume weighted average price
    volume: int
    count: int           # Number of trades during the bar

    @property
    def epoch_seconds(self) -> int:
        """Timestamp as integer seconds since the epoch."""
        return int(self.timestamp.timestamp())


@dataclass(frozen=True)
class StoredQuote(Quote):
    """A quote with the storage-assigned row id used to join indicator values."""
    id: int = -1

    @classmethod
    def from_quote(cls, quote: Quote, quote_id: int) -> "StoredQuote":
        return cls(
            timestamp=quote.timestamp,
            open=quote.open,
            high=quote.high,
            low=quote.low,
            close=quote.close,
            avg=quote.avg,
            volume=quote.volume,
            count=quote.count,
            id=quote_id,
        )


def from_epoch_seconds(seconds: int) -> datetime:
    """Convert stored epoch seconds back to a UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
