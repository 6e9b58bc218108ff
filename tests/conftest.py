"""Pytest configuration and shared fixtures."""

from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from tickerbars.data.models import Quote, StoredQuote
from tickerbars.persistence.quote_store import QuoteStore
from tickerbars.sync.events import BarReceived, EndOfHistory, RequestFailed
from tickerbars.sync.session import MarketDataSession
from tickerbars.utils.time import session_close_instant

# Monday 2024-06-10 18:00 New York, after the session has settled
AFTER_CLOSE = datetime(2024, 6, 10, 22, 0, tzinfo=timezone.utc)


def build_quote(day: date, close: float, high: Optional[float] = None,
                low: Optional[float] = None, quote_id: Optional[int] = None) -> Quote:
    high = close + 1.0 if high is None else high
    low = close - 1.0 if low is None else low
    fields = dict(
        timestamp=session_close_instant(day),
        open=close,
        high=high,
        low=low,
        close=close,
        avg=(high + low + close) / 3,
        volume=1000,
        count=100,
    )
    if quote_id is None:
        return Quote(**fields)
    return StoredQuote(id=quote_id, **fields)


@pytest.fixture
def quote_factory():
    """Build a Quote (or StoredQuote when quote_id is given) for a session date."""
    return build_quote


@pytest.fixture
def history_factory():
    """Build consecutive-day StoredQuotes from a list of closes."""
    def make(closes, start: date = date(2024, 1, 1), spread: float = 1.0):
        return [
            build_quote(start + timedelta(days=idx), close,
                        high=close + spread, low=close - spread, quote_id=idx + 1)
            for idx, close in enumerate(closes)
        ]
    return make


@pytest.fixture
def store(tmp_path) -> QuoteStore:
    """Empty quote store in a temporary directory."""
    return QuoteStore(tmp_path / "db.sqlite3")


@dataclass(frozen=True)
class ScriptedError:
    code: int
    message: str


@dataclass(frozen=True)
class Submission:
    request_id: int
    symbol: str
    exchange_hint: Optional[str]
    as_of: datetime
    span_days: int
    bar_size: str


class FakeSession(MarketDataSession):
    """
    Scripted in-memory session.

    Each submission consumes the next scripted response for its symbol: a
    list of quotes (delivered as bars plus an end marker) or a ScriptedError.
    Symbols without a script get an empty history.
    """

    def __init__(self, responses=None):
        self.responses = {symbol: deque(items) for symbol, items in (responses or {}).items()}
        self.submissions: list[Submission] = []
        self.events = deque()
        self.connected = False
        self.outstanding = 0
        self.max_outstanding = 0
        self.waits = 0

    def connect(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False

    def submit_historical_request(self, request_id, symbol, exchange_hint, as_of,
                                  span_days, bar_size="1 day") -> None:
        self.submissions.append(
            Submission(request_id, symbol, exchange_hint, as_of, span_days, bar_size)
        )
        self.outstanding += 1
        self.max_outstanding = max(self.max_outstanding, self.outstanding)

        scripted = self.responses.get(symbol)
        response = scripted.popleft() if scripted else []
        if isinstance(response, ScriptedError):
            self.events.append(RequestFailed(request_id, response.code, response.message))
            return
        for quote in response:
            self.events.append(BarReceived(request_id, quote))
        self.events.append(EndOfHistory(request_id, "", ""))

    def poll_event(self):
        if not self.events:
            return None
        event = self.events.popleft()
        if isinstance(event, (EndOfHistory, RequestFailed)):
            self.outstanding -= 1
        return event

    def wait(self, seconds: float) -> None:
        self.waits += 1

    def spans_for(self, symbol: str) -> list[int]:
        return [s.span_days for s in self.submissions if s.symbol == symbol]


@pytest.fixture
def fake_session_factory():
    return FakeSession
