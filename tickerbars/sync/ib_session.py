"""
Interactive Brokers market-data session built on ib_async.

ib_async resolves historical requests as awaitables. This adapter turns
them back into the per-request event stream the scheduler consumes: each
finished request yields its bars followed by an EndOfHistory, and broker
errors tied to an outstanding request yield a RequestFailed.
"""

import asyncio
import functools
from collections import deque
from datetime import datetime
from typing import Optional

import structlog
from ib_async import IB, Stock, util

from ..config.defaults import SessionParams
from ..errors import TransportError
from ..utils.time import duration_string
from .events import BarReceived, EndOfHistory, Event, Informational, RequestFailed, SessionReady
from .session import MarketDataSession

# TWS uses 2100-2199 for connection and data farm status notices
WARNING_CODES = range(2100, 2200)
TASK_FAILURE_CODE = -1

logger = structlog.get_logger(__name__)


def us_stock(symbol: str, primary_exchange: Optional[str] = None) -> Stock:
    """SMART-routed USD stock contract with an optional primary exchange."""
    return Stock(symbol, "SMART", "USD", primaryExchange=primary_exchange or "")


class IBSession(MarketDataSession):
    """Historical daily bar session against TWS or IB Gateway."""

    def __init__(self, params: Optional[SessionParams] = None, ib: Optional[IB] = None):
        self.params = params or SessionParams()
        self.ib = ib if ib is not None else IB()
        self.logger = logger.bind(host=self.params.host, port=self.params.port)
        self._events: deque[Event] = deque()
        self._requests_by_symbol: dict[str, int] = {}
        self._failed: set[int] = set()

    def connect(self) -> None:
        try:
            self.ib.connect(
                self.params.host,
                self.params.port,
                clientId=self.params.client_id,
                timeout=self.params.connect_timeout_seconds,
            )
        except (OSError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"Could not connect to {self.params.host}:{self.params.port}: {e}",
                host=self.params.host,
                port=self.params.port
            ) from e

        self.ib.errorEvent += self._on_error
        self.logger.info("Connected to market-data session", client_id=self.params.client_id)
        self._events.append(SessionReady(next_id=self.ib.client.getReqId()))

    def disconnect(self) -> None:
        if self.ib.isConnected():
            self.ib.errorEvent -= self._on_error
            self.ib.disconnect()
            self.logger.info("Disconnected from market-data session")

    def submit_historical_request(
        self,
        request_id: int,
        symbol: str,
        exchange_hint: Optional[str],
        as_of: datetime,
        span_days: int,
        bar_size: str = "1 day"
    ) -> None:
        contract = us_stock(symbol, exchange_hint)
        duration = duration_string(span_days)
        self.logger.debug("Requesting history", request_id=request_id, ticker=symbol,
                          duration=duration, as_of=as_of.isoformat())

        self._requests_by_symbol[symbol] = request_id
        coro = self.ib.reqHistoricalDataAsync(
            contract,
            endDateTime=as_of,
            durationStr=duration,
            barSizeSetting=bar_size,
            whatToShow="TRADES",
            useRTH=True,
            formatDate=1,
        )
        task = util.getLoop().create_task(coro)
        task.add_done_callback(functools.partial(self._on_history, request_id, symbol))

    def poll_event(self) -> Optional[Event]:
        if not self._events:
            if not self.ib.isConnected():
                raise TransportError(
                    "Market-data session disconnected",
                    host=self.params.host,
                    port=self.params.port
                )
            # Give the event loop a chance to process incoming messages
            self.ib.sleep(0)
        return self._events.popleft() if self._events else None

    def wait(self, seconds: float) -> None:
        self.ib.sleep(seconds)

    def _on_history(self, request_id: int, symbol: str, task: asyncio.Task) -> None:
        if self._requests_by_symbol.get(symbol) == request_id:
            del self._requests_by_symbol[symbol]

        if request_id in self._failed:
            # Already reported through the error event
            self._failed.discard(request_id)
            return

        if task.cancelled():
            self._events.append(RequestFailed(request_id, TASK_FAILURE_CODE, "request cancelled"))
            return

        exc = task.exception()
        if exc is not None:
            self._events.append(RequestFailed(request_id, TASK_FAILURE_CODE, str(exc)))
            return

        bars = list(task.result() or [])
        for bar in bars:
            self._events.append(BarReceived(request_id=request_id, bar=bar))

        range_start = str(bars[0].date) if bars else ""
        range_end = str(bars[-1].date) if bars else ""
        self._events.append(EndOfHistory(request_id, range_start, range_end))

    def _on_error(self, req_id: int, error_code: int, error_string: str, contract=None) -> None:
        request_id = None
        if contract is not None and error_code not in WARNING_CODES:
            request_id = self._requests_by_symbol.get(contract.symbol)

        if request_id is None:
            self._events.append(Informational(code=error_code, message=error_string))
            return

        self._failed.add(request_id)
        self._events.append(RequestFailed(request_id, error_code, error_string))
