"""
Request scheduler driving historical bar syncs.

Owns the full and incremental ticker queues and the outstanding-request
map. All state is mutated synchronously from event handling on a single
thread. Outstanding requests never exceed ``concurrency_limit`` through
normal dispatch, and never exceed ``concurrency_limit +
concurrency_buffer`` once reconciliation-triggered resyncs are counted.
"""

from collections import deque
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Optional

from ..config.defaults import MarketHoursParams, SyncParams
from ..data.models import Quote
from ..data.parsers import bar_to_quote
from ..errors import MalformedDataError, ProtocolViolationError, UnsupportedEventError
from ..logging.config import get_sync_logger
from ..persistence.quote_store import QuoteStore
from ..utils.time import elapsed_days, incremental_span_days, reference_time, utc_now
from .correlator import ResponseCorrelator
from .events import BarReceived, EndOfHistory, Event, Informational, RequestFailed, SessionReady
from .models import PendingRequest, ReconciliationOutcome, SyncMode, SyncSummary
from .reconciliation import ReconciliationEngine
from .session import MarketDataSession

MALFORMED_BAR_CODE = -2

logger = get_sync_logger(__name__)


class RequestScheduler:
    """Dispatches queued tickers to the session and processes its events."""

    def __init__(
        self,
        session: MarketDataSession,
        store: QuoteStore,
        params: Optional[SyncParams] = None,
        market_hours: Optional[MarketHoursParams] = None,
        force: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.store = store
        self.params = params or SyncParams()
        self.market_hours = market_hours or MarketHoursParams()
        self.force = force
        self.clock = clock
        self.logger = logger

        self.full_queue: deque[str] = deque()
        self.incremental_queue: deque[str] = deque()
        self.pending: dict[int, PendingRequest] = {}
        self.next_request_id = 1

        self.correlator = ResponseCorrelator()
        self.reconciler = ReconciliationEngine(
            store, resync_on_missing_baseline=self.params.resync_on_missing_baseline
        )
        self.summary = SyncSummary()

        self._handlers: dict[type, Callable[[Event], None]] = {
            SessionReady: self._on_session_ready,
            BarReceived: self._on_bar,
            EndOfHistory: self._on_end_of_history,
            RequestFailed: self._on_request_failed,
            Informational: self._on_informational,
        }

    @property
    def max_outstanding(self) -> int:
        return self.params.concurrency_limit + self.params.concurrency_buffer

    @property
    def is_idle(self) -> bool:
        """True when nothing is queued or outstanding."""
        return not self.pending and not self.full_queue and not self.incremental_queue

    def enqueue(self, ticker: str, mode: SyncMode) -> None:
        """Append a ticker to the queue for ``mode``."""
        queue = self.full_queue if mode == SyncMode.FULL else self.incremental_queue
        queue.append(ticker)

    def enqueue_all(self, tickers: Iterable[str], mode: SyncMode) -> None:
        for ticker in tickers:
            self.enqueue(ticker, mode)

    def fill(self) -> int:
        """
        Dispatch queued tickers until the queues drain or the limit is hit.

        Returns:
            Number of requests dispatched
        """
        dispatched = 0
        while self._dispatch_next(self.params.concurrency_limit):
            dispatched += 1
        return dispatched

    def on_complete(self, request_id: int) -> None:
        """Finish a request: advance the queue, then reconcile its bars."""
        if request_id not in self.pending:
            raise ProtocolViolationError(
                f"Completion for unknown request {request_id}",
                request_id=request_id
            )
        batch = self.correlator.on_end(request_id)
        request = self.pending.pop(request_id)
        self.summary.completed += 1
        self._dispatch_next(self.params.concurrency_limit)

        for result in self.reconciler.reconcile_batch(batch):
            if result.outcome == ReconciliationOutcome.COMMITTED:
                self.summary.quotes_committed += result.committed
            elif result.outcome == ReconciliationOutcome.RESYNC:
                self.summary.resynced += 1
                self.enqueue(result.ticker, SyncMode.FULL)
                self._dispatch_next(self.max_outstanding)
            elif result.outcome == ReconciliationOutcome.NO_BASELINE:
                self.summary.discarded += 1

        self.logger.debug("Request finished", request_id=request_id, ticker=request.ticker,
                          outstanding=len(self.pending))

    def on_error(self, request_id: int, code: int, message: str) -> None:
        """
        Abandon a request after a broker error and advance the queue.

        The ticker is not retried in this run. Errors for ids that are not
        outstanding are logged only.
        """
        request = self.pending.pop(request_id, None)
        if request is None:
            self.logger.warning("Error for untracked request", request_id=request_id,
                                code=code, message=message)
            return

        self.correlator.on_error(request_id)
        self.summary.failed += 1
        self.summary.failed_tickers.append(request.ticker)
        self.logger.error("Request failed, dropping ticker", request_id=request_id,
                          ticker=request.ticker, mode=request.mode.value,
                          code=code, message=message)
        self._dispatch_next(self.params.concurrency_limit)

    def handle_event(self, event: Event) -> None:
        """Route one session event to its handler."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise UnsupportedEventError(
                f"Unhandled session event {type(event).__name__}",
                event=event
            )
        handler(event)

    def poll_once(self) -> bool:
        """
        Process at most one session event.

        Returns:
            True if an event was processed
        """
        event = self.session.poll_event()
        if event is None:
            return False
        self.handle_event(event)
        return True

    def run(self) -> SyncSummary:
        """
        Dispatch and process events until all queued work is finished.

        Transport and protocol failures propagate and end the run.
        """
        # Handle connection events first so dispatch sees the session's ids
        while self.poll_once():
            pass
        self.fill()
        while not self.is_idle:
            if not self.poll_once():
                self.logger.debug("Waiting for session events", outstanding=len(self.pending),
                                  queued=len(self.full_queue) + len(self.incremental_queue))
                self.session.wait(self.params.poll_interval_seconds)

        self.logger.info("Sync finished", **{
            key: value for key, value in vars(self.summary).items() if key != "failed_tickers"
        })
        return self.summary

    def _dispatch_next(self, limit: int) -> bool:
        """
        Dispatch the next eligible queued ticker if under ``limit``.

        Up-to-date incremental tickers are skipped in a loop until one is
        dispatched or the queues run out.

        Returns:
            True if a request was dispatched
        """
        while len(self.pending) < limit:
            next_item = self._pop_next_ticker()
            if next_item is None:
                return False
            ticker, mode = next_item

            if mode == SyncMode.FULL:
                self._submit(ticker, mode, self.params.full_span_days)
                return True

            span_days = self._incremental_span(ticker)
            if span_days is not None:
                self._submit(ticker, mode, span_days)
                return True

        return False

    def _pop_next_ticker(self) -> Optional[tuple[str, SyncMode]]:
        """Pop the first queued ticker without an outstanding request, full queue first."""
        outstanding = {request.ticker for request in self.pending.values()}
        for queue, mode in ((self.full_queue, SyncMode.FULL),
                            (self.incremental_queue, SyncMode.INCREMENTAL)):
            for idx, ticker in enumerate(queue):
                if ticker not in outstanding:
                    del queue[idx]
                    return ticker, mode
        return None

    def _incremental_span(self, ticker: str) -> Optional[int]:
        """
        Days to request for an incremental sync, or None if nothing to request.

        A ticker without cached bars is moved to the full queue instead.
        """
        last_quote = self.store.get_last_quote(ticker)
        if last_quote is None:
            self.logger.info("No cached bars, queueing full sync", ticker=ticker)
            self.enqueue(ticker, SyncMode.FULL)
            return None

        reference = reference_time(self.clock(), self.market_hours)
        if elapsed_days(reference, last_quote.timestamp) <= 0 and not self.force:
            self.summary.skipped += 1
            self.logger.info("Skipping up-to-date ticker", ticker=ticker,
                             last_bar=last_quote.timestamp.isoformat())
            return None

        return incremental_span_days(reference, last_quote.timestamp)

    def _submit(self, ticker: str, mode: SyncMode, span_days: int) -> None:
        request_id = self.next_request_id
        self.next_request_id += 1

        request = PendingRequest(request_id=request_id, ticker=ticker, mode=mode)
        self.pending[request_id] = request
        self.correlator.register(request)
        self.summary.dispatched += 1

        as_of = reference_time(self.clock(), self.market_hours)
        exchange_hint = self.store.get_exchange_hint(ticker)
        self.logger.info("Dispatching request", request_id=request_id, ticker=ticker,
                         mode=mode.value, span_days=span_days, exchange=exchange_hint,
                         outstanding=len(self.pending))
        self.session.submit_historical_request(
            request_id,
            ticker,
            exchange_hint,
            as_of,
            span_days,
            self.params.bar_size,
        )

    def _on_session_ready(self, event: SessionReady) -> None:
        # Ids only move forward so none is ever reused within a session
        self.next_request_id = max(self.next_request_id, event.next_id)
        self.logger.info("Session ready", next_id=event.next_id)

    def _on_bar(self, event: BarReceived) -> None:
        if self.correlator.is_failed(event.request_id):
            return
        if event.request_id not in self.pending:
            raise ProtocolViolationError(
                f"Bar for unknown request {event.request_id}",
                request_id=event.request_id
            )

        try:
            quote = event.bar if isinstance(event.bar, Quote) else bar_to_quote(
                event.bar, self.market_hours
            )
        except MalformedDataError as e:
            self.on_error(event.request_id, MALFORMED_BAR_CODE, str(e))
            return

        self.correlator.on_bar(event.request_id, quote)

    def _on_end_of_history(self, event: EndOfHistory) -> None:
        if self.correlator.is_failed(event.request_id):
            return
        self.logger.debug("End of history", request_id=event.request_id,
                          range_start=event.range_start, range_end=event.range_end,
                          bars=self.correlator.buffered_count(event.request_id))
        self.on_complete(event.request_id)

    def _on_request_failed(self, event: RequestFailed) -> None:
        self.on_error(event.request_id, event.code, event.message)

    def _on_informational(self, event: Informational) -> None:
        self.logger.debug("Session notice", code=event.code, message=event.message)
