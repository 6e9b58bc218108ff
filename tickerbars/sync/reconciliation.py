"""
Reconciliation of fetched bars against the quote store.

Full syncs are committed as they are. Incremental syncs are validated by
comparing the earliest fetched bar with the stored bar at the same
timestamp: a differing close means upstream revised the ticker's history
(for example a split or dividend adjustment), so the batch is discarded
and the ticker needs a full resync.
"""

from collections.abc import Sequence

from ..data.models import Quote
from ..logging.config import get_sync_logger
from ..persistence.quote_store import QuoteStore
from .models import (
    CompletedBatch,
    ReconciliationOutcome,
    ReconciliationResult,
    SyncMode,
)

logger = get_sync_logger(__name__)


class ReconciliationEngine:
    """Decides per completed request whether fetched bars may be committed."""

    def __init__(self, store: QuoteStore, resync_on_missing_baseline: bool = False):
        self.store = store
        self.resync_on_missing_baseline = resync_on_missing_baseline
        self.logger = logger

    def reconcile_batch(self, batch: CompletedBatch) -> list[ReconciliationResult]:
        """Reconcile every ticker in a completed request."""
        mode = batch.request.mode
        if not batch.quotes_by_ticker:
            self.logger.warning("Request completed without bars",
                                request_id=batch.request.request_id,
                                ticker=batch.request.ticker, mode=mode.value)
            return [ReconciliationResult(batch.request.ticker, mode, ReconciliationOutcome.EMPTY)]

        return [
            self.reconcile(ticker, mode, quotes)
            for ticker, quotes in batch.quotes_by_ticker.items()
        ]

    def reconcile(self, ticker: str, mode: SyncMode,
                  quotes: Sequence[Quote]) -> ReconciliationResult:
        """
        Commit or reject one ticker's fetched bars.

        Args:
            ticker: Ticker the bars belong to
            mode: Sync mode of the request that fetched them
            quotes: Fetched bars in any order

        Returns:
            The reconciliation decision
        """
        if not quotes:
            return ReconciliationResult(ticker, mode, ReconciliationOutcome.EMPTY)

        ordered = sorted(quotes, key=lambda q: q.timestamp)

        if mode == SyncMode.INCREMENTAL:
            first = ordered[0]
            cached = self.store.get_quote_at(ticker, first.epoch_seconds)

            if cached is None:
                outcome = (ReconciliationOutcome.RESYNC if self.resync_on_missing_baseline
                           else ReconciliationOutcome.NO_BASELINE)
                self.logger.warning("No stored bar to validate incremental batch against",
                                    ticker=ticker, timestamp=first.timestamp.isoformat(),
                                    bars=len(ordered), outcome=outcome.value)
                return ReconciliationResult(ticker, mode, outcome)

            if cached.close != first.close:
                self.logger.info("Upstream revised history, full resync required",
                                 ticker=ticker, timestamp=first.timestamp.isoformat(),
                                 cached_close=cached.close, fetched_close=first.close)
                return ReconciliationResult(ticker, mode, ReconciliationOutcome.RESYNC)

        committed = self.store.upsert_quotes(ticker, ordered)
        self.logger.info("Bars committed", ticker=ticker, mode=mode.value, bars=committed)
        return ReconciliationResult(ticker, mode, ReconciliationOutcome.COMMITTED, committed)
