"""
Main job coordinator.

Wires configuration, storage, the market-data session and the indicator
and screening passes together for the command line jobs:
Ticker list → Sync → Store → Metrics → Trend screen.
"""

from collections.abc import Iterable
from typing import Optional

import structlog

from .config.defaults import AppConfig, ScreenParams, get_default_config
from .metrics.batch import recompute_metrics
from .persistence.quote_store import QuoteStore
from .screening.trend import ScreenResult, TrendScreener
from .sync.ib_session import IBSession
from .sync.models import SyncMode, SyncSummary
from .sync.scheduler import RequestScheduler
from .sync.session import MarketDataSession

logger = structlog.get_logger(__name__)


def read_tickers(lines: Iterable[str]) -> list[str]:
    """
    Parse a newline-delimited ticker list.

    Blank lines and ``#`` comments are ignored; tickers are upper-cased
    and de-duplicated keeping first occurrence order.
    """
    tickers: list[str] = []
    seen = set()
    for line in lines:
        ticker = line.split("#", 1)[0].strip().upper()
        if not ticker or ticker in seen:
            continue
        seen.add(ticker)
        tickers.append(ticker)
    return tickers


class TickerBarsEngine:
    """Coordinator for sync, metric recomputation and trend screening jobs."""

    def __init__(self, config: Optional[AppConfig] = None,
                 store: Optional[QuoteStore] = None) -> None:
        self.config = config or get_default_config()
        self.store = store or QuoteStore(
            self.config.storage.db_path,
            timeout=self.config.storage.timeout_seconds
        )
        self.logger = logger

    def create_session(self) -> MarketDataSession:
        return IBSession(self.config.session)

    def run_sync(self, tickers: Iterable[str], mode: SyncMode, force: bool = False,
                 session: Optional[MarketDataSession] = None) -> SyncSummary:
        """
        Fetch and reconcile daily bars for the given tickers.

        Args:
            tickers: Tickers to sync
            mode: Full or incremental sync
            force: Request bars even for tickers that look up to date
            session: Market-data session, an IB session by default

        Returns:
            Counters of the run

        Raises:
            SystemFailureError: On transport, protocol or storage failures
        """
        tickers = list(tickers)
        session = session or self.create_session()
        self.logger.info("Starting sync", mode=mode.value, tickers=len(tickers), force=force)

        with session:
            scheduler = RequestScheduler(
                session,
                self.store,
                params=self.config.sync,
                market_hours=self.config.market_hours,
                force=force,
            )
            scheduler.enqueue_all(tickers, mode)
            summary = scheduler.run()

        if summary.failed_tickers:
            self.logger.warning("Some tickers failed to sync", tickers=summary.failed_tickers)
        return summary

    def calculate_metrics(self, tickers: Optional[Iterable[str]] = None,
                          workers: int = 4) -> dict[str, int]:
        """
        Recompute and store every indicator series.

        Args:
            tickers: Tickers to process, every stored ticker when None or empty
            workers: Worker threads

        Returns:
            Values written per ticker
        """
        selected = list(tickers or []) or self.store.list_tickers()
        self.logger.info("Recomputing metrics", tickers=len(selected), workers=workers)
        results = recompute_metrics(self.store, selected, self.config.indicators, workers)
        self.logger.info("Metrics recomputed", tickers=len(results),
                         skipped=len(selected) - len(results),
                         values=sum(results.values()))
        return results

    def trend_candidates(self, tickers: Iterable[str],
                         screen_params: Optional[ScreenParams] = None) -> list[ScreenResult]:
        """Screen tickers against the EMA trend rules."""
        tickers = list(tickers)
        params = screen_params or self.config.screen
        screener = TrendScreener(params, self.config.indicators)
        histories = self.store.get_quotes_batch(tickers)
        results = screener.screen_many(histories, tickers)
        self.logger.info("Trend screen finished", tickers=len(tickers), reported=len(results),
                         loose=params.loose, force=params.force)
        return results

    def set_exchange(self, ticker: str, exchange: Optional[str]) -> None:
        """Record or clear the primary exchange used when requesting a ticker."""
        ticker = ticker.strip().upper()
        exchange = exchange.strip().upper() if exchange else None
        self.store.set_exchange_hint(ticker, exchange)
        self.logger.info("Exchange hint updated", ticker=ticker, exchange=exchange)
