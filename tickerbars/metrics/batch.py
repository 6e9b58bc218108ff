"""
Bulk recomputation of stored indicator series.

Tickers are partitioned across worker threads. Each worker reads and
computes on its own connection and takes the store's write lock only while
committing a series, so the read and compute phases run in parallel.
"""

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

import structlog

from ..config.defaults import IndicatorParams
from ..errors import DataQualityError, PersistenceError
from ..persistence.quote_store import QuoteStore
from .calculator import MetricsCalculator

logger = structlog.get_logger(__name__)


def recompute_ticker(store: QuoteStore, calculator: MetricsCalculator, ticker: str) -> int:
    """
    Recompute and store every indicator series for one ticker.

    Returns:
        Number of indicator values written
    """
    quotes = store.get_all_quotes(ticker)
    if not quotes:
        logger.warning("No quotes stored, skipping metrics", ticker=ticker)
        return 0

    written = 0
    for series_name, values in calculator.calculate_series(quotes).items():
        if not values:
            logger.debug("Insufficient history for series", ticker=ticker,
                         series=series_name, quotes=len(quotes))
            continue
        written += store.upsert_indicator_values(series_name, values)

    logger.info("Metrics recomputed", ticker=ticker, quotes=len(quotes), values=written)
    return written


def _recompute_partition(store: QuoteStore, calculator: MetricsCalculator,
                         tickers: Sequence[str]) -> dict[str, int]:
    results = {}
    for ticker in tickers:
        try:
            results[ticker] = recompute_ticker(store, calculator, ticker)
        except (DataQualityError, PersistenceError) as e:
            logger.error("Metrics recomputation failed", ticker=ticker, error=str(e))
    return results


def recompute_metrics(store: QuoteStore, tickers: Sequence[str],
                      params: Optional[IndicatorParams] = None,
                      workers: int = 4) -> dict[str, int]:
    """
    Recompute indicator series for many tickers in parallel.

    Args:
        store: Quote store shared by the workers
        tickers: Tickers to recompute
        params: Indicator parameters
        workers: Number of worker threads

    Returns:
        Values written per successfully processed ticker
    """
    calculator = MetricsCalculator(params)
    workers = max(1, min(workers, len(tickers)))
    partitions = [list(tickers[idx::workers]) for idx in range(workers)]

    results: dict[str, int] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="metrics") as executor:
        futures = [
            executor.submit(_recompute_partition, store, calculator, partition)
            for partition in partitions if partition
        ]
        for future in as_completed(futures):
            results.update(future.result())

    return results
