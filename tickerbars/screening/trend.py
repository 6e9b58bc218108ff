"""
EMA trend classification and candidate screening.

A ticker is in an uptrend when EMA8 > EMA21 > EMA34 > EMA89 holds on every
one of the last ``ema_period`` bars, and in a downtrend when the reverse
holds. Loose mode only compares EMA8 with EMA34. Trending tickers are
reported when the slow stochastic shows a pullback against the trend and
ADX confirms trend strength.

EMAs are recomputed from the quote history rather than read from the stored
ema_* series, so screening does not depend on calculate-metrics having run.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from ..config.defaults import IndicatorParams, ScreenParams
from ..data.models import StoredQuote
from ..metrics.calculator import MetricsCalculator
from ..metrics.moving_averages import calculate_emas, closes
from ..models.metrics import MetricsSnapshot

TREND_EMA_WINDOWS = (8, 21, 34, 89)

logger = structlog.get_logger(__name__)


class TrendDirection(str, Enum):
    """EMA trend classification."""
    BULL = "bull"
    BEAR = "bear"
    NONE = "none"


@dataclass(frozen=True)
class EmaRow:
    """Aligned EMA values for one bar."""
    ema8: float
    ema21: float
    ema34: float
    ema89: float


@dataclass(frozen=True)
class ScreenResult:
    """Outcome of screening one ticker."""
    ticker: str
    trend: TrendDirection
    is_candidate: bool
    metrics: MetricsSnapshot

    def format_row(self) -> str:
        return f"{self.trend.value:<5} {self.metrics.format_row()}"


def ema_rows(quotes: Sequence[StoredQuote]) -> list[EmaRow]:
    """
    Build aligned EMA rows from a quote history.

    Rows exist only for bars where all four EMAs are defined, i.e. the last
    ``n - 88`` bars.
    """
    values = closes(quotes)
    series = [calculate_emas(values, window) for window in TREND_EMA_WINDOWS]
    length = min(len(s) for s in series)
    if length == 0:
        return []
    trimmed = [s[len(s) - length:] for s in series]
    return [EmaRow(*row) for row in zip(*trimmed)]


def is_bullish(row: EmaRow, loose: bool = False) -> bool:
    if loose:
        return row.ema8 > row.ema34
    return row.ema8 > row.ema21 > row.ema34 > row.ema89


def is_bearish(row: EmaRow, loose: bool = False) -> bool:
    if loose:
        return row.ema8 < row.ema34
    return row.ema8 < row.ema21 < row.ema34 < row.ema89


def classify_trend(rows: Sequence[EmaRow], loose: bool = False) -> TrendDirection:
    """
    Classify a window of EMA rows.

    Every row must satisfy the ordering. An empty window has no trend.
    """
    if not rows:
        return TrendDirection.NONE
    if all(is_bullish(row, loose) for row in rows):
        return TrendDirection.BULL
    if all(is_bearish(row, loose) for row in rows):
        return TrendDirection.BEAR
    return TrendDirection.NONE


def is_candidate(trend: TrendDirection, slow_stoch: Optional[float], adx: Optional[float],
                 stoch_threshold: float, adx_floor: float) -> bool:
    """
    Check the pullback and strength conditions for a classified ticker.

    Uptrends need an oversold stochastic (<= 50 - threshold), downtrends an
    overbought one (>= 50 + threshold). Both need ADX above the floor.
    """
    if slow_stoch is None or adx is None or adx <= adx_floor:
        return False
    if trend == TrendDirection.BULL:
        return slow_stoch <= 50.0 - stoch_threshold
    if trend == TrendDirection.BEAR:
        return slow_stoch >= 50.0 + stoch_threshold
    return False


class TrendScreener:
    """Screens quote histories against the EMA trend rules."""

    def __init__(self, params: Optional[ScreenParams] = None,
                 indicator_params: Optional[IndicatorParams] = None):
        self.params = params or ScreenParams()
        self.calculator = MetricsCalculator(indicator_params)

    def screen(self, ticker: str, quotes: Sequence[StoredQuote]) -> Optional[ScreenResult]:
        """
        Screen one ticker.

        Returns:
            ScreenResult, or None when there is not enough history to fill
            ``ema_period`` EMA rows and compute the stochastic and ADX
        """
        p = self.params
        rows = ema_rows(quotes)
        if len(rows) < p.ema_period:
            logger.info("Insufficient history for trend screen", ticker=ticker,
                        quotes=len(quotes), ema_rows=len(rows), required=p.ema_period)
            return None

        metrics = self.calculator.snapshot(
            ticker,
            quotes,
            k_len=p.stoch_k_len,
            k_smoothing=p.stoch_k_smoothing,
            d_smoothing=p.stoch_d_smoothing,
            adx_period=p.adx_period,
        )
        if not metrics.has_sufficient_data():
            logger.info("Insufficient history for stochastic or ADX", ticker=ticker,
                        quotes=len(quotes))
            return None

        trend = classify_trend(rows[-p.ema_period:], p.loose)
        candidate = is_candidate(trend, metrics.slow_stoch, metrics.adx,
                                 p.stoch_threshold, p.adx_floor)
        return ScreenResult(ticker=ticker, trend=trend, is_candidate=candidate, metrics=metrics)

    def screen_many(self, histories: dict[str, Sequence[StoredQuote]],
                    tickers: Iterable[str]) -> list[ScreenResult]:
        """
        Screen tickers in the given order and keep the ones to report.

        With ``force`` every screenable ticker is reported regardless of
        its trend and candidate status.
        """
        reported = []
        for ticker in tickers:
            quotes = histories.get(ticker, [])
            if not quotes:
                logger.warning("No quotes stored for ticker", ticker=ticker)
                continue
            result = self.screen(ticker, quotes)
            if result is None:
                continue
            if result.is_candidate or self.params.force:
                reported.append(result)
        return reported
