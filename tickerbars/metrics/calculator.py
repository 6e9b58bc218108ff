"""Metrics calculator coordinating all indicator series for a ticker"""

from collections.abc import Sequence
from typing import Optional

from ..config.defaults import IndicatorParams
from ..data.models import StoredQuote
from ..models.metrics import MetricsSnapshot
from .directional import calculate_adx, calculate_adxr
from .moving_averages import align_to_ids, ema_series, sma_series
from .oscillators import calculate_rsis, calculate_slow_stochastics, slow_stochastic


class MetricsCalculator:
    """
    Computes every configured indicator series from a quote history.

    Series are keyed by name (``sma_20``, ``ema_8``, ``adx``, ``adxr``,
    ``rsi``, ``stoch_k``, ``stoch_d``) and hold ``(quote_id, value)`` pairs.
    A series with too little history is an empty list.
    """

    def __init__(self, params: Optional[IndicatorParams] = None):
        self.params = params or IndicatorParams()

    @property
    def series_names(self) -> list[str]:
        names = [f"sma_{w}" for w in self.params.sma_windows]
        names += [f"ema_{w}" for w in self.params.ema_windows]
        names += ["adx", "adxr", "rsi", "stoch_k", "stoch_d"]
        return names

    def calculate_series(self, quotes: Sequence[StoredQuote]) -> dict[str, list[tuple[int, float]]]:
        """
        Calculate all indicator series for one ticker.

        Args:
            quotes: The ticker's quotes in ascending timestamp order

        Returns:
            Mapping of series name to id-keyed values
        """
        p = self.params
        series: dict[str, list[tuple[int, float]]] = {}

        for window in p.sma_windows:
            series[f"sma_{window}"] = sma_series(quotes, window)
        for window in p.ema_windows:
            series[f"ema_{window}"] = ema_series(quotes, window)

        series["adx"] = align_to_ids(quotes, calculate_adx(quotes, p.di_period, p.adx_period))
        series["adxr"] = align_to_ids(
            quotes, calculate_adxr(quotes, p.di_period, p.adx_period, p.adxr_period)
        )
        series["rsi"] = align_to_ids(quotes, calculate_rsis(quotes, p.rsi_period))

        ks, ds = calculate_slow_stochastics(
            quotes, p.stoch_k_len, p.stoch_k_smoothing, p.stoch_d_smoothing
        )
        series["stoch_k"] = align_to_ids(quotes, ks)
        series["stoch_d"] = align_to_ids(quotes, ds)

        return series

    def snapshot(self, ticker: str, quotes: Sequence[StoredQuote],
                 k_len: Optional[int] = None, k_smoothing: Optional[int] = None,
                 d_smoothing: Optional[int] = None,
                 adx_period: Optional[int] = None) -> MetricsSnapshot:
        """
        Latest indicator values for a ticker.

        Stochastic and ADX periods default to the configured ones and can be
        overridden per call, as the trend screen does.
        """
        p = self.params
        if adx_period is None:
            di_period, adx_period = p.di_period, p.adx_period
        else:
            # A single override drives both the DI and ADX smoothing
            di_period = adx_period

        snapshot = MetricsSnapshot(ticker=ticker)
        if not quotes:
            return snapshot

        snapshot.timestamp = quotes[-1].timestamp
        snapshot.last_close = quotes[-1].close
        snapshot.slow_stoch = slow_stochastic(
            quotes,
            k_len or p.stoch_k_len,
            k_smoothing or p.stoch_k_smoothing,
            d_smoothing or p.stoch_d_smoothing,
        )

        adxs = calculate_adx(quotes, di_period, adx_period)
        snapshot.adx = adxs[-1] if adxs else None
        adxrs = calculate_adxr(quotes, di_period, adx_period, p.adxr_period)
        snapshot.adxr = adxrs[-1] if adxrs else None

        rsis = calculate_rsis(quotes, p.rsi_period)
        snapshot.rsi = rsis[-1] if rsis else None

        return snapshot
