"""Stochastic oscillator and RSI calculations"""

from collections.abc import Sequence
from typing import Optional

from ..data.models import Quote
from .moving_averages import check_window, calculate_rmas, calculate_smas

FLAT_RANGE_STOCHASTIC = 50.0


def calculate_stochastics(quotes: Sequence[Quote], k_len: int) -> list[float]:
    """
    Fast stochastic %K over a ``k_len`` bar window ending at each bar.

    %K = 100 * (close - lowest low) / (highest high - lowest low)

    A window with no range (highest high equals lowest low) reports 50.
    """
    check_window(k_len)
    if len(quotes) < k_len:
        return []

    stochs = []
    for end in range(k_len, len(quotes) + 1):
        window = quotes[end - k_len:end]
        hi = max(q.high for q in window)
        lo = min(q.low for q in window)
        close = quotes[end - 1].close
        if hi == lo:
            stochs.append(FLAT_RANGE_STOCHASTIC)
        else:
            stochs.append(100.0 * (close - lo) / (hi - lo))
    return stochs


def calculate_slow_stochastics(quotes: Sequence[Quote], k_len: int, k_smoothing: int,
                               d_smoothing: int) -> tuple[list[float], list[float]]:
    """
    Slow stochastic lines.

    Returns:
        Tuple of (smoothed %K, %D) where smoothed %K = SMA(%K, k_smoothing)
        and %D = SMA(smoothed %K, d_smoothing)
    """
    ks = calculate_smas(calculate_stochastics(quotes, k_len), k_smoothing)
    ds = calculate_smas(ks, d_smoothing)
    return ks, ds


def slow_stochastic(quotes: Sequence[Quote], k_len: int, k_smoothing: int,
                    d_smoothing: int) -> Optional[float]:
    """
    Latest slow stochastic value (last %D)

    Returns:
        Slow stochastic or None if insufficient data
    """
    _, ds = calculate_slow_stochastics(quotes, k_len, k_smoothing, d_smoothing)
    return ds[-1] if ds else None


def calculate_rsis(quotes: Sequence[Quote], period: int) -> list[float]:
    """
    Relative strength index using Wilder smoothing of gains and losses.

    RSI is 100 when the smoothed loss is zero and 0 when the smoothed gain
    is zero.
    """
    gains = []
    losses = []
    for idx in range(1, len(quotes)):
        change = quotes[idx].close - quotes[idx - 1].close
        gains.append(max(change, 0.0))
        losses.append(max(-change, 0.0))

    ups = calculate_rmas(gains, period)
    downs = calculate_rmas(losses, period)

    rsis = []
    for up, down in zip(ups, downs):
        if down == 0:
            rsis.append(100.0)
        elif up == 0:
            rsis.append(0.0)
        else:
            rsis.append(100.0 - 100.0 / (1.0 + up / down))
    return rsis


def latest_rsi(quotes: Sequence[Quote], period: int) -> Optional[float]:
    rsis = calculate_rsis(quotes, period)
    return rsis[-1] if rsis else None
