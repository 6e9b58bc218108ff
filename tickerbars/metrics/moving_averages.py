"""
SMA, EMA and RMA (Wilder) moving averages.

A window of size ``w`` over ``n`` values yields ``max(0, n - w + 1)``
outputs, the first aligned with the ``w``-th input. A window larger than
the input yields an empty list rather than a partial window.
"""

from collections.abc import Sequence

from ..data.models import StoredQuote


def check_window(window: int) -> None:
    if window < 1:
        raise ValueError(f"Window must be a positive integer, got {window}")


def calculate_smas(values: Sequence[float], window: int) -> list[float]:
    """
    Simple moving averages using a running sum.

    Args:
        values: Values in chronological order
        window: Number of values per average

    Returns:
        One average per complete window
    """
    check_window(window)
    if len(values) < window:
        return []

    total = sum(values[:window])
    smas = [total / window]
    for drop_idx, value in enumerate(values[window:]):
        total += value - values[drop_idx]
        smas.append(total / window)
    return smas


def calculate_rmas(values: Sequence[float], period: int) -> list[float]:
    """
    Wilder's moving average (EMA with alpha = 1 / period).

    Seeded with the simple average of the first ``period`` values.
    """
    check_window(period)
    if len(values) < period:
        return []

    avg = sum(values[:period]) / period
    alpha = 1.0 / period
    rmas = [avg]
    for value in values[period:]:
        avg += (value - avg) * alpha
        rmas.append(avg)
    return rmas


def calculate_emas(values: Sequence[float], window: int) -> list[float]:
    """
    Exponential moving averages with an expanding-window warm-up.

    The first value is taken as a one-value average. Each following value up
    to the window boundary is folded in with smoothing ``2 / (k + 1)``, where
    ``k`` is the number of values seen so far, so the seed converges toward a
    true average before the first output. After that the steady smoothing
    ``2 / (window + 1)`` applies.
    """
    check_window(window)
    if len(values) < window:
        return []

    avg = values[0]
    for seen, value in enumerate(values[1:window], start=2):
        avg += (value - avg) * (2.0 / (seen + 1))

    smoothing = 2.0 / (window + 1)
    emas = [avg]
    for value in values[window:]:
        avg += (value - avg) * smoothing
        emas.append(avg)
    return emas


def align_to_ids(quotes: Sequence[StoredQuote], values: Sequence[float]) -> list[tuple[int, float]]:
    """
    Pair trailing-aligned values with the ids of the quotes they end on.

    Every indicator output ends on the last quote, so the ``i``-th of ``m``
    values belongs to quote ``n - m + i``.
    """
    offset = len(quotes) - len(values)
    if offset < 0:
        raise ValueError("More values than quotes to align them with")
    return [(quotes[offset + idx].id, value) for idx, value in enumerate(values)]


def closes(quotes: Sequence[StoredQuote]) -> list[float]:
    return [q.close for q in quotes]


def sma_series(quotes: Sequence[StoredQuote], window: int) -> list[tuple[int, float]]:
    """SMA of closes keyed by quote id."""
    return align_to_ids(quotes, calculate_smas(closes(quotes), window))


def ema_series(quotes: Sequence[StoredQuote], window: int) -> list[tuple[int, float]]:
    """EMA of closes keyed by quote id."""
    return align_to_ids(quotes, calculate_emas(closes(quotes), window))


def rma_series(quotes: Sequence[StoredQuote], period: int) -> list[tuple[int, float]]:
    """RMA of closes keyed by quote id."""
    return align_to_ids(quotes, calculate_rmas(closes(quotes), period))
