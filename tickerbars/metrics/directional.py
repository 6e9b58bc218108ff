"""Directional movement indicators: True Range, +DI/-DI, DX, ADX and ADXR"""

from collections.abc import Sequence
from typing import Optional

from ..data.models import Quote
from .moving_averages import calculate_rmas


def calculate_true_range(current: Quote, previous: Optional[Quote] = None) -> float:
    """
    Calculate True Range for a single bar

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))

    Args:
        current: Current bar
        previous: Previous bar (None for the first bar)

    Returns:
        True Range value
    """
    if previous is None:
        return current.high - current.low

    range_hl = current.high - current.low
    range_hc = abs(current.high - previous.close)
    range_lc = abs(current.low - previous.close)

    return max(range_hl, range_hc, range_lc)


def calculate_true_ranges(quotes: Sequence[Quote]) -> list[float]:
    """True ranges from the second bar onward (one per bar pair)."""
    return [
        calculate_true_range(quotes[idx], quotes[idx - 1])
        for idx in range(1, len(quotes))
    ]


def calculate_directional_movements(quotes: Sequence[Quote]) -> tuple[list[float], list[float]]:
    """
    Calculate +DM and -DM from the second bar onward.

    +DM is the high's advance when it beats the low's decline, -DM the
    reverse. The losing side (and any negative move) is zero.
    """
    pos_dms = []
    neg_dms = []
    for idx in range(1, len(quotes)):
        up = quotes[idx].high - quotes[idx - 1].high
        down = quotes[idx - 1].low - quotes[idx].low
        pos_dms.append(up if up > down and up > 0 else 0.0)
        neg_dms.append(down if down > up and down > 0 else 0.0)
    return pos_dms, neg_dms


def calculate_directional_indicators(quotes: Sequence[Quote],
                                     period: int) -> tuple[list[float], list[float]]:
    """
    Calculate +DI and -DI using Wilder smoothing of TR and DM.

    A zero ATR yields zero for both indicators on that bar.

    Returns:
        Tuple of (+DI values, -DI values), equal length, trailing aligned
    """
    pos_dms, neg_dms = calculate_directional_movements(quotes)
    atrs = calculate_rmas(calculate_true_ranges(quotes), period)
    smoothed_pos = calculate_rmas(pos_dms, period)
    smoothed_neg = calculate_rmas(neg_dms, period)

    def to_di(dm: float, atr: float) -> float:
        return 100.0 * dm / atr if atr != 0 else 0.0

    pos_dis = [to_di(dm, atr) for dm, atr in zip(smoothed_pos, atrs)]
    neg_dis = [to_di(dm, atr) for dm, atr in zip(smoothed_neg, atrs)]
    return pos_dis, neg_dis


def calculate_dx(quotes: Sequence[Quote], period: int) -> list[float]:
    """
    Directional index: 100 * |+DI - -DI| / (+DI + -DI).

    Bars where both indicators are zero have a DX of zero.
    """
    pos_dis, neg_dis = calculate_directional_indicators(quotes, period)
    dxs = []
    for pdi, ndi in zip(pos_dis, neg_dis):
        total = pdi + ndi
        dxs.append(100.0 * abs(pdi - ndi) / total if total != 0 else 0.0)
    return dxs


def calculate_adx(quotes: Sequence[Quote], di_period: int, adx_period: int) -> list[float]:
    """Average directional index: RMA of DX over ``adx_period``."""
    return calculate_rmas(calculate_dx(quotes, di_period), adx_period)


def calculate_adxr(quotes: Sequence[Quote], di_period: int, adx_period: int,
                   adxr_period: int) -> list[float]:
    """
    ADXR as used by this package: a second RMA pass over the ADX series.

    This is a double-smoothed ADX, not Wilder's lag-averaged ADXR
    ((ADX + ADX[n bars ago]) / 2).
    """
    return calculate_rmas(calculate_adx(quotes, di_period, adx_period), adxr_period)


def latest_adx(quotes: Sequence[Quote], di_period: int, adx_period: int) -> Optional[float]:
    """
    Most recent ADX value

    Returns:
        ADX value or None if insufficient data
    """
    adxs = calculate_adx(quotes, di_period, adx_period)
    return adxs[-1] if adxs else None
