"""
Trend screening module.

Classifies tickers by EMA ordering and reports pullback candidates.
"""
from .trend import ScreenResult, TrendDirection, TrendScreener

__all__ = ["ScreenResult", "TrendDirection", "TrendScreener"]
