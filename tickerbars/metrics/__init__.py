"""Indicator engine: moving averages, directional movement and oscillators"""

from .calculator import MetricsCalculator
from .directional import calculate_adx, calculate_adxr, calculate_dx, calculate_true_range
from .moving_averages import calculate_emas, calculate_rmas, calculate_smas
from .oscillators import calculate_rsis, calculate_stochastics, slow_stochastic

__all__ = [
    "MetricsCalculator",
    "calculate_smas",
    "calculate_emas",
    "calculate_rmas",
    "calculate_true_range",
    "calculate_dx",
    "calculate_adx",
    "calculate_adxr",
    "calculate_stochastics",
    "slow_stochastic",
    "calculate_rsis",
]
