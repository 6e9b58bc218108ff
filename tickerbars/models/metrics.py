"""Data models for indicator snapshots"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class MetricsSnapshot:
    """Latest indicator values for a ticker"""
    ticker: str
    timestamp: Optional[datetime] = None
    last_close: Optional[float] = None
    slow_stoch: Optional[float] = None
    adx: Optional[float] = None
    adxr: Optional[float] = None
    rsi: Optional[float] = None

    def has_sufficient_data(self) -> bool:
        """Check if snapshot has the values the trend screen depends on"""
        return self.slow_stoch is not None and self.adx is not None

    def format_row(self) -> str:
        """Format the snapshot as a single report line"""
        def fmt(value: Optional[float]) -> str:
            return "-" if value is None else f"{value:.2f}"

        day = self.timestamp.date().isoformat() if self.timestamp else "-"
        return (
            f"{self.ticker:<8} {day} close={fmt(self.last_close)} "
            f"stoch={fmt(self.slow_stoch)} adx={fmt(self.adx)} "
            f"adxr={fmt(self.adxr)} rsi={fmt(self.rsi)}"
        )
