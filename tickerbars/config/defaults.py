"""Default configuration parameters for bar synchronization and screening."""

from dataclasses import dataclass, field
from datetime import time
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class SessionParams:
    """Market-data session connection parameters."""
    host: str = "127.0.0.1"
    port: int = 4001                                # 4001 gateway, 7497 TWS
    client_id: int = 7274605
    connect_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class SyncParams:
    """Request scheduling parameters."""
    concurrency_limit: int = 40                     # Max outstanding requests
    concurrency_buffer: int = 10                    # Extra room for resync requests
    poll_interval_seconds: float = 2.0              # Sleep when no event is ready
    full_span_days: int = 730                       # History fetched by a full sync
    bar_size: str = "1 day"
    resync_on_missing_baseline: bool = False        # Full resync instead of dropping


@dataclass(frozen=True)
class MarketHoursParams:
    """Exchange session hours used for reference time and bar timestamps."""
    timezone: str = "America/New_York"
    session_open: time = time(9, 30)
    session_close: time = time(16, 0)               # Bar timestamps normalize here
    settle_until: time = time(16, 30)               # Daily bar is final after this


@dataclass(frozen=True)
class IndicatorParams:
    """Indicator series recomputed by calculate-metrics."""
    sma_windows: tuple[int, ...] = (20, 50, 200)
    ema_windows: tuple[int, ...] = (8, 21, 34, 89)
    di_period: int = 13
    adx_period: int = 13
    adxr_period: int = 13
    rsi_period: int = 14
    stoch_k_len: int = 8
    stoch_k_smoothing: int = 3
    stoch_d_smoothing: int = 3


@dataclass(frozen=True)
class ScreenParams:
    """Trend candidate screening parameters."""
    loose: bool = False                             # Only compare EMA8 with EMA34
    ema_period: int = 42                            # Rows that must hold the ordering
    stoch_k_len: int = 8
    stoch_k_smoothing: int = 3
    stoch_d_smoothing: int = 3
    stoch_threshold: float = 10.0                   # Distance from 50
    adx_period: int = 13
    adx_floor: float = 20.0
    force: bool = False                             # Report every ticker


@dataclass(frozen=True)
class StorageParams:
    """Persistent store parameters."""
    db_path: Path = field(default_factory=lambda: Path.home() / ".local" / "tickerbars" / "db.sqlite3")
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False
    include_caller: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    session: SessionParams
    sync: SyncParams
    market_hours: MarketHoursParams
    indicators: IndicatorParams
    screen: ScreenParams
    storage: StorageParams
    logging: LoggingParams
    config_path: Optional[Path] = None


def get_default_config() -> AppConfig:
    """Get the default configuration instance."""
    return AppConfig(
        session=SessionParams(),
        sync=SyncParams(),
        market_hours=MarketHoursParams(),
        indicators=IndicatorParams(),
        screen=ScreenParams(),
        storage=StorageParams(),
        logging=LoggingParams(),
    )
