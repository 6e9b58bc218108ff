"""SQLite persistence layer for daily quotes and derived indicator series."""

import re
import sqlite3
import threading
from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

import structlog

from ..data.models import Quote, StoredQuote, from_epoch_seconds
from ..errors import PersistenceError

SERIES_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

QUOTE_COLUMNS = "id, timestamp, open, high, low, close, avg, volume, count"

logger = structlog.get_logger(__name__)


class QuoteStore:
    """
    SQLite-backed quote store.

    Every operation opens its own connection, so a store instance can be
    shared between worker threads. Writes are serialized by a lock that is
    held only for the duration of a single transaction.
    """

    def __init__(self, db_path: Union[str, Path], timeout: float = 30.0):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.logger = logger.bind(db_path=str(self.db_path))
        self._write_lock = threading.Lock()
        self._known_series: set[str] = set()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Cannot create database directory: {e}",
                operation="init",
                target=str(self.db_path.parent)
            ) from e

        with self._write_lock, self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS daily (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ticker TEXT NOT NULL,
                    timestamp INTEGER NOT NULL,
                    open REAL NOT NULL,
                    high REAL NOT NULL,
                    low REAL NOT NULL,
                    close REAL NOT NULL,
                    avg REAL NOT NULL,
                    volume INTEGER NOT NULL,
                    count INTEGER NOT NULL
                )
            """)

            conn.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS daily_ticker_timestamp
                ON daily (ticker, timestamp)
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS ticker_exchange (
                    ticker TEXT PRIMARY KEY NOT NULL,
                    primary_exchange TEXT
                )
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", error=str(e))
            raise PersistenceError(
                f"Database error: {e}",
                operation="sqlite",
                target=str(self.db_path)
            ) from e
        finally:
            if conn:
                conn.close()

    def get_last_quote(self, ticker: str) -> Optional[StoredQuote]:
        """Get the most recent stored quote for a ticker."""
        with self._get_connection() as conn:
            row = conn.execute(f"""
                SELECT {QUOTE_COLUMNS} FROM daily
                WHERE ticker = ?
                ORDER BY timestamp DESC
                LIMIT 1
            """, (ticker,)).fetchone()

        return self._row_to_stored_quote(row) if row else None

    def get_quote_at(self, ticker: str, timestamp: int) -> Optional[StoredQuote]:
        """Get the stored quote for a ticker at an exact epoch-second timestamp."""
        with self._get_connection() as conn:
            row = conn.execute(f"""
                SELECT {QUOTE_COLUMNS} FROM daily
                WHERE ticker = ? AND timestamp = ?
            """, (ticker, timestamp)).fetchone()

        return self._row_to_stored_quote(row) if row else None

    def get_all_quotes(self, ticker: str) -> list[StoredQuote]:
        """Get all stored quotes for a ticker in ascending timestamp order."""
        with self._get_connection() as conn:
            rows = conn.execute(f"""
                SELECT {QUOTE_COLUMNS} FROM daily
                WHERE ticker = ?
                ORDER BY timestamp ASC
            """, (ticker,)).fetchall()

        return [self._row_to_stored_quote(row) for row in rows]

    def get_quotes_batch(self, tickers: Sequence[str]) -> dict[str, list[StoredQuote]]:
        """Get ascending quote histories for several tickers in one query."""
        if not tickers:
            return {}

        placeholders = ",".join("?" for _ in tickers)
        with self._get_connection() as conn:
            rows = conn.execute(f"""
                SELECT {QUOTE_COLUMNS}, ticker FROM daily
                WHERE ticker IN ({placeholders})
                ORDER BY timestamp ASC
            """, tuple(tickers)).fetchall()

        batch: dict[str, list[StoredQuote]] = {}
        for row in rows:
            batch.setdefault(row["ticker"], []).append(self._row_to_stored_quote(row))
        return batch

    def list_tickers(self) -> list[str]:
        """List every ticker with at least one stored quote."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT DISTINCT ticker FROM daily ORDER BY ticker").fetchall()
        return [row[0] for row in rows]

    def upsert_quotes(self, ticker: str, quotes: Iterable[Quote]) -> int:
        """
        Insert or update quotes for a ticker in a single transaction.

        Rows are keyed by (ticker, timestamp). An existing row keeps its id so
        that indicator values joined on it stay valid.

        Returns:
            Number of quotes written
        """
        params = [
            (ticker, q.epoch_seconds, q.open, q.high, q.low, q.close, q.avg, q.volume, q.count)
            for q in quotes
        ]
        if not params:
            return 0

        with self._write_lock, self._get_connection() as conn:
            conn.executemany("""
                INSERT INTO daily
                    (ticker, timestamp, open, high, low, close, avg, volume, count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (ticker, timestamp) DO UPDATE SET
                    open = excluded.open,
                    high = excluded.high,
                    low = excluded.low,
                    close = excluded.close,
                    avg = excluded.avg,
                    volume = excluded.volume,
                    count = excluded.count
            """, params)
            conn.commit()

        self.logger.debug("Quotes upserted", ticker=ticker, count=len(params))
        return len(params)

    def upsert_indicator_values(self, series_name: str,
                                values: Iterable[tuple[int, float]]) -> int:
        """
        Insert or replace indicator values keyed by quote id.

        Returns:
            Number of values written
        """
        self._check_series_name(series_name)
        rows = list(values)

        with self._write_lock, self._get_connection() as conn:
            self._ensure_series_table(conn, series_name)
            if rows:
                conn.executemany(
                    f"INSERT OR REPLACE INTO {series_name} (daily_id, value) VALUES (?, ?)",
                    rows
                )
            conn.commit()

        return len(rows)

    def get_indicator_values(self, series_name: str, ticker: str) -> list[tuple[int, float]]:
        """Get a ticker's stored indicator series in ascending timestamp order."""
        self._check_series_name(series_name)

        with self._get_connection() as conn:
            exists = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (series_name,)
            ).fetchone()
            if not exists:
                return []
            rows = conn.execute(f"""
                SELECT s.daily_id, s.value FROM {series_name} s
                JOIN daily d ON d.id = s.daily_id
                WHERE d.ticker = ?
                ORDER BY d.timestamp ASC
            """, (ticker,)).fetchall()

        return [(row[0], row[1]) for row in rows]

    def get_exchange_hint(self, ticker: str) -> Optional[str]:
        """Get the primary exchange recorded for a ticker, if any."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT primary_exchange FROM ticker_exchange WHERE ticker = ?",
                (ticker,)
            ).fetchone()
        return row[0] if row else None

    def set_exchange_hint(self, ticker: str, primary_exchange: Optional[str]) -> None:
        """Record or clear the primary exchange for a ticker."""
        with self._write_lock, self._get_connection() as conn:
            if primary_exchange:
                conn.execute(
                    "INSERT OR REPLACE INTO ticker_exchange (ticker, primary_exchange) VALUES (?, ?)",
                    (ticker, primary_exchange)
                )
            else:
                conn.execute("DELETE FROM ticker_exchange WHERE ticker = ?", (ticker,))
            conn.commit()

    def _check_series_name(self, series_name: str) -> None:
        # Series names are interpolated into SQL as table names
        if not SERIES_NAME_PATTERN.match(series_name) or series_name in {"daily", "ticker_exchange"}:
            raise PersistenceError(
                f"Invalid indicator series name {series_name!r}",
                operation="indicator_series",
                target=series_name
            )

    def _ensure_series_table(self, conn: sqlite3.Connection, series_name: str) -> None:
        if series_name in self._known_series:
            return
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {series_name} (
                daily_id INTEGER PRIMARY KEY NOT NULL REFERENCES daily (id),
                value REAL NOT NULL
            )
        """)
        self._known_series.add(series_name)

    def _row_to_stored_quote(self, row: sqlite3.Row) -> StoredQuote:
        """Convert database row to StoredQuote object."""
        return StoredQuote(
            id=row["id"],
            timestamp=from_epoch_seconds(row["timestamp"]),
            open=row["open"],
            high=row["high"],
            low=row["low"],
            close=row["close"],
            avg=row["avg"],
            volume=row["volume"],
            count=row["count"],
        )
