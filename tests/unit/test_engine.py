"""Unit tests for the job coordinator."""

from dataclasses import replace
from datetime import date

import pytest
from conftest import FakeSession, build_quote

from tickerbars.config.defaults import ScreenParams, SyncParams, get_default_config
from tickerbars.engine import TickerBarsEngine, read_tickers
from tickerbars.errors import TransportError
from tickerbars.sync.models import SyncMode


@pytest.fixture
def engine(store):
    config = replace(get_default_config(), sync=SyncParams(concurrency_limit=2, poll_interval_seconds=0.0))
    return TickerBarsEngine(config, store=store)


class TestReadTickers:
    """Test ticker list parsing."""

    def test_comments_blanks_and_duplicates(self):
        lines = ["aapl\n", "\n", "# watchlist\n", "MSFT  # software\n", "  \n", "AAPL\n", "brk.b"]
        assert read_tickers(lines) == ["AAPL", "MSFT", "BRK.B"]

    def test_empty_input(self):
        assert read_tickers([]) == []


class TestRunSync:
    """Test the sync job."""

    def test_full_sync_commits_bars(self, engine, store):
        session = FakeSession({
            "AAA": [[build_quote(date(2024, 6, 6), 11.0), build_quote(date(2024, 6, 7), 12.0)]],
            "BBB": [[build_quote(date(2024, 6, 7), 50.0)]],
        })

        summary = engine.run_sync(["AAA", "BBB", "CCC"], SyncMode.FULL, session=session)

        assert summary.completed == 3
        assert summary.quotes_committed == 3
        assert [q.close for q in store.get_all_quotes("AAA")] == [11.0, 12.0]
        assert not session.connected

    def test_session_closed_on_failure(self, engine):
        class BrokenSession(FakeSession):
            def poll_event(self):
                raise TransportError("connection reset")

        session = BrokenSession()
        with pytest.raises(TransportError):
            engine.run_sync(["AAA"], SyncMode.FULL, session=session)
        assert not session.connected


class TestMetricsAndScreen:
    """Test the storage-driven jobs."""

    @pytest.fixture
    def filled(self, store, history_factory):
        store.upsert_quotes("UP", history_factory([100.0 + i for i in range(200)]))
        closes = [100.0 + i for i in range(200)]
        store.upsert_quotes("PULL", history_factory(closes + [closes[-1] - i for i in range(1, 6)]))
        return store

    def test_calculate_metrics_defaults_to_all_tickers(self, engine, filled):
        results = engine.calculate_metrics([], workers=2)
        assert set(results) == {"UP", "PULL"}
        assert filled.get_indicator_values("ema_89", "UP")

    def test_calculate_metrics_selected_tickers(self, engine, filled):
        assert set(engine.calculate_metrics(["UP"], workers=2)) == {"UP"}

    def test_trend_candidates(self, engine, filled):
        results = engine.trend_candidates(["UP", "PULL", "NONE"])
        assert [r.ticker for r in results] == ["PULL"]

        forced = engine.trend_candidates(["UP", "PULL"], ScreenParams(force=True))
        assert [r.ticker for r in forced] == ["UP", "PULL"]

    def test_trend_candidates_without_stored_indicators(self, engine, filled):
        assert not filled.get_indicator_values("ema_8", "PULL")

        results = engine.trend_candidates(["PULL"])

        assert [r.ticker for r in results] == ["PULL"]
        assert not filled.get_indicator_values("ema_8", "PULL")

    def test_set_exchange(self, engine, store):
        engine.set_exchange("aapl", "nasdaq")
        assert store.get_exchange_hint("AAPL") == "NASDAQ"

        engine.set_exchange("AAPL", None)
        assert store.get_exchange_hint("AAPL") is None
