"""Tests for the command line interface."""

from datetime import date
from unittest.mock import patch

import pytest
from conftest import FakeSession, build_quote
from typer.testing import CliRunner

from tickerbars.cli import app
from tickerbars.errors import TransportError
from tickerbars.persistence.quote_store import QuoteStore

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "bars" / "db.sqlite3"


def invoke(db_path, args, input=None):
    return runner.invoke(app, ["--db", str(db_path), "--log-level", "ERROR", *args], input=input)


class TestSyncCommands:
    """Test full and incremental commands."""

    def test_full_reads_tickers_from_stdin(self, db_path):
        session = FakeSession({"AAA": [[build_quote(date(2024, 6, 7), 12.0)]]})
        with patch("tickerbars.engine.TickerBarsEngine.create_session", return_value=session):
            result = invoke(db_path, ["full"], input="aaa\n# comment\n\nBBB\n")

        assert result.exit_code == 0, result.output
        assert [s.symbol for s in session.submissions] == ["AAA", "BBB"]
        assert "dispatched=2" in result.stdout
        assert len(QuoteStore(db_path).get_all_quotes("AAA")) == 1

    def test_incremental_force(self, db_path):
        store = QuoteStore(db_path)
        store.upsert_quotes("AAA", [build_quote(date(2024, 6, 7), 12.0)])
        session = FakeSession({"AAA": [[build_quote(date(2024, 6, 7), 12.0)]]})

        with patch("tickerbars.engine.TickerBarsEngine.create_session", return_value=session):
            result = invoke(db_path, ["incremental", "--force"], input="AAA\n")

        assert result.exit_code == 0, result.output
        assert session.submissions[0].symbol == "AAA"

    def test_transport_failure_exits_non_zero(self, db_path):
        class DeadSession(FakeSession):
            def connect(self):
                raise TransportError("refused", host="127.0.0.1", port=4001)

        with patch("tickerbars.engine.TickerBarsEngine.create_session", return_value=DeadSession()):
            result = invoke(db_path, ["full"], input="AAA\n")

        assert result.exit_code == 1

    def test_req_limit_option(self, db_path):
        session = FakeSession()
        with patch("tickerbars.engine.TickerBarsEngine.create_session", return_value=session):
            result = invoke(db_path, ["--req-limit", "1", "full"], input="AAA\nBBB\nCCC\n")

        assert result.exit_code == 0, result.output
        assert session.max_outstanding == 1


class TestStorageCommands:
    """Test commands that only use the store."""

    @pytest.fixture
    def filled(self, db_path, history_factory):
        store = QuoteStore(db_path)
        closes = [100.0 + i for i in range(200)]
        store.upsert_quotes("UP", history_factory(closes))
        store.upsert_quotes("PULL", history_factory(closes + [closes[-1] - i for i in range(1, 6)]))
        return store

    def test_calculate_metrics(self, db_path, filled):
        result = invoke(db_path, ["calculate-metrics", "--workers", "2"], input="")

        assert result.exit_code == 0, result.output
        assert "PULL" in result.stdout
        assert "UP" in result.stdout
        assert filled.get_indicator_values("sma_20", "UP")

    def test_trend_candidates(self, db_path, filled):
        result = invoke(db_path, ["trend-candidates"], input="UP\nPULL\n")

        assert result.exit_code == 0, result.output
        assert "PULL" in result.stdout
        assert "UP " not in result.stdout

    def test_trend_candidates_force(self, db_path, filled):
        result = invoke(db_path, ["trend-candidates", "--force", "--ema-period", "10"], input="UP\n")

        assert result.exit_code == 0, result.output
        assert "UP" in result.stdout

    def test_invalid_screen_option(self, db_path, filled):
        result = invoke(db_path, ["trend-candidates", "--stoch-threshold", "75"], input="UP\n")
        assert result.exit_code == 1

    def test_set_exchange(self, db_path):
        result = invoke(db_path, ["set-exchange", "aapl", "nasdaq"])

        assert result.exit_code == 0, result.output
        assert QuoteStore(db_path).get_exchange_hint("AAPL") == "NASDAQ"

        invoke(db_path, ["set-exchange", "AAPL", "NONE"])
        assert QuoteStore(db_path).get_exchange_hint("AAPL") is None


class TestGlobalOptions:
    """Test options shared by every command."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "tickerbars" in result.stdout

    def test_missing_config_file(self, db_path, tmp_path):
        result = invoke(db_path, ["--config", str(tmp_path / "nope.yaml"), "set-exchange", "A", "B"])
        assert result.exit_code == 1
