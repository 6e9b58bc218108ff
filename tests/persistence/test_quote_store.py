"""Tests for the SQLite quote store."""

from datetime import date

import pytest

from tickerbars.data.models import StoredQuote
from tickerbars.errors import PersistenceError
from tickerbars.persistence.quote_store import QuoteStore


class TestQuoteRoundTrip:
    """Test writing and reading quotes."""

    def test_round_trip_preserves_order_and_fields(self, store, quote_factory):
        quotes = [
            quote_factory(date(2024, 6, 7), 12.25, high=13.5, low=11.75),
            quote_factory(date(2024, 6, 5), 10.5),
            quote_factory(date(2024, 6, 6), 11.125),
        ]

        assert store.upsert_quotes("AAA", quotes) == 3
        stored = store.get_all_quotes("AAA")

        expected = sorted(quotes, key=lambda q: q.timestamp)
        assert [q.timestamp for q in stored] == [q.timestamp for q in expected]
        for got, want in zip(stored, expected):
            assert isinstance(got, StoredQuote)
            assert (got.open, got.high, got.low, got.close, got.avg, got.volume, got.count) == (
                want.open, want.high, want.low, want.close, want.avg, want.volume, want.count
            )

    def test_ids_increase_with_insertion(self, store, quote_factory):
        store.upsert_quotes("AAA", [quote_factory(date(2024, 6, 5), 10.0)])
        store.upsert_quotes("AAA", [quote_factory(date(2024, 6, 6), 11.0)])
        first, second = store.get_all_quotes("AAA")
        assert second.id > first.id

    def test_upsert_replaces_values_and_keeps_id(self, store, quote_factory):
        store.upsert_quotes("AAA", [quote_factory(date(2024, 6, 5), 10.0)])
        original = store.get_last_quote("AAA")

        store.upsert_quotes("AAA", [quote_factory(date(2024, 6, 5), 9.5)])
        updated = store.get_all_quotes("AAA")

        assert len(updated) == 1
        assert updated[0].id == original.id
        assert updated[0].close == 9.5

    def test_empty_upsert(self, store):
        assert store.upsert_quotes("AAA", []) == 0
        assert store.get_all_quotes("AAA") == []


class TestQuoteQueries:
    """Test lookups."""

    @pytest.fixture
    def filled(self, store, quote_factory):
        store.upsert_quotes("AAA", [
            quote_factory(date(2024, 6, 5), 10.0),
            quote_factory(date(2024, 6, 6), 11.0),
        ])
        store.upsert_quotes("BBB", [quote_factory(date(2024, 6, 6), 50.0)])
        return store

    def test_get_last_quote(self, filled):
        assert filled.get_last_quote("AAA").close == 11.0
        assert filled.get_last_quote("ZZZ") is None

    def test_get_quote_at(self, filled, quote_factory):
        target = quote_factory(date(2024, 6, 5), 0.0)
        assert filled.get_quote_at("AAA", target.epoch_seconds).close == 10.0
        assert filled.get_quote_at("BBB", target.epoch_seconds) is None

    def test_get_quotes_batch(self, filled):
        batch = filled.get_quotes_batch(["AAA", "BBB", "ZZZ"])
        assert [q.close for q in batch["AAA"]] == [10.0, 11.0]
        assert [q.close for q in batch["BBB"]] == [50.0]
        assert "ZZZ" not in batch
        assert filled.get_quotes_batch([]) == {}

    def test_list_tickers(self, filled):
        assert filled.list_tickers() == ["AAA", "BBB"]


class TestIndicatorSeries:
    """Test indicator value storage."""

    def test_values_joined_to_ticker(self, store, quote_factory):
        store.upsert_quotes("AAA", [
            quote_factory(date(2024, 6, 5), 10.0),
            quote_factory(date(2024, 6, 6), 11.0),
        ])
        store.upsert_quotes("BBB", [quote_factory(date(2024, 6, 6), 50.0)])
        aaa = store.get_all_quotes("AAA")
        bbb = store.get_all_quotes("BBB")

        store.upsert_indicator_values("sma_2", [(aaa[1].id, 10.5), (bbb[0].id, 49.0)])

        assert store.get_indicator_values("sma_2", "AAA") == [(aaa[1].id, 10.5)]
        assert store.get_indicator_values("sma_2", "BBB") == [(bbb[0].id, 49.0)]

    def test_values_replaced(self, store, quote_factory):
        store.upsert_quotes("AAA", [quote_factory(date(2024, 6, 5), 10.0)])
        quote_id = store.get_last_quote("AAA").id

        store.upsert_indicator_values("rsi", [(quote_id, 40.0)])
        store.upsert_indicator_values("rsi", [(quote_id, 60.0)])

        assert store.get_indicator_values("rsi", "AAA") == [(quote_id, 60.0)]

    def test_missing_series_reads_empty(self, store):
        assert store.get_indicator_values("ema_8", "AAA") == []

    @pytest.mark.parametrize("name", ["daily", "ticker_exchange", "sma-20", "1sma", "x; DROP TABLE daily"])
    def test_invalid_series_name(self, store, name):
        with pytest.raises(PersistenceError):
            store.upsert_indicator_values(name, [])


class TestExchangeHints:
    """Test primary exchange hints."""

    def test_set_get_and_clear(self, store):
        assert store.get_exchange_hint("AAA") is None

        store.set_exchange_hint("AAA", "NASDAQ")
        assert store.get_exchange_hint("AAA") == "NASDAQ"

        store.set_exchange_hint("AAA", "ARCA")
        assert store.get_exchange_hint("AAA") == "ARCA"

        store.set_exchange_hint("AAA", None)
        assert store.get_exchange_hint("AAA") is None


class TestStoreErrors:
    """Test error wrapping."""

    def test_unusable_path_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(PersistenceError):
            QuoteStore(blocker / "db.sqlite3")
