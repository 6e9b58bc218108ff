"""Tests for request state tracking and bar buffering."""

from datetime import date

import pytest
from conftest import build_quote

from tickerbars.errors import ProtocolViolationError
from tickerbars.sync.correlator import ResponseCorrelator
from tickerbars.sync.models import PendingRequest, RequestState, SyncMode


@pytest.fixture
def correlator():
    c = ResponseCorrelator()
    c.register(PendingRequest(1, "AAA", SyncMode.INCREMENTAL))
    return c


class TestLifecycle:
    """Test state transitions."""

    def test_pending_streaming_completed(self, correlator):
        assert correlator.state(1) == RequestState.PENDING

        correlator.on_bar(1, build_quote(date(2024, 6, 6), 11.0))
        assert correlator.state(1) == RequestState.STREAMING
        correlator.on_bar(1, build_quote(date(2024, 6, 7), 12.0))
        assert correlator.buffered_count(1) == 2

        batch = correlator.on_end(1)

        assert correlator.state(1) is None
        assert batch.request.mode == SyncMode.INCREMENTAL
        assert [q.close for q in batch.quotes_by_ticker["AAA"]] == [11.0, 12.0]
        assert correlator.buffered_count(1) == 0

    def test_completion_without_bars(self, correlator):
        batch = correlator.on_end(1)
        assert batch.quotes_by_ticker == {}

    def test_failure_drops_buffer(self, correlator):
        correlator.on_bar(1, build_quote(date(2024, 6, 6), 11.0))

        failed = correlator.on_error(1)

        assert failed.ticker == "AAA"
        assert correlator.is_failed(1)
        assert not correlator.is_active(1)
        assert correlator.buffered_count(1) == 0

    def test_only_failed_requests_are_remembered(self, correlator):
        for request_id in range(2, 42):
            correlator.register(PendingRequest(request_id, f"T{request_id}", SyncMode.FULL))
        correlator.on_error(2)
        for request_id in range(3, 42):
            correlator.on_end(request_id)

        assert list(correlator._states) == [1, 2]
        assert list(correlator._requests) == [1]
        assert correlator.is_failed(2)
        assert correlator.state(41) is None

    def test_error_for_inactive_request(self, correlator):
        correlator.on_end(1)
        assert correlator.on_error(1) is None
        assert correlator.on_error(99) is None


class TestViolations:
    """Test protocol violations."""

    def test_reused_request_id(self, correlator):
        with pytest.raises(ProtocolViolationError):
            correlator.register(PendingRequest(1, "BBB", SyncMode.FULL))

    def test_completed_request_id_not_reusable(self, correlator):
        correlator.on_end(1)
        with pytest.raises(ProtocolViolationError):
            correlator.register(PendingRequest(1, "BBB", SyncMode.FULL))

    def test_end_after_completion(self, correlator):
        correlator.on_end(1)
        with pytest.raises(ProtocolViolationError):
            correlator.on_end(1)

    def test_bar_for_unknown_request(self, correlator):
        with pytest.raises(ProtocolViolationError):
            correlator.on_bar(2, build_quote(date(2024, 6, 6), 11.0))

    def test_end_for_unknown_request(self, correlator):
        with pytest.raises(ProtocolViolationError) as exc_info:
            correlator.on_end(2)
        assert exc_info.value.request_id == 2

    def test_bar_after_completion(self, correlator):
        correlator.on_end(1)
        with pytest.raises(ProtocolViolationError):
            correlator.on_bar(1, build_quote(date(2024, 6, 6), 11.0))
