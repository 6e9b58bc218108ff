"""
Correlation of session events with in-flight requests.

Bars are buffered per request until the request's completion marker, then
grouped by ticker for reconciliation. Bars and markers that arrive for a
request that already failed are dropped; anything for a request id that
was never registered, or has completed, is a protocol violation.

Completed requests are forgotten. Only failed ids are remembered so late
events for them can be told apart from unknown ids.
"""

from typing import Optional

from ..data.models import Quote
from ..errors import ProtocolViolationError
from ..logging.config import get_sync_logger, log_request_transition
from .models import CompletedBatch, PendingRequest, RequestState

logger = get_sync_logger(__name__)


class ResponseCorrelator:
    """Tracks request states and buffers bars until completion."""

    def __init__(self):
        self.logger = logger
        self._requests: dict[int, PendingRequest] = {}
        self._states: dict[int, RequestState] = {}
        self._buffers: dict[int, list[tuple[str, Quote]]] = {}
        self._last_id = 0

    def register(self, request: PendingRequest) -> None:
        """Start tracking a dispatched request. Ids must increase."""
        if request.request_id <= self._last_id:
            raise ProtocolViolationError(
                f"Request id {request.request_id} reused (last registered: {self._last_id})",
                request_id=request.request_id
            )
        self._last_id = request.request_id
        self._requests[request.request_id] = request
        self._states[request.request_id] = RequestState.PENDING
        self._buffers[request.request_id] = []

    def state(self, request_id: int) -> Optional[RequestState]:
        return self._states.get(request_id)

    def is_active(self, request_id: int) -> bool:
        return self._states.get(request_id) in (RequestState.PENDING, RequestState.STREAMING)

    def is_failed(self, request_id: int) -> bool:
        return self._states.get(request_id) == RequestState.FAILED

    def buffered_count(self, request_id: int) -> int:
        return len(self._buffers.get(request_id, []))

    def on_bar(self, request_id: int, quote: Quote) -> None:
        """Buffer one bar for an active request."""
        request = self._require_active(request_id, "bar")
        if self._states[request_id] == RequestState.PENDING:
            self._transition(request, RequestState.STREAMING)
        self._buffers[request_id].append((request.ticker, quote))

    def on_end(self, request_id: int) -> CompletedBatch:
        """
        Complete a request and release its buffered bars.

        Returns:
            The request's bars grouped by ticker, in arrival order
        """
        request = self._require_active(request_id, "end of history")
        buffered = self._buffers.pop(request_id)
        self._transition(request, RequestState.COMPLETED, {"bars": len(buffered)})
        del self._requests[request_id]
        del self._states[request_id]

        quotes_by_ticker: dict[str, list[Quote]] = {}
        for ticker, quote in buffered:
            quotes_by_ticker.setdefault(ticker, []).append(quote)

        return CompletedBatch(request=request, quotes_by_ticker=quotes_by_ticker)

    def on_error(self, request_id: int) -> Optional[PendingRequest]:
        """
        Fail an active request and drop its buffered bars.

        Returns:
            The failed request, or None if the id is not active
        """
        if not self.is_active(request_id):
            return None
        request = self._requests.pop(request_id)
        dropped = self._buffers.pop(request_id, [])
        self._transition(request, RequestState.FAILED, {"dropped_bars": len(dropped)})
        return request

    def _require_active(self, request_id: int, what: str) -> PendingRequest:
        if not self.is_active(request_id):
            raise ProtocolViolationError(
                f"Unexpected {what} for request {request_id} "
                f"(state: {self._states.get(request_id, 'unknown')})",
                request_id=request_id
            )
        return self._requests[request_id]

    def _transition(self, request: PendingRequest, new_state: RequestState,
                    context: Optional[dict] = None) -> None:
        old_state = self._states[request.request_id]
        self._states[request.request_id] = new_state
        log_request_transition(
            self.logger,
            request_id=request.request_id,
            ticker=request.ticker,
            from_state=old_state.value,
            to_state=new_state.value,
            context=context
        )
