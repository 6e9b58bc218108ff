"""Base class for market-data sessions."""

import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .events import Event


class MarketDataSession(ABC):
    """
    Asynchronous, callback-style source of historical daily bars.

    Requests are fire-and-forget; their results arrive later as events
    returned by ``poll_event``.
    """

    @abstractmethod
    def connect(self) -> None:
        """Open the session. Raises TransportError on failure."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close the session."""
        pass

    @abstractmethod
    def submit_historical_request(
        self,
        request_id: int,
        symbol: str,
        exchange_hint: Optional[str],
        as_of: datetime,
        span_days: int,
        bar_size: str = "1 day"
    ) -> None:
        """
        Request ``span_days`` of bars ending at ``as_of``.

        Args:
            request_id: Caller-assigned id echoed on every resulting event
            symbol: Ticker symbol
            exchange_hint: Optional primary exchange for the symbol
            as_of: End of the requested range
            span_days: Length of the requested range in days
            bar_size: Bar size setting
        """
        pass

    @abstractmethod
    def poll_event(self) -> Optional[Event]:
        """
        Return the next ready event, or None if nothing is ready.

        Raises TransportError if the session has failed.
        """
        pass

    def wait(self, seconds: float) -> None:
        """Block for ``seconds`` while the session has nothing to deliver."""
        time.sleep(seconds)

    def __enter__(self) -> "MarketDataSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()
