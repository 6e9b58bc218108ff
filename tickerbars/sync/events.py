"""
Events delivered by a market-data session.

Each event kind is its own immutable type; the scheduler handles exactly
these and treats anything else as a fatal protocol error.
"""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class SessionReady:
    """The session is connected; ``next_id`` is the broker's next valid id."""
    next_id: int


@dataclass(frozen=True)
class BarReceived:
    """One historical bar for a request (a Quote or a raw broker bar)."""
    request_id: int
    bar: Any


@dataclass(frozen=True)
class EndOfHistory:
    """All bars for a request have been delivered."""
    request_id: int
    range_start: str
    range_end: str


@dataclass(frozen=True)
class RequestFailed:
    """The broker rejected or aborted a specific request."""
    request_id: int
    code: int
    message: str


@dataclass(frozen=True)
class Informational:
    """Status or warning message not tied to a tracked request."""
    code: int
    message: str


Event = Union[SessionReady, BarReceived, EndOfHistory, RequestFailed, Informational]
