"""
Data models for request scheduling and reconciliation.

Requests move through PENDING -> STREAMING -> COMPLETED, or end in FAILED
when the session reports an error for them.
"""

from dataclasses import dataclass, field
from enum import Enum

from ..data.models import Quote


class SyncMode(str, Enum):
    """How much history a request fetches."""
    FULL = "full"
    INCREMENTAL = "incremental"


class RequestState(str, Enum):
    """Lifecycle of a single historical data request."""
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class ReconciliationOutcome(str, Enum):
    """What reconciliation did with a ticker's fetched bars."""
    COMMITTED = "committed"
    EMPTY = "empty"                  # Nothing fetched
    NO_BASELINE = "no_baseline"      # No stored bar to compare with, discarded
    RESYNC = "resync"                # Upstream revised history, full resync needed


@dataclass(frozen=True)
class PendingRequest:
    """A dispatched request awaiting completion."""
    request_id: int
    ticker: str
    mode: SyncMode


@dataclass(frozen=True)
class CompletedBatch:
    """Bars of a completed request grouped by ticker."""
    request: PendingRequest
    quotes_by_ticker: dict[str, list[Quote]]


@dataclass(frozen=True)
class ReconciliationResult:
    """Reconciliation decision for one ticker."""
    ticker: str
    mode: SyncMode
    outcome: ReconciliationOutcome
    committed: int = 0


@dataclass
class SyncSummary:
    """Counters for one scheduler run."""
    dispatched: int = 0
    skipped: int = 0
    completed: int = 0
    failed: int = 0
    resynced: int = 0
    discarded: int = 0
    quotes_committed: int = 0
    failed_tickers: list[str] = field(default_factory=list)
