"""
Error classification for market data synchronization and indicator work.

Unrecoverable system failures stop the sync loop; data quality errors are
handled at the scope of a single ticker or request.
"""

from .data_quality import (
    DataQualityError,
    MalformedDataError,
    MissingDataError,
)
from .system_failures import (
    SystemFailureError,
    TransportError,
    ProtocolViolationError,
    UnsupportedEventError,
    PersistenceError,
    ConfigurationError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MalformedDataError",
    "MissingDataError",
    # System Failures
    "SystemFailureError",
    "TransportError",
    "ProtocolViolationError",
    "UnsupportedEventError",
    "PersistenceError",
    "ConfigurationError",
]
