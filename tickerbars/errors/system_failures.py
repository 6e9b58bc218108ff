"""
System failure error classifications for unrecoverable errors.

These exceptions represent failures that halt the sync loop and surface to
the command line as a non-zero exit.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class TransportError(SystemFailureError):
    """The market-data session connection failed or was lost."""

    def __init__(self, message: str, host: Optional[str] = None,
                 port: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.host = host
        self.port = port


class ProtocolViolationError(SystemFailureError):
    """The session sent an event that contradicts the request bookkeeping."""

    def __init__(self, message: str, request_id: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.request_id = request_id


class UnsupportedEventError(SystemFailureError):
    """The session produced an event kind the scheduler does not handle."""

    def __init__(self, message: str, event: Optional[object] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.event = event


class PersistenceError(SystemFailureError):
    """Database or file system persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class ConfigurationError(SystemFailureError):
    """Configuration could not be loaded or failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
