"""
Persistence module.

SQLite storage for daily quotes, derived indicator series and exchange hints.
"""
from .quote_store import QuoteStore

__all__ = ["QuoteStore"]
