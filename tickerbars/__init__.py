"""
tickerbars - Daily Bar Synchronization and Trend Screening

Keeps a local store of daily equity bars current against an asynchronous
market-data session, derives technical indicators from the stored series
and screens tickers against EMA trend rules.
"""

__version__ = "0.1.0"
__author__ = "tickerbars maintainers"
