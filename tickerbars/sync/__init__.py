"""
Synchronization module.

Bounded-concurrency historical bar requests against a market-data session,
response correlation, and reconciliation of fetched bars with the store.
"""
