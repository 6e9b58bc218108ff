"""
Derived data models.

Indicator snapshots built from a ticker's stored quote history.
"""
