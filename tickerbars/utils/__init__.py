"""
Utility functions module.

Time Semantics:
- Stored bar timestamps are the session close of the bar's date, in UTC
- Session hours are evaluated in the exchange's local timezone
- A daily bar for a session that is still open is never requested
"""
