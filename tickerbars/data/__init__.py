"""
Bar data module.

Immutable quote models and conversion of broker bars into quotes.
"""
