"""Loan portfolio tracking: balances, lifecycle status and portfolio metrics."""

__version__ = "0.1.0"
