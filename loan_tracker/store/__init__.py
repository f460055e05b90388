"""Portfolio store coordinating mutations and derived state."""

from loan_tracker.store.portfolio import PortfolioStore

__all__ = ["PortfolioStore"]
