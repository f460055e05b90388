"""Sample data generators."""

from loan_tracker.generators.portfolio import PortfolioGenerator

__all__ = ["PortfolioGenerator"]
