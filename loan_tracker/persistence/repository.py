"""Repository contract and the in-memory implementation."""

import copy
from dataclasses import dataclass, field
from typing import Protocol

from loan_tracker.models import AppSettings, Borrower, Loan, Payment


@dataclass
class PortfolioSnapshot:
    """Whole collections as read from or written to a repository."""

    borrowers: list[Borrower] = field(default_factory=list)
    loans: list[Loan] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)
    settings: AppSettings = field(default_factory=AppSettings)


class PortfolioRepository(Protocol):
    """Persistence collaborator. Collections are replaced wholesale."""

    def load(self) -> PortfolioSnapshot | None:
        """Return the stored snapshot, or ``None`` when nothing is stored."""
        ...

    def save(self, snapshot: PortfolioSnapshot) -> None:
        """Replace the stored snapshot."""
        ...


class InMemoryRepository:
    """Keeps a private copy of the last saved snapshot."""

    def __init__(self, snapshot: PortfolioSnapshot | None = None) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count = 0

    def load(self) -> PortfolioSnapshot | None:
        return copy.deepcopy(self._snapshot)

    def save(self, snapshot: PortfolioSnapshot) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count += 1
