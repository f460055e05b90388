"""JSON file repository for persisting a portfolio snapshot."""

import json
import logging
from pathlib import Path

from loan_tracker.exceptions import InvalidEntityStateError, LoanTrackerError
from loan_tracker.persistence.repository import PortfolioSnapshot
from loan_tracker.persistence.serialization import (
    borrower_from_dict,
    loan_from_dict,
    payment_from_dict,
    settings_from_dict,
    to_dict,
    to_dict_fast,
)

logger = logging.getLogger(__name__)


class JsonFileRepository:
    """Store borrowers, loans, payments and settings in one JSON document."""

    def __init__(self, path: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file repository.

        Parameters
        ----------
        path : str | Path
            File holding the snapshot. Parent directories are created on save.
        pretty : bool
            Pretty-print JSON output.
        """
        self.path = Path(path)
        self.pretty = pretty

    def load(self) -> PortfolioSnapshot | None:
        """Read the snapshot, or return ``None`` if the file does not exist."""
        if not self.path.exists():
            logger.debug("No portfolio file at %s", self.path)
            return None

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            snapshot = PortfolioSnapshot(
                borrowers=[borrower_from_dict(b) for b in data.get("borrowers", [])],
                loans=[loan_from_dict(item) for item in data.get("loans", [])],
                payments=[payment_from_dict(p) for p in data.get("payments", [])],
                settings=settings_from_dict(data.get("settings") or {}),
            )
        except (json.JSONDecodeError, AttributeError, InvalidEntityStateError) as exc:
            raise LoanTrackerError(f"Corrupt portfolio file {self.path}: {exc}") from exc

        logger.info(
            "Loaded %d borrowers, %d loans, %d payments from %s",
            len(snapshot.borrowers),
            len(snapshot.loans),
            len(snapshot.payments),
            self.path,
        )
        return snapshot

    def save(self, snapshot: PortfolioSnapshot) -> None:
        """Write the snapshot, replacing the file atomically."""
        data = {
            "borrowers": [to_dict_fast(b) for b in snapshot.borrowers],
            "loans": [to_dict(loan) for loan in snapshot.loans],
            "payments": [to_dict_fast(p) for p in snapshot.payments],
            "settings": to_dict(snapshot.settings),
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(data, f, indent=2, ensure_ascii=False)
            else:
                json.dump(data, f, ensure_ascii=False)
        tmp_path.replace(self.path)
