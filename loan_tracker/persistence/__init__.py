"""Persistence collaborators and bulk import/export formats."""

from loan_tracker.persistence.csv_bundle import CsvBundle, export_csv, import_csv
from loan_tracker.persistence.json_file import JsonFileRepository
from loan_tracker.persistence.repository import (
    InMemoryRepository,
    PortfolioRepository,
    PortfolioSnapshot,
)

__all__ = [
    "CsvBundle",
    "InMemoryRepository",
    "JsonFileRepository",
    "PortfolioRepository",
    "PortfolioSnapshot",
    "export_csv",
    "import_csv",
]
