"""Borrower model."""

from dataclasses import dataclass


@dataclass
class Borrower:
    """Person or company a loan is extended to."""

    borrower_id: str
    name: str
    email: str | None = None
    phone: str | None = None
