"""Payment model."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass
class Payment:
    """Payment received against a loan."""

    payment_id: str
    loan_id: str
    payment_date: date
    amount: Decimal  # Total received
    principal: Decimal  # Principal component
    interest: Decimal  # Interest component
    notes: str = ""
