"""Loan models."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loan_tracker.models.enums import LoanStatus, PaymentFrequency


@dataclass
class PaymentSchedule:
    """Embedded schedule record. Only the next payment date is tracked."""

    next_payment_date: date


@dataclass
class Loan:
    """Loan contract entity."""

    loan_id: str
    borrower_id: str
    borrower_name: str  # Cached from Borrower.name, re-synced by the store
    principal: Decimal  # Amount lent, excluding interest
    interest_rate: Decimal  # Percentage (e.g., 5 for 5%)
    issue_date: date
    due_date: date
    status: LoanStatus
    frequency: PaymentFrequency
    installments: int | None = None
    installment_amount: Decimal | None = None
    payment_schedule: PaymentSchedule | None = None
    notes: str = ""
