"""Derived metrics. Recomputed on demand, never persisted."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class LoanMetrics:
    """Financial summary of a single loan."""

    total_principal: Decimal = Decimal("0")
    total_interest: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    remaining_balance: Decimal = Decimal("0")


@dataclass(frozen=True)
class DashboardMetrics:
    """Portfolio-wide figures shown on the dashboard."""

    total_loaned: Decimal
    total_interest_accrued: Decimal
    total_overdue: Decimal  # Remaining balance of overdue and defaulted loans
    total_borrowers: int
    active_loan_count: int
    paid_loan_count: int
    overdue_loan_count: int
    defaulted_loan_count: int
    total_received_this_month: Decimal
