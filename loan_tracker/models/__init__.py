"""Domain models for loan portfolio tracking."""

from loan_tracker.models.base import Event
from loan_tracker.models.borrower import Borrower
from loan_tracker.models.enums import LoanStatus, PaymentFrequency
from loan_tracker.models.loan import Loan, PaymentSchedule
from loan_tracker.models.metrics import DashboardMetrics, LoanMetrics
from loan_tracker.models.payment import Payment
from loan_tracker.models.settings import AppSettings

__all__ = [
    "AppSettings",
    "Borrower",
    "DashboardMetrics",
    "Event",
    "Loan",
    "LoanMetrics",
    "LoanStatus",
    "Payment",
    "PaymentFrequency",
    "PaymentSchedule",
]
