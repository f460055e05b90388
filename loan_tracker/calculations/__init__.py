"""Pure loan calculations: balances, status resolution and portfolio metrics."""

from loan_tracker.calculations.balance import loan_metrics, remaining_balance, total_paid
from loan_tracker.calculations.portfolio import (
    dashboard_metrics,
    overdue_loans,
    status_distribution,
    upcoming_due_loans,
)
from loan_tracker.calculations.status import DEFAULT_GRACE_PERIOD_DAYS, resolve_status

__all__ = [
    "DEFAULT_GRACE_PERIOD_DAYS",
    "dashboard_metrics",
    "loan_metrics",
    "overdue_loans",
    "remaining_balance",
    "resolve_status",
    "status_distribution",
    "total_paid",
    "upcoming_due_loans",
]
