"""Loan status classification.

The status of a loan is recomputed from scratch on every call: there is no
transition table, and any status can follow any other once the underlying
facts (payment totals, today's date) change. Rules are checked in order and
the first match wins:

1. payments cover the principal        -> PAID
2. more than ``grace_period_days`` late -> DEFAULTED
3. past the due date                    -> OVERDUE
4. otherwise                            -> ACTIVE
"""

from datetime import date
from typing import Iterable

from loan_tracker.calculations.balance import total_paid
from loan_tracker.models import Loan, LoanStatus, Payment

DEFAULT_GRACE_PERIOD_DAYS = 30


def days_past_due(loan: Loan, today: date) -> int:
    """Days elapsed since the due date (negative while not yet due)."""
    return (today - loan.due_date).days


def resolve_status(
    loan: Loan,
    payments: Iterable[Payment],
    today: date,
    grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
) -> LoanStatus:
    """Classify a loan from its terms, its payments and today's date.

    Pure function: neither the loan nor the payments are modified, and the
    loan's stored ``status`` is not consulted.

    Parameters
    ----------
    loan : Loan
        Loan to classify.
    payments : Iterable[Payment]
        Payments to consider; payments of other loans are ignored.
    today : date
        Reference date.
    grace_period_days : int
        Days past due after which an overdue loan is defaulted.

    Returns
    -------
    LoanStatus
        Resolved status.
    """
    if total_paid(loan, payments) >= loan.principal:
        return LoanStatus.PAID

    late_by = days_past_due(loan, today)
    if late_by > grace_period_days:
        return LoanStatus.DEFAULTED
    if late_by > 0:
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE
