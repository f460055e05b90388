"""Balance calculations for a single loan."""

from decimal import Decimal
from typing import Iterable

from loan_tracker.models import Loan, LoanMetrics, Payment

ZERO = Decimal("0")


def _own_payments(loan: Loan, payments: Iterable[Payment]) -> list[Payment]:
    return [p for p in payments if p.loan_id == loan.loan_id]


def total_paid(loan: Loan, payments: Iterable[Payment]) -> Decimal:
    """Sum of ``amount`` over the payments that belong to ``loan``."""
    return sum((p.amount for p in _own_payments(loan, payments)), ZERO)


def remaining_balance(
    loan: Loan,
    payments: Iterable[Payment],
    *,
    clamp: bool = False,
) -> Decimal:
    """Principal still owed on a loan.

    Payments for other loans are ignored, so the full payment collection may
    be passed. Interest is not compounded here.

    Parameters
    ----------
    loan : Loan
        Loan whose balance is computed.
    payments : Iterable[Payment]
        Payments to consider.
    clamp : bool
        Report over-paid loans as ``0`` instead of a negative balance.

    Returns
    -------
    Decimal
        ``loan.principal`` minus the amounts paid.
    """
    balance = loan.principal - total_paid(loan, payments)
    if clamp and balance < ZERO:
        return ZERO
    return balance


def loan_metrics(
    loan: Loan,
    payments: Iterable[Payment],
    *,
    clamp: bool = False,
) -> LoanMetrics:
    """Principal, interest received, total received and balance for one loan."""
    own = _own_payments(loan, payments)
    return LoanMetrics(
        total_principal=loan.principal,
        total_interest=sum((p.interest for p in own), ZERO),
        total_paid=sum((p.amount for p in own), ZERO),
        remaining_balance=remaining_balance(loan, own, clamp=clamp),
    )
