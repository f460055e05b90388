"""Portfolio-wide aggregates and filtered views."""

from collections import Counter, defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from loan_tracker.calculations.balance import ZERO, remaining_balance
from loan_tracker.models import Borrower, DashboardMetrics, Loan, LoanStatus, Payment

OVERDUE_STATUSES = frozenset({LoanStatus.OVERDUE, LoanStatus.DEFAULTED})


def _payments_by_loan(payments: Iterable[Payment]) -> dict[str, list[Payment]]:
    grouped: dict[str, list[Payment]] = defaultdict(list)
    for payment in payments:
        grouped[payment.loan_id].append(payment)
    return grouped


def status_distribution(loans: Iterable[Loan]) -> dict[LoanStatus, int]:
    """Count loans per status. Every status is present, possibly with 0."""
    counts = Counter(loan.status for loan in loans)
    return {status: counts.get(status, 0) for status in LoanStatus}


def received_in_month(payments: Iterable[Payment], today: date) -> Decimal:
    """Total received during ``today``'s calendar month."""
    return sum(
        (
            p.amount
            for p in payments
            if p.payment_date.year == today.year and p.payment_date.month == today.month
        ),
        ZERO,
    )


def overdue_loans(loans: Iterable[Loan]) -> list[Loan]:
    """Loans whose stored status is overdue or defaulted."""
    return [loan for loan in loans if loan.status in OVERDUE_STATUSES]


def upcoming_due_loans(
    loans: Iterable[Loan],
    horizon_days: int,
    today: date,
) -> list[Loan]:
    """Active loans whose next scheduled payment falls within the horizon.

    The window is ``[today, today + horizon_days]``, both ends inclusive.
    Loans without a payment schedule are never returned, even when their
    due date is close.
    """
    until = today + timedelta(days=horizon_days)
    return [
        loan
        for loan in loans
        if loan.status == LoanStatus.ACTIVE
        and loan.payment_schedule is not None
        and today <= loan.payment_schedule.next_payment_date <= until
    ]


def dashboard_metrics(
    loans: Sequence[Loan],
    payments: Sequence[Payment],
    borrowers: Sequence[Borrower],
    today: date,
    *,
    clamp: bool = False,
) -> DashboardMetrics:
    """Compute dashboard figures over the whole portfolio.

    Parameters
    ----------
    loans : Sequence[Loan]
        All loans.
    payments : Sequence[Payment]
        All payments.
    borrowers : Sequence[Borrower]
        All borrowers.
    today : date
        Reference date for the monthly receipts.
    clamp : bool
        Clamp over-paid balances at zero when summing overdue exposure.

    Returns
    -------
    DashboardMetrics
        Freshly computed metrics.
    """
    by_loan = _payments_by_loan(payments)
    counts = status_distribution(loans)

    total_overdue = sum(
        (
            remaining_balance(loan, by_loan.get(loan.loan_id, []), clamp=clamp)
            for loan in overdue_loans(loans)
        ),
        ZERO,
    )

    return DashboardMetrics(
        total_loaned=sum((loan.principal for loan in loans), ZERO),
        total_interest_accrued=sum((p.interest for p in payments), ZERO),
        total_overdue=total_overdue,
        total_borrowers=len(borrowers),
        active_loan_count=counts[LoanStatus.ACTIVE],
        paid_loan_count=counts[LoanStatus.PAID],
        overdue_loan_count=counts[LoanStatus.OVERDUE],
        defaulted_loan_count=counts[LoanStatus.DEFAULTED],
        total_received_this_month=received_in_month(payments, today),
    )
