"""Pytest configuration and fixtures."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from loan_tracker.config import CalculationConfig
from loan_tracker.models import Borrower, Loan, LoanStatus, Payment, PaymentFrequency
from loan_tracker.store import PortfolioStore

TODAY = date(2024, 6, 15)


def make_loan(
    loan_id: str = "loan-test-001",
    principal: str = "1000",
    due_in_days: int = 30,
    status: LoanStatus = LoanStatus.ACTIVE,
    **overrides,
) -> Loan:
    """Build a loan relative to ``TODAY``."""
    values = dict(
        loan_id=loan_id,
        borrower_id="borrower-test-001",
        borrower_name="Ana",
        principal=Decimal(principal),
        interest_rate=Decimal("5"),
        issue_date=TODAY - timedelta(days=1),
        due_date=TODAY + timedelta(days=due_in_days),
        status=status,
        frequency=PaymentFrequency.MONTHLY,
    )
    values.update(overrides)
    return Loan(**values)


def make_payment(
    amount: str,
    loan_id: str = "loan-test-001",
    payment_id: str | None = None,
    payment_date: date = TODAY,
    interest: str = "0",
) -> Payment:
    """Build a payment whose principal component is ``amount - interest``."""
    return Payment(
        payment_id=payment_id or f"pay-{loan_id}-{amount}-{payment_date.isoformat()}",
        loan_id=loan_id,
        payment_date=payment_date,
        amount=Decimal(amount),
        principal=Decimal(amount) - Decimal(interest),
        interest=Decimal(interest),
    )


@pytest.fixture
def today() -> date:
    """Fixed reference date for reproducible tests."""
    return TODAY


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def config() -> CalculationConfig:
    """Default calculation rules."""
    return CalculationConfig()


@pytest.fixture
def store(config: CalculationConfig) -> PortfolioStore:
    """Fresh store whose clock is pinned to ``TODAY``."""
    return PortfolioStore(config=config, clock=lambda: TODAY)


@pytest.fixture
def borrower(store: PortfolioStore) -> Borrower:
    """Borrower already registered in ``store``."""
    return store.create_borrower("Ana", email="ana@example.com", phone="+55 11 99999-0000")


@pytest.fixture
def loan(store: PortfolioStore, borrower: Borrower) -> Loan:
    """1000 principal at 5%, issued today and due in 30 days."""
    return store.create_loan(
        borrower_id=borrower.borrower_id,
        principal=Decimal("1000"),
        interest_rate=Decimal("5"),
        issue_date=TODAY,
        due_date=TODAY + timedelta(days=30),
    )
