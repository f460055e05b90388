"""Tests for loan status resolution."""

import copy
from datetime import timedelta

import pytest
from conftest import TODAY, make_loan, make_payment

from loan_tracker.calculations import DEFAULT_GRACE_PERIOD_DAYS, resolve_status
from loan_tracker.models import LoanStatus


class TestResolveStatus:
    """Priority-ordered classification of a loan."""

    def test_no_payments_future_due_date_is_active(self) -> None:
        assert resolve_status(make_loan(due_in_days=30), [], TODAY) == LoanStatus.ACTIVE

    def test_due_today_is_active(self) -> None:
        assert resolve_status(make_loan(due_in_days=0), [], TODAY) == LoanStatus.ACTIVE

    def test_one_day_late_is_overdue(self) -> None:
        assert resolve_status(make_loan(due_in_days=-1), [], TODAY) == LoanStatus.OVERDUE

    @pytest.mark.parametrize(
        ("grace", "expected"),
        [(5, LoanStatus.DEFAULTED), (15, LoanStatus.OVERDUE), (10, LoanStatus.OVERDUE), (9, LoanStatus.DEFAULTED)],
    )
    def test_ten_days_late_against_grace_threshold(self, grace: int, expected: LoanStatus) -> None:
        loan = make_loan(due_in_days=-10, issue_date=TODAY - timedelta(days=40))
        assert resolve_status(loan, [], TODAY, grace_period_days=grace) == expected

    def test_default_grace_period(self) -> None:
        loan = make_loan(due_in_days=-(DEFAULT_GRACE_PERIOD_DAYS + 1), issue_date=TODAY - timedelta(days=90))
        assert resolve_status(loan, [], TODAY) == LoanStatus.DEFAULTED

    def test_fully_paid_is_paid_regardless_of_due_date(self) -> None:
        for due_in_days in (30, 0, -5, -400):
            loan = make_loan(due_in_days=due_in_days, issue_date=TODAY - timedelta(days=500))
            payments = [make_payment("600", payment_id="a"), make_payment("400", payment_id="b")]
            assert resolve_status(loan, payments, TODAY, grace_period_days=5) == LoanStatus.PAID

    def test_overpaid_is_paid(self) -> None:
        assert resolve_status(make_loan(), [make_payment("2000")], TODAY) == LoanStatus.PAID

    def test_partial_payment_does_not_mark_paid(self) -> None:
        payments = [make_payment("300", payment_id="a"), make_payment("400", payment_id="b")]
        assert resolve_status(make_loan(), payments, TODAY) == LoanStatus.ACTIVE

    def test_zero_principal_is_paid(self) -> None:
        """Nothing is owed, so the paid rule matches before any date rule."""
        assert resolve_status(make_loan(principal="0"), [], TODAY) == LoanStatus.PAID

    def test_stored_status_is_ignored(self) -> None:
        loan = make_loan(status=LoanStatus.DEFAULTED)
        assert resolve_status(loan, [], TODAY) == LoanStatus.ACTIVE

    def test_any_status_reachable_from_any_other(self) -> None:
        loan = make_loan(due_in_days=5)
        assert resolve_status(loan, [], TODAY) == LoanStatus.ACTIVE
        assert resolve_status(loan, [], TODAY + timedelta(days=6), 5) == LoanStatus.OVERDUE
        assert resolve_status(loan, [], TODAY + timedelta(days=20), 5) == LoanStatus.DEFAULTED
        assert resolve_status(loan, [make_payment("1000")], TODAY + timedelta(days=20), 5) == LoanStatus.PAID
        assert resolve_status(loan, [], TODAY) == LoanStatus.ACTIVE

    def test_idempotent_and_does_not_mutate(self) -> None:
        loan = make_loan(due_in_days=-3)
        payments = [make_payment("100")]
        loan_before = copy.deepcopy(loan)
        payments_before = copy.deepcopy(payments)

        first = resolve_status(loan, payments, TODAY)
        second = resolve_status(loan, payments, TODAY)

        assert first == second == LoanStatus.OVERDUE
        assert loan == loan_before
        assert payments == payments_before
