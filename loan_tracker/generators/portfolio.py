"""Sample portfolio generator for demos and empty installations."""

from __future__ import annotations

import logging
import random
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from loan_tracker.generators.base import BaseGenerator
from loan_tracker.models import Loan, PaymentFrequency, PaymentSchedule
from loan_tracker.store.portfolio import PortfolioStore

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class PortfolioGenerator(BaseGenerator):
    """Populate a store with synthetic borrowers, loans and payments.

    Everything goes through the store's public operations, so the usual
    integrity rules and status updates apply to generated data.
    """

    FREQUENCIES = list(PaymentFrequency)
    FREQUENCY_WEIGHTS = [0.10, 0.10, 0.55, 0.10, 0.10, 0.05]

    # Monthly-equivalent interest rates offered, in percent
    INTEREST_RATES = [Decimal("1.5"), Decimal("2"), Decimal("3"), Decimal("5"), Decimal("8")]
    INSTALLMENT_COUNTS = [1, 3, 6, 10, 12]
    TERM_DAYS = [30, 60, 90, 180, 365]

    def populate(
        self,
        store: PortfolioStore,
        num_borrowers: int = 10,
        max_loans_per_borrower: int = 2,
        payment_rate: float = 0.6,
        today: date | None = None,
    ) -> dict[str, int]:
        """Generate a portfolio into ``store``.

        Parameters
        ----------
        store : PortfolioStore
            Target store.
        num_borrowers : int
            Number of borrowers to create.
        max_loans_per_borrower : int
            Each borrower gets between 0 and this many loans.
        payment_rate : float
            Probability that a loan has any payments recorded (0.0 to 1.0).
        today : date | None
            Reference date; defaults to the store's clock.

        Returns
        -------
        dict[str, int]
            Store summary after generation.
        """
        today = today or store.clock()
        logger.info("Generating sample portfolio: %d borrowers", num_borrowers)

        for _ in range(num_borrowers):
            borrower = store.create_borrower(
                name=self.fake.name(),
                email=self.fake.email(),
                phone=self.fake.phone_number(),
            )
            for _ in range(random.randint(0, max_loans_per_borrower)):
                loan = self._generate_loan(store, borrower.borrower_id, today)
                if random.random() < payment_rate:
                    self._generate_payments(store, loan, today)

        # Recorded payments mark loans paid; classify against today instead
        store.refresh_statuses(today)

        summary = store.summary()
        logger.info(
            "Generated %d borrowers, %d loans, %d payments",
            summary["borrowers"],
            summary["loans"],
            summary["payments"],
        )
        return summary

    def _generate_loan(self, store: PortfolioStore, borrower_id: str, today: date) -> Loan:
        principal = Decimal(random.randint(5, 200) * 100)
        installments = random.choice(self.INSTALLMENT_COUNTS)
        issue_date = today - timedelta(days=random.randint(0, 365))
        due_date = issue_date + timedelta(days=random.choice(self.TERM_DAYS))

        schedule = None
        if due_date >= today:
            next_payment = today + timedelta(days=random.randint(0, 14))
            schedule = PaymentSchedule(next_payment_date=min(next_payment, due_date))

        return store.create_loan(
            borrower_id=borrower_id,
            principal=principal,
            interest_rate=random.choice(self.INTEREST_RATES),
            issue_date=issue_date,
            due_date=due_date,
            frequency=random.choices(self.FREQUENCIES, weights=self.FREQUENCY_WEIGHTS, k=1)[0],
            installments=installments,
            installment_amount=(principal / installments).quantize(CENTS, ROUND_HALF_UP),
            payment_schedule=schedule,
            notes=self.fake.sentence() if random.random() < 0.3 else "",
        )

    def _generate_payments(self, store: PortfolioStore, loan: Loan, today: date) -> None:
        """Record between one and ``loan.installments`` payments up to today."""
        count = random.randint(1, loan.installments or 1)
        last_day = min(today, loan.due_date)
        span = max((last_day - loan.issue_date).days, 0)
        principal_part = loan.installment_amount or loan.principal

        for _ in range(count):
            interest = (principal_part * loan.interest_rate / 100).quantize(CENTS, ROUND_HALF_UP)
            store.create_payment(
                loan_id=loan.loan_id,
                payment_date=loan.issue_date + timedelta(days=random.randint(0, span)),
                amount=principal_part + interest,
                principal=principal_part,
                interest=interest,
            )
