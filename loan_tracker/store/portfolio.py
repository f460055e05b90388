"""Portfolio store: mutations with referential integrity and status upkeep."""

import logging
import uuid
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping

from loan_tracker.calculations import (
    dashboard_metrics,
    loan_metrics,
    overdue_loans,
    resolve_status,
    upcoming_due_loans,
)
from loan_tracker.config import CalculationConfig
from loan_tracker.exceptions import (
    ImportDataError,
    InvalidEntityStateError,
    ReferentialIntegrityError,
)
from loan_tracker.models import (
    AppSettings,
    Borrower,
    DashboardMetrics,
    Event,
    Loan,
    LoanMetrics,
    LoanStatus,
    Payment,
    PaymentFrequency,
    PaymentSchedule,
)
from loan_tracker.persistence.csv_bundle import export_csv, import_csv
from loan_tracker.persistence.repository import PortfolioRepository, PortfolioSnapshot
from loan_tracker.persistence.serialization import (
    parse_date,
    parse_decimal,
    parse_enum,
    parse_int,
    settings_from_dict,
)

logger = logging.getLogger(__name__)

EVENT_SOURCE = "loan_tracker.store"

BORROWER_FIELDS = frozenset({"name", "email", "phone"})
LOAN_FIELDS = frozenset(
    {
        "borrower_id",
        "principal",
        "interest_rate",
        "issue_date",
        "due_date",
        "frequency",
        "installments",
        "installment_amount",
        "payment_schedule",
        "notes",
    }
)
# Derived or identity fields that callers may never set
LOAN_READONLY_FIELDS = frozenset({"loan_id", "status", "borrower_name"})
PAYMENT_FIELDS = frozenset({"loan_id", "payment_date", "amount", "principal", "interest", "notes"})


def _new_id() -> str:
    return str(uuid.uuid4())


def _check_fields(entity: str, changes: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise InvalidEntityStateError(f"Cannot update {entity} field(s): {', '.join(unknown)}")


def _contact(value: Any) -> str | None:
    """Blank contact details are stored as ``None``."""
    if value is None:
        return None
    return str(value).strip() or None


def _coerce_loan_fields(values: dict[str, Any]) -> dict[str, Any]:
    """Normalize loan field values to their model types, validating them."""
    coerced = dict(values)
    for key in ("principal", "interest_rate"):
        if key in values:
            coerced[key] = parse_decimal(values, key)
    if "installment_amount" in values:
        coerced["installment_amount"] = parse_decimal(values, "installment_amount", optional=True)
    for key in ("issue_date", "due_date"):
        if key in values:
            coerced[key] = parse_date(values, key)
    if "frequency" in values:
        coerced["frequency"] = parse_enum(values, "frequency", PaymentFrequency)
    if "installments" in values:
        coerced["installments"] = parse_int(values, "installments", optional=True)
    if "payment_schedule" in values:
        schedule = values["payment_schedule"]
        if isinstance(schedule, Mapping):
            schedule = PaymentSchedule(parse_date(schedule, "next_payment_date"))
        elif schedule is not None and not isinstance(schedule, PaymentSchedule):
            # A bare date is accepted as the next payment date
            schedule = PaymentSchedule(parse_date({"next_payment_date": schedule}, "next_payment_date"))
        coerced["payment_schedule"] = schedule
    if "notes" in values:
        coerced["notes"] = values["notes"] or ""
    return coerced


def _coerce_payment_fields(values: dict[str, Any]) -> dict[str, Any]:
    coerced = dict(values)
    for key in ("amount", "principal", "interest"):
        if key in values:
            coerced[key] = parse_decimal(values, key)
    if "payment_date" in values:
        coerced["payment_date"] = parse_date(values, "payment_date")
    if "notes" in values:
        coerced["notes"] = values["notes"] or ""
    return coerced


@dataclass
class PortfolioStore:
    """In-memory portfolio with referential integrity and derived status.

    Every successful mutation ends with ``commit()``, which hands the whole
    snapshot to the repository (when one is attached) and then notifies
    subscribers of the events collected during the mutation. Failed
    mutations raise before touching any collection.
    """

    borrowers: dict[str, Borrower] = field(default_factory=dict)
    loans: dict[str, Loan] = field(default_factory=dict)
    payments: dict[str, Payment] = field(default_factory=dict)
    settings: AppSettings = field(default_factory=AppSettings)
    config: CalculationConfig = field(default_factory=CalculationConfig)
    repository: PortfolioRepository | None = None
    clock: Callable[[], date] = date.today

    _listeners: list[Callable[[Event], None]] = field(default_factory=list, repr=False)
    _pending_events: list[Event] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self.config.validate()

    @classmethod
    def from_repository(
        cls,
        repository: PortfolioRepository,
        config: CalculationConfig | None = None,
        clock: Callable[[], date] | None = None,
    ) -> "PortfolioStore":
        """Create a store backed by ``repository``, loading its snapshot if any."""
        store = cls(
            config=config or CalculationConfig(),
            repository=repository,
            clock=clock or date.today,
        )
        snapshot = repository.load()
        if snapshot is not None:
            store._replace_collections(snapshot.borrowers, snapshot.loans, snapshot.payments)
            store.settings = snapshot.settings
        return store

    # Commit / notify

    def subscribe(self, listener: Callable[[Event], None]) -> None:
        """Register a callback invoked with each event after commit."""
        self._listeners.append(listener)

    def snapshot(self) -> PortfolioSnapshot:
        """Current collections as a repository snapshot."""
        return PortfolioSnapshot(
            borrowers=list(self.borrowers.values()),
            loans=list(self.loans.values()),
            payments=list(self.payments.values()),
            settings=self.settings,
        )

    def commit(self) -> None:
        """Persist the current state and deliver pending events."""
        if self.repository is not None:
            self.repository.save(self.snapshot())
        events, self._pending_events = self._pending_events, []
        for event in events:
            for listener in self._listeners:
                listener(event)

    def _emit(self, event_type: str, subject: str, data: dict | None = None) -> None:
        self._pending_events.append(
            Event(
                event_id=_new_id(),
                event_type=event_type,
                event_time=datetime.now(timezone.utc),
                source=EVENT_SOURCE,
                subject=subject,
                data=data or {},
            )
        )

    def _today(self, today: date | None) -> date:
        return today if today is not None else self.clock()

    # Lookups

    def get_borrower(self, borrower_id: str) -> Borrower | None:
        return self.borrowers.get(borrower_id)

    def get_loan(self, loan_id: str) -> Loan | None:
        return self.loans.get(loan_id)

    def get_payment(self, payment_id: str) -> Payment | None:
        return self.payments.get(payment_id)

    def get_loans_by_borrower_id(self, borrower_id: str) -> list[Loan]:
        """Get all loans for a borrower."""
        return [loan for loan in self.loans.values() if loan.borrower_id == borrower_id]

    def get_payments_by_loan_id(self, loan_id: str) -> list[Payment]:
        """Get all payments for a loan."""
        return [p for p in self.payments.values() if p.loan_id == loan_id]

    # Borrowers

    def create_borrower(
        self,
        name: str,
        email: str | None = None,
        phone: str | None = None,
    ) -> Borrower:
        """Add a borrower with a freshly assigned id."""
        if not name or not name.strip():
            raise InvalidEntityStateError("Borrower name is required")

        borrower = Borrower(
            borrower_id=_new_id(),
            name=name.strip(),
            email=_contact(email),
            phone=_contact(phone),
        )
        self.borrowers[borrower.borrower_id] = borrower
        self._emit("borrower.created", borrower.borrower_id, {"name": borrower.name})
        self.commit()

        logger.info(
            "Created borrower %s (%s)",
            borrower.borrower_id,
            borrower.name,
            extra={"event": "borrower.created", "borrower_id": borrower.borrower_id},
        )
        return borrower

    def update_borrower(self, borrower_id: str, **changes: Any) -> Borrower | None:
        """Update borrower fields. Renaming re-syncs the cached name on loans."""
        borrower = self.borrowers.get(borrower_id)
        if borrower is None:
            return None

        _check_fields("borrower", changes, BORROWER_FIELDS)
        if "name" in changes and (not changes["name"] or not str(changes["name"]).strip()):
            raise InvalidEntityStateError("Borrower name is required")

        if "name" in changes:
            borrower.name = str(changes["name"]).strip()
            for loan in self.get_loans_by_borrower_id(borrower_id):
                loan.borrower_name = borrower.name
        if "email" in changes:
            borrower.email = _contact(changes["email"])
        if "phone" in changes:
            borrower.phone = _contact(changes["phone"])

        self._emit("borrower.updated", borrower_id, {"fields": sorted(changes)})
        self.commit()
        return borrower

    def delete_borrower(self, borrower_id: str) -> bool:
        """Delete a borrower that no loan references.

        Raises
        ------
        ReferentialIntegrityError
            If any loan still references the borrower.
        """
        if borrower_id not in self.borrowers:
            return False

        loan_count = len(self.get_loans_by_borrower_id(borrower_id))
        if loan_count:
            logger.warning(
                "Refused to delete borrower %s: referenced by %d loan(s)",
                borrower_id,
                loan_count,
                extra={"event": "borrower.delete_refused", "borrower_id": borrower_id},
            )
            raise ReferentialIntegrityError(
                f"Borrower {borrower_id} has {loan_count} loan(s) and cannot be deleted"
            )

        del self.borrowers[borrower_id]
        self._emit("borrower.deleted", borrower_id)
        self.commit()

        logger.info(
            "Deleted borrower %s",
            borrower_id,
            extra={"event": "borrower.deleted", "borrower_id": borrower_id},
        )
        return True

    # Loans

    def new_loan_defaults(self) -> dict[str, Any]:
        """Values used to pre-fill a new loan from the settings."""
        return {
            "interest_rate": self.settings.default_interest_rate,
            "frequency": self.settings.default_payment_frequency,
            "installments": self.settings.default_installments,
        }

    def create_loan(
        self,
        borrower_id: str,
        principal: Any,
        issue_date: date | str,
        due_date: date | str,
        interest_rate: Any = None,
        frequency: PaymentFrequency | str | None = None,
        installments: int | None = None,
        installment_amount: Any = None,
        payment_schedule: PaymentSchedule | None = None,
        notes: str = "",
    ) -> Loan:
        """Issue a loan to an existing borrower.

        Omitted rate, frequency and installment count come from the settings.
        The loan starts ``active`` unless ``resolve_status_on_create`` is set.

        Raises
        ------
        ReferentialIntegrityError
            If the borrower does not exist.
        """
        borrower = self.borrowers.get(borrower_id)
        if borrower is None:
            logger.warning(
                "Refused loan for unknown borrower %s",
                borrower_id,
                extra={"event": "loan.create_refused", "borrower_id": borrower_id},
            )
            raise ReferentialIntegrityError(f"Borrower {borrower_id} not found")

        defaults = self.new_loan_defaults()
        values = _coerce_loan_fields(
            {
                "principal": principal,
                "interest_rate": defaults["interest_rate"] if interest_rate is None else interest_rate,
                "issue_date": issue_date,
                "due_date": due_date,
                "frequency": frequency or defaults["frequency"],
                "installments": defaults["installments"] if installments is None else installments,
                "installment_amount": installment_amount,
                "payment_schedule": payment_schedule,
                "notes": notes,
            }
        )

        loan = Loan(
            loan_id=_new_id(),
            borrower_id=borrower_id,
            borrower_name=borrower.name,
            status=LoanStatus.ACTIVE,
            **values,
        )
        self.loans[loan.loan_id] = loan
        self._emit(
            "loan.created",
            loan.loan_id,
            {"borrower_id": borrower_id, "principal": str(loan.principal)},
        )
        if self.config.resolve_status_on_create:
            self._reconcile([loan], self.clock())
        self.commit()

        logger.info(
            "Created loan %s for borrower %s: principal=%s due=%s",
            loan.loan_id,
            borrower_id,
            loan.principal,
            loan.due_date.isoformat(),
            extra={"event": "loan.created", "loan_id": loan.loan_id, "borrower_id": borrower_id},
        )
        return loan

    def update_loan(self, loan_id: str, **changes: Any) -> Loan | None:
        """Update loan terms.

        Changing ``borrower_id`` re-syncs ``borrower_name``; changing the
        principal or due date re-resolves the status.
        """
        loan = self.loans.get(loan_id)
        if loan is None:
            return None

        readonly = sorted(set(changes) & LOAN_READONLY_FIELDS)
        if readonly:
            raise InvalidEntityStateError(f"Loan field(s) are derived or fixed: {', '.join(readonly)}")
        _check_fields("loan", changes, LOAN_FIELDS)

        values = _coerce_loan_fields(changes)
        new_borrower = None
        if "borrower_id" in values:
            new_borrower = self.borrowers.get(values["borrower_id"])
            if new_borrower is None:
                raise ReferentialIntegrityError(f"Borrower {values['borrower_id']} not found")

        for key, value in values.items():
            setattr(loan, key, value)
        if new_borrower is not None:
            loan.borrower_name = new_borrower.name

        self._emit("loan.updated", loan_id, {"fields": sorted(changes)})
        if "principal" in values or "due_date" in values:
            self._reconcile([loan], self.clock())
        self.commit()
        return loan

    def delete_loan(self, loan_id: str) -> bool:
        """Delete a loan together with all of its payments."""
        if loan_id not in self.loans:
            return False

        payment_ids = [p.payment_id for p in self.get_payments_by_loan_id(loan_id)]
        for payment_id in payment_ids:
            del self.payments[payment_id]
        del self.loans[loan_id]

        self._emit("loan.deleted", loan_id, {"payments_deleted": len(payment_ids)})
        self.commit()

        logger.info(
            "Deleted loan %s and %d payment(s)",
            loan_id,
            len(payment_ids),
            extra={"event": "loan.deleted", "loan_id": loan_id},
        )
        return True

    # Payments

    def create_payment(
        self,
        loan_id: str,
        payment_date: date | str,
        amount: Any,
        principal: Any,
        interest: Any,
        notes: str = "",
    ) -> Payment:
        """Record a payment against an existing loan.

        With ``mark_paid_on_payment`` (the default) the loan is marked paid
        as soon as any payment is recorded, even a partial one. Otherwise
        the loan is re-resolved from its payments.

        Raises
        ------
        ReferentialIntegrityError
            If the loan does not exist.
        """
        loan = self.loans.get(loan_id)
        if loan is None:
            logger.warning(
                "Refused payment for unknown loan %s",
                loan_id,
                extra={"event": "payment.create_refused", "loan_id": loan_id},
            )
            raise ReferentialIntegrityError(f"Loan {loan_id} not found")

        values = _coerce_payment_fields(
            {
                "payment_date": payment_date,
                "amount": amount,
                "principal": principal,
                "interest": interest,
                "notes": notes,
            }
        )
        payment = Payment(payment_id=_new_id(), loan_id=loan_id, **values)
        self.payments[payment.payment_id] = payment
        self._emit("payment.created", payment.payment_id, {"loan_id": loan_id, "amount": str(payment.amount)})

        if self.config.mark_paid_on_payment:
            self._set_status(loan, LoanStatus.PAID)
        else:
            self._reconcile([loan], self.clock())
        self.commit()

        logger.info(
            "Recorded payment %s of %s on loan %s",
            payment.payment_id,
            payment.amount,
            loan_id,
            extra={
                "event": "payment.created",
                "payment_id": payment.payment_id,
                "loan_id": loan_id,
                "amount": payment.amount,
            },
        )
        return payment

    def update_payment(self, payment_id: str, **changes: Any) -> Payment | None:
        """Update a payment and re-resolve the loan(s) it belongs to."""
        payment = self.payments.get(payment_id)
        if payment is None:
            return None

        _check_fields("payment", changes, PAYMENT_FIELDS)
        values = _coerce_payment_fields(changes)
        if "loan_id" in values and values["loan_id"] not in self.loans:
            raise ReferentialIntegrityError(f"Loan {values['loan_id']} not found")

        affected = {payment.loan_id}
        for key, value in values.items():
            setattr(payment, key, value)
        affected.add(payment.loan_id)

        self._emit("payment.updated", payment_id, {"fields": sorted(changes)})
        self._reconcile([self.loans[lid] for lid in sorted(affected)], self.clock())
        self.commit()
        return payment

    def delete_payment(self, payment_id: str) -> bool:
        """Delete a payment and re-resolve its loan."""
        payment = self.payments.pop(payment_id, None)
        if payment is None:
            return False

        self._emit("payment.deleted", payment_id, {"loan_id": payment.loan_id})
        loan = self.loans.get(payment.loan_id)
        if loan is not None:
            self._reconcile([loan], self.clock())
        self.commit()

        logger.info(
            "Deleted payment %s from loan %s",
            payment_id,
            payment.loan_id,
            extra={"event": "payment.deleted", "payment_id": payment_id, "loan_id": payment.loan_id},
        )
        return True

    # Status upkeep

    def _set_status(self, loan: Loan, status: LoanStatus) -> bool:
        if loan.status == status:
            return False
        previous = loan.status
        loan.status = status
        self._emit(
            "loan.status_changed",
            loan.loan_id,
            {"from": previous.value, "to": status.value},
        )
        logger.info(
            "Loan %s status %s -> %s",
            loan.loan_id,
            previous.value,
            status.value,
            extra={
                "event": "loan.status_changed",
                "loan_id": loan.loan_id,
                "status_from": previous.value,
                "status_to": status.value,
            },
        )
        return True

    def _reconcile(self, loans: list[Loan], today: date) -> list[Loan]:
        """Re-resolve ``loans`` and return those whose status changed."""
        changed = []
        for loan in loans:
            status = resolve_status(
                loan,
                self.get_payments_by_loan_id(loan.loan_id),
                today,
                self.config.grace_period_days,
            )
            if self._set_status(loan, status):
                changed.append(loan)
        return changed

    def refresh_statuses(self, today: date | None = None) -> list[Loan]:
        """Re-resolve every loan. Commits only when a status changed."""
        changed = self._reconcile(list(self.loans.values()), self._today(today))
        if changed:
            self.commit()
        return changed

    # Derived reads

    def loan_metrics(self, loan_id: str) -> LoanMetrics:
        """Metrics for one loan; all zero when the loan does not exist."""
        loan = self.loans.get(loan_id)
        if loan is None:
            return LoanMetrics()
        return loan_metrics(
            loan,
            self.get_payments_by_loan_id(loan_id),
            clamp=self.config.clamp_negative_balance,
        )

    def dashboard_metrics(self, today: date | None = None) -> DashboardMetrics:
        return dashboard_metrics(
            list(self.loans.values()),
            list(self.payments.values()),
            list(self.borrowers.values()),
            self._today(today),
            clamp=self.config.clamp_negative_balance,
        )

    def overdue_loans(self) -> list[Loan]:
        return overdue_loans(self.loans.values())

    def upcoming_due_loans(self, days: int | None = None, today: date | None = None) -> list[Loan]:
        horizon = self.config.upcoming_horizon_days if days is None else days
        return upcoming_due_loans(self.loans.values(), horizon, self._today(today))

    # Settings

    def update_settings(self, **changes: Any) -> AppSettings:
        """Merge ``changes`` into the settings after validating them.

        Raises
        ------
        InvalidEntityStateError
            For unknown fields, blank values or values that do not parse.
        """
        _check_fields("settings", changes, frozenset(f.name for f in fields(AppSettings)))
        blank = sorted(
            key
            for key, value in changes.items()
            if value is None or (isinstance(value, str) and not value.strip())
        )
        if blank:
            raise InvalidEntityStateError(f"Settings cannot be blank: {', '.join(blank)}")
        self.settings = settings_from_dict(changes, base=self.settings)
        self._emit("settings.updated", "settings", {"fields": sorted(changes)})
        self.commit()
        return self.settings

    # Bulk import/export

    def export_data(self) -> str:
        """Sectioned CSV with every borrower, loan and payment."""
        return export_csv(self.borrowers.values(), self.loans.values(), self.payments.values())

    def import_data(self, text: str) -> dict[str, int]:
        """Replace all collections with the contents of a CSV bundle.

        Stored statuses are kept as imported.

        Raises
        ------
        ImportDataError
            If the bundle is malformed. The store is left untouched.
        """
        try:
            bundle = import_csv(text)
        except ImportDataError as exc:
            logger.warning("Import rejected: %s", exc, extra={"event": "portfolio.import_rejected"})
            raise

        self._replace_collections(bundle.borrowers, bundle.loans, bundle.payments)
        counts = self.summary()
        self._emit("portfolio.imported", "portfolio", counts)
        self.commit()

        logger.info(
            "Imported %d borrowers, %d loans, %d payments",
            counts["borrowers"],
            counts["loans"],
            counts["payments"],
            extra={"event": "portfolio.imported"},
        )
        return counts

    def _replace_collections(
        self,
        borrowers: list[Borrower],
        loans: list[Loan],
        payments: list[Payment],
    ) -> None:
        self.borrowers = {b.borrower_id: b for b in borrowers}
        self.loans = {loan.loan_id: loan for loan in loans}
        self.payments = {p.payment_id: p for p in payments}

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "borrowers": len(self.borrowers),
            "loans": len(self.loans),
            "payments": len(self.payments),
        }
