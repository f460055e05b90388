"""Serialization between entities and plain JSON-compatible values.

``to_dict`` / ``serialize_value`` turn entities into dicts of strings,
numbers and ``None``. The ``*_from_dict`` functions go the other way and
validate the data-model invariants, raising ``InvalidEntityStateError`` on
the first violation.
"""

from dataclasses import asdict, fields, is_dataclass, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, TypeVar

from loan_tracker.exceptions import InvalidEntityStateError
from loan_tracker.models import (
    AppSettings,
    Borrower,
    Loan,
    LoanStatus,
    Payment,
    PaymentFrequency,
    PaymentSchedule,
)

E = TypeVar("E", bound=Enum)


def to_dict(obj: Any) -> dict:
    """Convert object to dictionary."""
    if is_dataclass(obj):
        return dataclass_to_dict(obj)
    elif isinstance(obj, dict):
        return obj
    else:
        return {"value": str(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Convert dataclass to dict with proper serialization."""
    result = {}
    for key, value in asdict(obj).items():
        result[key] = serialize_value(value)
    return result


def to_dict_fast(obj: Any) -> dict:
    """Convert a flat dataclass without the deep copy done by ``asdict``.

    Only safe for entities without nested dataclasses (Borrower, Payment).
    """
    return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


# Parsing helpers


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_id(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if _blank(value):
        raise InvalidEntityStateError(f"{key} is required")
    return str(value).strip()


def parse_text(data: Mapping[str, Any], key: str, *, optional: bool = False) -> str | None:
    value = data.get(key)
    if optional and _blank(value):
        return None
    if value is None:
        return ""
    return str(value)


def parse_decimal(
    data: Mapping[str, Any],
    key: str,
    *,
    optional: bool = False,
    non_negative: bool = True,
) -> Decimal | None:
    value = data.get(key)
    if _blank(value):
        if optional:
            return None
        raise InvalidEntityStateError(f"{key} is required")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidEntityStateError(f"{key} is not a number: {value!r}") from exc
    if not number.is_finite():
        raise InvalidEntityStateError(f"{key} must be finite, got {value!r}")
    if non_negative and number < 0:
        raise InvalidEntityStateError(f"{key} must be non-negative, got {value!r}")
    return number


def parse_date(data: Mapping[str, Any], key: str, *, optional: bool = False) -> date | None:
    value = data.get(key)
    if _blank(value):
        if optional:
            return None
        raise InvalidEntityStateError(f"{key} is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        # Accept full timestamps as written by older exports
        return datetime.fromisoformat(text).date() if "T" in text else date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidEntityStateError(f"{key} is not an ISO date: {value!r}") from exc


def parse_int(data: Mapping[str, Any], key: str, *, optional: bool = False) -> int | None:
    value = data.get(key)
    if _blank(value):
        if optional:
            return None
        raise InvalidEntityStateError(f"{key} is required")
    try:
        number = int(str(value).strip())
    except ValueError as exc:
        raise InvalidEntityStateError(f"{key} is not an integer: {value!r}") from exc
    if number < 0:
        raise InvalidEntityStateError(f"{key} must be non-negative, got {value!r}")
    return number


def parse_enum(data: Mapping[str, Any], key: str, enum_type: type[E]) -> E:
    value = data.get(key)
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise InvalidEntityStateError(f"{key} must be one of {allowed}, got {value!r}") from exc


# Entity constructors


def borrower_from_dict(data: Mapping[str, Any]) -> Borrower:
    """Build a validated Borrower."""
    name = parse_text(data, "name")
    if not name.strip():
        raise InvalidEntityStateError("name is required")
    return Borrower(
        borrower_id=parse_id(data, "borrower_id"),
        name=name,
        email=parse_text(data, "email", optional=True),
        phone=parse_text(data, "phone", optional=True),
    )


def loan_from_dict(data: Mapping[str, Any]) -> Loan:
    """Build a validated Loan.

    The schedule may be given nested (``payment_schedule``) or flattened
    (``next_payment_date``), which is how the CSV bundle carries it.
    """
    schedule_data = data.get("payment_schedule")
    if isinstance(schedule_data, Mapping):
        next_payment = parse_date(schedule_data, "next_payment_date")
    else:
        next_payment = parse_date(data, "next_payment_date", optional=True)

    return Loan(
        loan_id=parse_id(data, "loan_id"),
        borrower_id=parse_id(data, "borrower_id"),
        borrower_name=parse_text(data, "borrower_name"),
        principal=parse_decimal(data, "principal"),
        interest_rate=parse_decimal(data, "interest_rate"),
        issue_date=parse_date(data, "issue_date"),
        due_date=parse_date(data, "due_date"),
        status=parse_enum(data, "status", LoanStatus),
        frequency=parse_enum(data, "frequency", PaymentFrequency),
        installments=parse_int(data, "installments", optional=True),
        installment_amount=parse_decimal(data, "installment_amount", optional=True),
        payment_schedule=PaymentSchedule(next_payment) if next_payment else None,
        notes=parse_text(data, "notes"),
    )


def payment_from_dict(data: Mapping[str, Any]) -> Payment:
    """Build a validated Payment."""
    return Payment(
        payment_id=parse_id(data, "payment_id"),
        loan_id=parse_id(data, "loan_id"),
        payment_date=parse_date(data, "payment_date"),
        amount=parse_decimal(data, "amount"),
        principal=parse_decimal(data, "principal"),
        interest=parse_decimal(data, "interest"),
        notes=parse_text(data, "notes"),
    )


def settings_from_dict(data: Mapping[str, Any], base: AppSettings | None = None) -> AppSettings:
    """Build AppSettings from ``data``.

    Missing or blank keys keep the value from ``base``, or the defaults when
    no base is given. ``base`` itself is not modified.
    """
    settings = replace(base) if base is not None else AppSettings()
    rate = parse_decimal(data, "default_interest_rate", optional=True)
    if rate is not None:
        settings.default_interest_rate = rate
    if not _blank(data.get("default_payment_frequency")):
        settings.default_payment_frequency = parse_enum(
            data, "default_payment_frequency", PaymentFrequency
        )
    installments = parse_int(data, "default_installments", optional=True)
    if installments is not None:
        settings.default_installments = installments
    currency = parse_text(data, "currency", optional=True)
    if currency is not None:
        settings.currency = currency
    return settings
