"""Sectioned CSV format for bulk export and import.

A bundle holds three labeled sections, each a CSV table with its own
header row::

    [BORROWERS]
    borrower_id,name,email,phone
    b1,Ana,ana@example.com,
    <blank line>
    [LOANS]
    loan_id,borrower_id,...
    ...
    <blank line>
    [PAYMENTS]
    payment_id,loan_id,...

Import is all-or-nothing: every row is validated and every cross-section
reference is checked before anything is returned.
"""

import csv
import io
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from loan_tracker.exceptions import ImportDataError, InvalidEntityStateError
from loan_tracker.models import Borrower, Loan, Payment
from loan_tracker.persistence.serialization import (
    borrower_from_dict,
    loan_from_dict,
    payment_from_dict,
    serialize_value,
)

BORROWERS = "BORROWERS"
LOANS = "LOANS"
PAYMENTS = "PAYMENTS"
SECTIONS = (BORROWERS, LOANS, PAYMENTS)

BORROWER_COLUMNS = ["borrower_id", "name", "email", "phone"]
LOAN_COLUMNS = [
    "loan_id",
    "borrower_id",
    "borrower_name",
    "principal",
    "interest_rate",
    "issue_date",
    "due_date",
    "status",
    "frequency",
    "installments",
    "installment_amount",
    "next_payment_date",
    "notes",
]
PAYMENT_COLUMNS = [
    "payment_id",
    "loan_id",
    "payment_date",
    "amount",
    "principal",
    "interest",
    "notes",
]

COLUMNS = {BORROWERS: BORROWER_COLUMNS, LOANS: LOAN_COLUMNS, PAYMENTS: PAYMENT_COLUMNS}


@dataclass
class CsvBundle:
    """Collections parsed from a bundle."""

    borrowers: list[Borrower] = field(default_factory=list)
    loans: list[Loan] = field(default_factory=list)
    payments: list[Payment] = field(default_factory=list)


def _cell(value: Any) -> str:
    value = serialize_value(value)
    return "" if value is None else str(value)


def _loan_row(loan: Loan) -> list[str]:
    next_payment = loan.payment_schedule.next_payment_date if loan.payment_schedule else None
    return [
        _cell(v)
        for v in (
            loan.loan_id,
            loan.borrower_id,
            loan.borrower_name,
            loan.principal,
            loan.interest_rate,
            loan.issue_date,
            loan.due_date,
            loan.status,
            loan.frequency,
            loan.installments,
            loan.installment_amount,
            next_payment,
            loan.notes,
        )
    ]


def export_csv(
    borrowers: Iterable[Borrower],
    loans: Iterable[Loan],
    payments: Iterable[Payment],
) -> str:
    """Write the three collections as a sectioned CSV document."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow([f"[{BORROWERS}]"])
    writer.writerow(BORROWER_COLUMNS)
    for b in borrowers:
        writer.writerow([_cell(b.borrower_id), _cell(b.name), _cell(b.email), _cell(b.phone)])
    writer.writerow([])

    writer.writerow([f"[{LOANS}]"])
    writer.writerow(LOAN_COLUMNS)
    for loan in loans:
        writer.writerow(_loan_row(loan))
    writer.writerow([])

    writer.writerow([f"[{PAYMENTS}]"])
    writer.writerow(PAYMENT_COLUMNS)
    for p in payments:
        writer.writerow(
            [
                _cell(v)
                for v in (
                    p.payment_id,
                    p.loan_id,
                    p.payment_date,
                    p.amount,
                    p.principal,
                    p.interest,
                    p.notes,
                )
            ]
        )

    return buffer.getvalue()


def _section_marker(row: list[str]) -> str | None:
    """Section name of a marker row, or ``None`` for any other row.

    Spreadsheets pad every row to the table width, so trailing empty cells
    after the marker are ignored.
    """
    if any(cell.strip() for cell in row[1:]):
        return None
    text = row[0].strip()
    if text.startswith("[") and text.endswith("]"):
        return text[1:-1].strip().upper()
    return None


def _split_sections(text: str) -> dict[str, list[tuple[int, list[str]]]]:
    """Group CSV records by section, keeping their line numbers."""
    sections: dict[str, list[tuple[int, list[str]]]] = {}
    current: str | None = None
    reader = csv.reader(io.StringIO(text.removeprefix("\ufeff")))

    try:
        for row in reader:
            if not row or all(not cell.strip() for cell in row):
                continue
            marker = _section_marker(row)
            if marker is not None:
                if marker not in SECTIONS:
                    raise ImportDataError(f"Unknown section [{marker}] at line {reader.line_num}")
                if marker in sections:
                    raise ImportDataError(f"Duplicate section [{marker}] at line {reader.line_num}")
                sections[marker] = []
                current = marker
                continue
            if current is None:
                raise ImportDataError(f"Data before the first section at line {reader.line_num}")
            sections[current].append((reader.line_num, row))
    except csv.Error as exc:
        raise ImportDataError(f"Unreadable CSV: {exc}") from exc

    missing = [name for name in SECTIONS if name not in sections]
    if missing:
        raise ImportDataError(
            "Missing required sections: " + ", ".join(f"[{name}]" for name in missing)
        )
    return sections


def _parse_section(
    name: str,
    records: list[tuple[int, list[str]]],
    build: Callable[[dict[str, str]], Any],
    id_attr: str,
) -> list[Any]:
    if not records:
        raise ImportDataError(f"Section [{name}] has no header row")

    _, header = records[0]
    header = [column.strip() for column in header]
    absent = [column for column in COLUMNS[name] if column not in header]
    if absent:
        raise ImportDataError(f"Section [{name}] is missing columns: {', '.join(absent)}")

    entities = []
    seen: set[str] = set()
    for line, row in records[1:]:
        if len(row) != len(header):
            raise ImportDataError(
                f"[{name}] line {line}: expected {len(header)} fields, got {len(row)}"
            )
        try:
            entity = build(dict(zip(header, row)))
        except InvalidEntityStateError as exc:
            raise ImportDataError(f"[{name}] line {line}: {exc}") from exc
        entity_id = getattr(entity, id_attr)
        if entity_id in seen:
            raise ImportDataError(f"[{name}] line {line}: duplicate id {entity_id!r}")
        seen.add(entity_id)
        entities.append(entity)
    return entities


def import_csv(text: str) -> CsvBundle:
    """Parse a sectioned CSV document.

    Raises
    ------
    ImportDataError
        If a section is missing, a row violates an entity invariant, or a
        loan/payment references an id absent from the bundle.
    """
    sections = _split_sections(text)

    borrowers = _parse_section(BORROWERS, sections[BORROWERS], borrower_from_dict, "borrower_id")
    loans = _parse_section(LOANS, sections[LOANS], loan_from_dict, "loan_id")
    payments = _parse_section(PAYMENTS, sections[PAYMENTS], payment_from_dict, "payment_id")

    borrower_ids = {b.borrower_id for b in borrowers}
    for loan in loans:
        if loan.borrower_id not in borrower_ids:
            raise ImportDataError(
                f"Loan {loan.loan_id} references unknown borrower {loan.borrower_id}"
            )

    loan_ids = {loan.loan_id for loan in loans}
    for payment in payments:
        if payment.loan_id not in loan_ids:
            raise ImportDataError(
                f"Payment {payment.payment_id} references unknown loan {payment.loan_id}"
            )

    return CsvBundle(borrowers=borrowers, loans=loans, payments=payments)
