"""Tests for the sectioned CSV bundle format."""

from datetime import date
from decimal import Decimal

import pytest
from conftest import TODAY, make_loan, make_payment

from loan_tracker.exceptions import ImportDataError
from loan_tracker.models import Borrower, LoanStatus, PaymentSchedule
from loan_tracker.persistence import export_csv, import_csv
from loan_tracker.persistence.csv_bundle import BORROWER_COLUMNS, LOAN_COLUMNS, PAYMENT_COLUMNS

BORROWER_HEADER = ",".join(BORROWER_COLUMNS)
LOAN_HEADER = ",".join(LOAN_COLUMNS)
PAYMENT_HEADER = ",".join(PAYMENT_COLUMNS)


def _bundle(borrowers: str = "", loans: str = "", payments: str = "") -> str:
    return (
        f"[BORROWERS]\n{BORROWER_HEADER}\n{borrowers}\n"
        f"[LOANS]\n{LOAN_HEADER}\n{loans}\n"
        f"[PAYMENTS]\n{PAYMENT_HEADER}\n{payments}"
    )


BORROWER_ROW = "borrower-test-001,Ana,ana@example.com,\n"
LOAN_ROW = (
    "loan-test-001,borrower-test-001,Ana,1000,5,2024-06-14,2024-07-15,"
    "active,monthly,12,83.33,2024-06-20,\n"
)


@pytest.fixture
def sample() -> tuple[list[Borrower], list, list]:
    borrowers = [
        Borrower("borrower-test-001", "Ana", email="ana@example.com"),
        Borrower("borrower-test-002", "Bruno, Jr.", phone="+55 21 98888-7777"),
    ]
    loans = [
        make_loan(
            installments=12,
            installment_amount=Decimal("83.33"),
            payment_schedule=PaymentSchedule(date(2024, 6, 20)),
            notes='Said "next week"\nsecond line',
        ),
        make_loan(
            "loan-test-002",
            principal="250.50",
            borrower_id="borrower-test-002",
            borrower_name="Bruno, Jr.",
            status=LoanStatus.DEFAULTED,
        ),
    ]
    payments = [
        make_payment("110.25", interest="10.25"),
        make_payment("50", loan_id="loan-test-002", payment_date=date(2024, 5, 1)),
    ]
    return borrowers, loans, payments


class TestExportCsv:
    """Tests for export_csv."""

    def test_section_layout(self, sample) -> None:
        lines = export_csv(*sample).split("\n")

        assert lines[0] == "[BORROWERS]"
        assert lines[1] == BORROWER_HEADER
        assert "[LOANS]" in lines
        assert "[PAYMENTS]" in lines
        assert lines[lines.index("[LOANS]") - 1] == ""
        assert lines[lines.index("[LOANS]") + 1] == LOAN_HEADER
        assert lines[lines.index("[PAYMENTS]") + 1] == PAYMENT_HEADER

    def test_empty_collections(self) -> None:
        text = export_csv([], [], [])
        assert text == _bundle()
        assert import_csv(text).borrowers == []

    def test_values_are_plain_text(self, sample) -> None:
        text = export_csv(*sample)
        assert "loan-test-001,borrower-test-001,Ana,1000,5,2024-06-14,2024-07-15,active,monthly" in text
        assert ",defaulted," in text
        assert '"Bruno, Jr."' in text


class TestImportCsv:
    """Tests for import_csv."""

    def test_round_trip(self, sample) -> None:
        borrowers, loans, payments = sample

        bundle = import_csv(export_csv(borrowers, loans, payments))

        assert bundle.borrowers == borrowers
        assert bundle.loans == loans
        assert bundle.payments == payments

    def test_minimal_bundle(self) -> None:
        bundle = import_csv(_bundle(BORROWER_ROW, LOAN_ROW))

        loan = bundle.loans[0]
        assert loan.principal == Decimal("1000")
        assert loan.issue_date == date(2024, 6, 14)
        assert loan.payment_schedule == PaymentSchedule(date(2024, 6, 20))
        assert loan.notes == ""
        assert bundle.borrowers[0].phone is None
        assert bundle.payments == []

    def test_columns_in_any_order(self) -> None:
        text = (
            "[BORROWERS]\nname,phone,email,borrower_id\nAna,,,b1\n"
            f"[LOANS]\n{LOAN_HEADER}\n"
            f"[PAYMENTS]\n{PAYMENT_HEADER}\n"
        )
        assert import_csv(text).borrowers == [Borrower("b1", "Ana")]

    def test_section_names_are_case_insensitive(self) -> None:
        text = _bundle(BORROWER_ROW).replace("[BORROWERS]", "[borrowers]")
        assert len(import_csv(text).borrowers) == 1

    def test_accepts_crlf_line_endings(self) -> None:
        text = _bundle(BORROWER_ROW, LOAN_ROW).replace("\n", "\r\n")
        assert len(import_csv(text).loans) == 1

    def test_accepts_byte_order_mark(self, sample) -> None:
        borrowers, loans, payments = sample

        bundle = import_csv("\ufeff" + export_csv(borrowers, loans, payments))

        assert bundle.borrowers == borrowers
        assert bundle.loans == loans
        assert bundle.payments == payments

    def test_accepts_spreadsheet_padded_rows(self) -> None:
        text = (
            "[BORROWERS],,,,\n"
            f"{BORROWER_HEADER},\n"
            "b1,Ana,,,\n"
            ",,,,\n"
            f"[LOANS],,\n{LOAN_HEADER}\n"
            f"[PAYMENTS],\n{PAYMENT_HEADER}\n"
        )
        assert import_csv(text).borrowers == [Borrower("b1", "Ana")]

    def test_marker_with_values_is_data(self) -> None:
        with pytest.raises(ImportDataError, match="before the first section"):
            import_csv("[BORROWERS],x\n" + _bundle())

    def test_missing_section(self) -> None:
        text = f"[BORROWERS]\n{BORROWER_HEADER}\n[LOANS]\n{LOAN_HEADER}\n"
        with pytest.raises(ImportDataError, match=r"\[PAYMENTS\]"):
            import_csv(text)

    def test_empty_text(self) -> None:
        with pytest.raises(ImportDataError, match="Missing required sections"):
            import_csv("")

    def test_unknown_section(self) -> None:
        with pytest.raises(ImportDataError, match="Unknown section"):
            import_csv(_bundle() + "[NOTES]\n")

    def test_duplicate_section(self) -> None:
        with pytest.raises(ImportDataError, match="Duplicate section"):
            import_csv(_bundle() + f"[LOANS]\n{LOAN_HEADER}\n")

    def test_data_before_first_section(self) -> None:
        with pytest.raises(ImportDataError, match="before the first section"):
            import_csv("hello,world\n" + _bundle())

    def test_missing_column(self) -> None:
        text = _bundle().replace(BORROWER_HEADER, "borrower_id,name")
        with pytest.raises(ImportDataError, match="missing columns: email, phone"):
            import_csv(text)

    def test_wrong_field_count(self) -> None:
        with pytest.raises(ImportDataError, match="expected 4 fields, got 3"):
            import_csv(_bundle("b1,Ana,\n"))

    @pytest.mark.parametrize(
        "old, new, message",
        [
            ("1000,5", "-1000,5", "principal must be non-negative"),
            ("1000,5", "lots,5", "principal is not a number"),
            ("2024-07-15", "15/07/2024", "due_date is not an ISO date"),
            ("active", "closed", "status must be one of"),
            ("monthly", "daily", "frequency must be one of"),
        ],
    )
    def test_invalid_loan_row(self, old: str, new: str, message: str) -> None:
        text = _bundle(BORROWER_ROW, LOAN_ROW.replace(old, new, 1))
        with pytest.raises(ImportDataError, match=message):
            import_csv(text)

    def test_invalid_row_reports_line(self) -> None:
        with pytest.raises(ImportDataError, match=r"\[BORROWERS\] line 3: name is required"):
            import_csv(_bundle("b1,,,\n"))

    def test_duplicate_id(self) -> None:
        with pytest.raises(ImportDataError, match="duplicate id 'borrower-test-001'"):
            import_csv(_bundle(BORROWER_ROW + BORROWER_ROW))

    def test_loan_with_unknown_borrower(self) -> None:
        with pytest.raises(ImportDataError, match="unknown borrower borrower-test-001"):
            import_csv(_bundle(loans=LOAN_ROW))

    def test_payment_with_unknown_loan(self) -> None:
        payment_row = "p1,loan-missing,2024-06-15,10,10,0,\n"
        with pytest.raises(ImportDataError, match="unknown loan loan-missing"):
            import_csv(_bundle(BORROWER_ROW, LOAN_ROW, payment_row))

    def test_timestamp_dates_are_accepted(self) -> None:
        payment_row = "p1,loan-test-001,2024-06-15T10:30:00,10,10,0,\n"
        bundle = import_csv(_bundle(BORROWER_ROW, LOAN_ROW, payment_row))
        assert bundle.payments[0].payment_date == TODAY
