#!/usr/bin/env python3
"""Inspect and maintain a loan portfolio stored in a JSON data file.

Commands:
- seed:      fill the portfolio with sample data (only if it is empty)
- summary:   print dashboard metrics
- overdue:   list overdue and defaulted loans
- upcoming:  list active loans with a payment due soon
- refresh:   re-resolve every loan status against today
- export:    write the portfolio as a sectioned CSV bundle
- import:    replace the portfolio with a CSV bundle
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_tracker.config import LoanTrackerConfig
from loan_tracker.exceptions import LoanTrackerError
from loan_tracker.generators import PortfolioGenerator
from loan_tracker.logging import get_logger, setup_logging
from loan_tracker.models import Loan
from loan_tracker.persistence import JsonFileRepository
from loan_tracker.store import PortfolioStore

logger = get_logger("manage_portfolio")


def print_loans(loans: list[Loan], currency: str) -> None:
    """Print one line per loan."""
    if not loans:
        print("No loans.")
        return
    for loan in loans:
        next_payment = (
            loan.payment_schedule.next_payment_date.isoformat() if loan.payment_schedule else "-"
        )
        print(
            f"{loan.loan_id}  {loan.borrower_name:<30}  {currency} {loan.principal:>12}  "
            f"due {loan.due_date.isoformat()}  next {next_payment}  [{loan.status.value}]"
        )


def cmd_seed(store: PortfolioStore, args: argparse.Namespace) -> None:
    if store.loans or store.borrowers:
        logger.warning("Portfolio is not empty; seeding skipped")
        return
    generator = PortfolioGenerator(seed=args.seed, locale=args.locale)
    summary = generator.populate(store, num_borrowers=args.borrowers)
    print(f"Seeded {summary['borrowers']} borrowers, {summary['loans']} loans, {summary['payments']} payments")


def cmd_summary(store: PortfolioStore, args: argparse.Namespace) -> None:
    metrics = store.dashboard_metrics()
    currency = store.settings.currency
    print("=" * 60)
    print("Portfolio Summary")
    print("=" * 60)
    print(f"  Total loaned:            {currency} {metrics.total_loaned}")
    print(f"  Interest received:       {currency} {metrics.total_interest_accrued}")
    print(f"  Overdue exposure:        {currency} {metrics.total_overdue}")
    print(f"  Received this month:     {currency} {metrics.total_received_this_month}")
    print(f"  Borrowers:               {metrics.total_borrowers}")
    print(
        f"  Loans: {metrics.active_loan_count} active, {metrics.paid_loan_count} paid, "
        f"{metrics.overdue_loan_count} overdue, {metrics.defaulted_loan_count} defaulted"
    )


def cmd_overdue(store: PortfolioStore, args: argparse.Namespace) -> None:
    print_loans(store.overdue_loans(), store.settings.currency)


def cmd_upcoming(store: PortfolioStore, args: argparse.Namespace) -> None:
    print_loans(store.upcoming_due_loans(args.days), store.settings.currency)


def cmd_refresh(store: PortfolioStore, args: argparse.Namespace) -> None:
    changed = store.refresh_statuses()
    print(f"{len(changed)} loan status(es) changed")


def cmd_export(store: PortfolioStore, args: argparse.Namespace) -> None:
    args.path.write_text(store.export_data(), encoding="utf-8")
    print(f"Exported {store.summary()} to {args.path}")


def cmd_import(store: PortfolioStore, args: argparse.Namespace) -> None:
    counts = store.import_data(args.path.read_text(encoding="utf-8"))
    print(f"Imported {counts} from {args.path}")


def main() -> None:
    """Main entry point."""
    config = LoanTrackerConfig.from_env()

    parser = argparse.ArgumentParser(description="Manage a loan portfolio data file")
    parser.add_argument(
        "--data-file",
        type=Path,
        default=config.storage.data_file,
        help=f"Portfolio JSON file (default: {config.storage.data_file})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=config.log_level,
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed_parser = subparsers.add_parser("seed", help="Fill an empty portfolio with sample data")
    seed_parser.add_argument("--borrowers", type=int, default=10, help="Borrowers to create (default: 10)")
    seed_parser.add_argument("--seed", type=int, default=config.seed, help="Random seed")
    seed_parser.add_argument("--locale", type=str, default="pt_BR", help="Faker locale (default: pt_BR)")
    seed_parser.set_defaults(handler=cmd_seed)

    subparsers.add_parser("summary", help="Print dashboard metrics").set_defaults(handler=cmd_summary)
    subparsers.add_parser("overdue", help="List overdue loans").set_defaults(handler=cmd_overdue)
    subparsers.add_parser("refresh", help="Re-resolve loan statuses").set_defaults(handler=cmd_refresh)

    upcoming_parser = subparsers.add_parser("upcoming", help="List loans with a payment due soon")
    upcoming_parser.add_argument(
        "--days",
        type=int,
        default=config.calculation.upcoming_horizon_days,
        help=f"Horizon in days (default: {config.calculation.upcoming_horizon_days})",
    )
    upcoming_parser.set_defaults(handler=cmd_upcoming)

    export_parser = subparsers.add_parser("export", help="Write a CSV bundle")
    export_parser.add_argument("path", type=Path)
    export_parser.set_defaults(handler=cmd_export)

    import_parser = subparsers.add_parser("import", help="Replace the portfolio with a CSV bundle")
    import_parser.add_argument("path", type=Path)
    import_parser.set_defaults(handler=cmd_import)

    args = parser.parse_args()
    setup_logging(args.log_level, "json" if args.json_logs else "standard")

    repository = JsonFileRepository(args.data_file, pretty=config.storage.pretty_json)
    try:
        store = PortfolioStore.from_repository(repository, config.calculation)
        args.handler(store, args)
    except LoanTrackerError as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
