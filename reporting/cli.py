#!/usr/bin/env python3
"""
CLI for application/booking reports and booking receipts.

Reads a saved housing snapshot (the JSON file the web server persists).

Usage:
    python -m reporting.cli report   [--data FILE] [--project ID] [filters]
    python -m reporting.cli bookings [--data FILE] [--project ID] [filters]
    python -m reporting.cli receipt  [--data FILE] <application_id>

Examples:
    # Married applicants aged 30 to 40 across every project
    python -m reporting.cli report --marital-status married --min-age 30 --max-age 40

    # 2-Room bookings of one project as JSON
    python -m reporting.cli bookings --project PRJ-1 --flat-type 2-Room --json

    # Receipt PDF for a booked application
    python -m reporting.cli receipt APP-3F2A9C01B7D4
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from bto import EntityNotFoundError, HousingError, HousingRepository

from .receipt_pdf import BookingReceiptGenerator, ReceiptSuccess
from .reports import generate_application_report, generate_booking_report
from .schemas import ApplicationReport, ReportFilters

DEFAULT_DATA_FILE = "data/housing.json"


def load_repository(path: str) -> HousingRepository:
    """
    Load a snapshot file into a fresh repository.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid snapshot
    """
    data_path = Path(path)
    if not data_path.exists():
        raise FileNotFoundError(f"File not found: {data_path}")
    try:
        data = json.loads(data_path.read_text())
        return HousingRepository.from_snapshot(data)
    except (json.JSONDecodeError, KeyError, HousingError) as e:
        raise ValueError(f"Invalid snapshot {data_path}: {e}") from e


def filters_from_args(args) -> ReportFilters:
    return ReportFilters.from_strings(
        marital_status=args.marital_status,
        min_age=args.min_age,
        max_age=args.max_age,
        status=getattr(args, "status", None),
        flat_type=args.flat_type,
    )


def print_report(report: ApplicationReport, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
        return

    print(f"Report {report.report_id} ({report.count} row(s))")
    print(f"Project: {report.project_id or 'all'}")
    active = {k: v for k, v in report.filters.to_dict().items() if v is not None}
    print(f"Filters: {active or 'none'}")
    print()
    header = f"{'Application':<18} {'Applicant':<24} {'Age':>3}  {'Marital':<8} {'Project':<20} {'Status':<12} {'Flat'}"
    print(header)
    print("-" * len(header))
    for row in report.rows:
        flat = f"{row.flat_type.value} {row.flat_id}" if row.flat_type else "-"
        print(
            f"{row.application_id:<18} {row.applicant_name[:24]:<24} {row.age:>3}  "
            f"{row.marital_status.value:<8} {row.project_name[:20]:<20} {row.status.value:<12} {flat}"
        )
    print()
    print(f"By status: {report.count_by_status()}")
    print(f"By marital status: {report.count_by_marital_status()}")
    if report.count_by_flat_type():
        print(f"By flat type: {report.count_by_flat_type()}")


def cmd_report(args):
    """Print the application report."""
    repository = load_repository(args.data)
    report = generate_application_report(repository, args.project, filters_from_args(args))
    print_report(report, args.json)
    return 0


def cmd_bookings(args):
    """Print the booking report."""
    repository = load_repository(args.data)
    report = generate_booking_report(repository, args.project, filters_from_args(args))
    print_report(report, args.json)
    return 0


def cmd_receipt(args):
    """Write a booking receipt PDF."""
    repository = load_repository(args.data)
    generator = BookingReceiptGenerator(output_dir=Path(args.output_dir) if args.output_dir else None)
    result = generator.generate(repository, args.application_id, officer_id=args.officer)

    if isinstance(result, ReceiptSuccess):
        print(f"Receipt generated: {result.path}")
        return 0
    print(f"Error: {result.reason} ({result.application_id})", file=sys.stderr)
    return 1


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--data", default=DEFAULT_DATA_FILE, help="Path to housing snapshot JSON")


def _add_filters(parser: argparse.ArgumentParser, with_status: bool) -> None:
    parser.add_argument("--project", help="Restrict to one project ID")
    parser.add_argument("--marital-status", help="single or married")
    parser.add_argument("--min-age", type=int)
    parser.add_argument("--max-age", type=int)
    if with_status:
        parser.add_argument("--status", help="pending, successful, unsuccessful or booked")
    parser.add_argument("--flat-type", help="2-Room or 3-Room")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BTO Allocation Engine - Reports and Booking Receipts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli report --project PRJ-1 --status pending
    python -m reporting.cli bookings --flat-type 3-Room
    python -m reporting.cli receipt APP-3F2A9C01B7D4

Output:
    Receipts are saved to: reports/receipts/REC-<application_id>.pdf
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    report_parser = subparsers.add_parser("report", help="Application report with filters")
    _add_common(report_parser)
    _add_filters(report_parser, with_status=True)
    report_parser.set_defaults(func=cmd_report)

    bookings_parser = subparsers.add_parser("bookings", help="Booking report with filters")
    _add_common(bookings_parser)
    _add_filters(bookings_parser, with_status=False)
    bookings_parser.set_defaults(func=cmd_bookings)

    receipt_parser = subparsers.add_parser("receipt", help="Booking receipt PDF")
    _add_common(receipt_parser)
    receipt_parser.add_argument("application_id", help="BOOKED application ID")
    receipt_parser.add_argument("--officer", help="Officer NRIC printed on the receipt")
    receipt_parser.add_argument("--output-dir", help="Directory for the PDF")
    receipt_parser.set_defaults(func=cmd_receipt)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    logging.basicConfig(level=logging.WARNING)
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except EntityNotFoundError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
