"""
Reporting module for the BTO Allocation Engine.

Application and booking reports with filters, and booking receipt PDFs.

Usage:
    from reporting import generate_application_report, ReportFilters

    report = generate_application_report(repository, "PRJ-1", ReportFilters(min_age=30))

Receipt PDF:
    from reporting import BookingReceiptGenerator

    result = BookingReceiptGenerator().generate(repository, application_id)
"""

from .schemas import (
    ApplicationReport,
    ApplicationReportRow,
    BookingReceipt,
    ReportFilters,
    ReportKind,
)
from .reports import (
    build_booking_receipt,
    generate_application_report,
    generate_booking_report,
)
from .receipt_pdf import (
    BookingReceiptGenerator,
    ReceiptNotAvailable,
    ReceiptResult,
    ReceiptSuccess,
)

__all__ = [
    # Schemas
    "ApplicationReport",
    "ApplicationReportRow",
    "BookingReceipt",
    "ReportFilters",
    "ReportKind",
    # Reports
    "build_booking_receipt",
    "generate_application_report",
    "generate_booking_report",
    # Receipt PDF
    "BookingReceiptGenerator",
    "ReceiptNotAvailable",
    "ReceiptResult",
    "ReceiptSuccess",
]
