"""
Booking Receipt PDF Generator

Renders the receipt an officer hands over after booking a flat.

Principles:
- Only BOOKED applications with an attached flat get a receipt
- Deterministic layout: same receipt data = same content
- Applicant, project and flat details, nothing else

Library Choice: ReportLab
- Pure Python, fine-grained control over layout

Output Structure:
1. Title block (receipt ID, issue date)
2. Applicant Details
3. Project Details
4. Flat Details
5. Closing note
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Final, Optional, Union

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from bto import HousingRepository

from .reports import build_booking_receipt
from .schemas import BookingReceipt


# =============================================================================
# Constants
# =============================================================================

GENERATOR_VERSION: Final[str] = "1.0"

DEFAULT_OUTPUT_DIR: Final[Path] = Path("reports/receipts")


# =============================================================================
# Color Palette - print-friendly
# =============================================================================


class ReceiptPalette:
    """Muted palette for printed receipts."""

    CHARCOAL = colors.Color(0.2, 0.2, 0.22)
    SLATE = colors.Color(0.35, 0.38, 0.42)
    GRAY = colors.Color(0.5, 0.5, 0.5)
    LIGHT_GRAY = colors.Color(0.85, 0.85, 0.85)
    PALE_GRAY = colors.Color(0.95, 0.95, 0.95)
    WHITE = colors.white
    ACCENT = colors.Color(0.15, 0.25, 0.4)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ReceiptSuccess:
    """Returned when the receipt PDF was written."""

    path: Path
    receipt_id: str


@dataclass
class ReceiptNotAvailable:
    """Returned when the application holds no booked flat."""

    application_id: str
    reason: str


ReceiptResult = Union[ReceiptSuccess, ReceiptNotAvailable]


# =============================================================================
# Style Configuration
# =============================================================================


def get_receipt_styles() -> dict:
    """Paragraph styles for the booking receipt."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name="ReceiptTitle",
        parent=styles["Normal"],
        fontSize=18,
        leading=22,
        textColor=ReceiptPalette.ACCENT,
        alignment=TA_LEFT,
        fontName="Helvetica-Bold",
        spaceAfter=3 * mm,
    ))

    styles.add(ParagraphStyle(
        name="ReceiptMeta",
        parent=styles["Normal"],
        fontSize=9,
        leading=12,
        textColor=ReceiptPalette.SLATE,
        fontName="Helvetica",
    ))

    styles.add(ParagraphStyle(
        name="ReceiptSection",
        parent=styles["Normal"],
        fontSize=11,
        leading=14,
        textColor=ReceiptPalette.CHARCOAL,
        fontName="Helvetica-Bold",
        spaceBefore=6 * mm,
        spaceAfter=2 * mm,
    ))

    styles.add(ParagraphStyle(
        name="ReceiptNote",
        parent=styles["Normal"],
        fontSize=9,
        leading=12,
        textColor=ReceiptPalette.GRAY,
        fontName="Helvetica",
    ))

    return styles


def _format_timestamp(value) -> str:
    return value.strftime("%d %b %Y %H:%M") if value else "-"


# =============================================================================
# Generator
# =============================================================================


class BookingReceiptGenerator:
    """
    Generates booking receipt PDFs.

    Usage:
        generator = BookingReceiptGenerator()
        result = generator.generate(repository, application_id)
    """

    PAGE_WIDTH, PAGE_HEIGHT = A4
    MARGIN_LEFT = 20 * mm
    MARGIN_RIGHT = 20 * mm
    MARGIN_TOP = 20 * mm
    MARGIN_BOTTOM = 22 * mm

    def __init__(self, output_dir: Optional[Path] = None):
        self.styles = get_receipt_styles()
        self.output_dir = Path(output_dir) if output_dir else DEFAULT_OUTPUT_DIR

    def generate(
        self,
        repository: HousingRepository,
        application_id: str,
        officer_id: Optional[str] = None,
    ) -> ReceiptResult:
        """
        Write the receipt PDF for a BOOKED application.

        Returns:
            ReceiptSuccess or ReceiptNotAvailable

        Raises:
            EntityNotFoundError: If the application does not exist
        """
        receipt = build_booking_receipt(repository, application_id, officer_id=officer_id)
        if receipt is None:
            return ReceiptNotAvailable(
                application_id=application_id,
                reason="Application has no booked flat",
            )

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"{receipt.receipt_id}.pdf"
        output_path.write_bytes(self.generate_to_buffer(receipt))

        return ReceiptSuccess(path=output_path, receipt_id=receipt.receipt_id)

    def generate_to_buffer(self, receipt: BookingReceipt) -> bytes:
        """Generate PDF and return as bytes."""
        buffer = BytesIO()
        self._build_document(receipt, buffer)
        return buffer.getvalue()

    def _build_document(self, receipt: BookingReceipt, buffer: BytesIO):
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=self.MARGIN_LEFT,
            rightMargin=self.MARGIN_RIGHT,
            topMargin=self.MARGIN_TOP,
            bottomMargin=self.MARGIN_BOTTOM,
            title=f"Booking Receipt - {receipt.receipt_id}",
            author="BTO Allocation Engine",
            subject="Flat Booking Receipt",
        )

        story = []
        story.extend(self._build_title(receipt))
        story.extend(self._build_details(
            "Applicant Details",
            [
                ("Name", receipt.applicant_name),
                ("NRIC", receipt.applicant_nric),
                ("Age", str(receipt.age)),
                ("Marital Status", receipt.marital_status.value),
            ],
        ))
        story.extend(self._build_details(
            "Project Details",
            [
                ("Project", receipt.project_name),
                ("Project ID", receipt.project_id),
                ("Neighbourhood", receipt.neighbourhood or "-"),
            ],
        ))
        story.extend(self._build_details(
            "Flat Details",
            [
                ("Flat ID", receipt.flat_id),
                ("Flat Type", receipt.flat_type.value),
                ("Booked At", _format_timestamp(receipt.booked_at)),
            ],
        ))
        story.extend(self._build_closing(receipt))

        doc.build(story, onFirstPage=self._draw_page_frame, onLaterPages=self._draw_page_frame)

    def _draw_page_frame(self, canvas_obj: canvas.Canvas, doc):
        """Draw footer."""
        canvas_obj.saveState()
        canvas_obj.setFont("Helvetica", 7)
        canvas_obj.setFillColor(ReceiptPalette.GRAY)
        canvas_obj.drawString(self.MARGIN_LEFT, self.MARGIN_BOTTOM - 10 * mm, "BTO ALLOCATION ENGINE")
        canvas_obj.drawRightString(
            self.PAGE_WIDTH - self.MARGIN_RIGHT,
            self.MARGIN_BOTTOM - 10 * mm,
            f"v{GENERATOR_VERSION}  {doc.page}",
        )
        canvas_obj.restoreState()

    # =========================================================================
    # Sections
    # =========================================================================

    def _build_title(self, receipt: BookingReceipt) -> list:
        return [
            Paragraph("Booking Receipt", self.styles["ReceiptTitle"]),
            Paragraph(f"Receipt ID: {receipt.receipt_id}", self.styles["ReceiptMeta"]),
            Paragraph(f"Application ID: {receipt.application_id}", self.styles["ReceiptMeta"]),
            Paragraph(f"Issued: {_format_timestamp(receipt.issued_at)}", self.styles["ReceiptMeta"]),
            Spacer(1, 4 * mm),
            HRFlowable(width="100%", thickness=0.5, color=ReceiptPalette.LIGHT_GRAY),
        ]

    def _build_details(self, title: str, rows: list[tuple[str, str]]) -> list:
        table = Table([[label, value] for label, value in rows], colWidths=[45 * mm, 115 * mm])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTNAME", (1, 0), (1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("TEXTCOLOR", (0, 0), (-1, -1), ReceiptPalette.CHARCOAL),
            ("BACKGROUND", (0, 0), (0, -1), ReceiptPalette.PALE_GRAY),
            ("GRID", (0, 0), (-1, -1), 0.5, ReceiptPalette.LIGHT_GRAY),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("TOPPADDING", (0, 0), (-1, -1), 2 * mm),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 2 * mm),
        ]))
        return [Paragraph(title, self.styles["ReceiptSection"]), table]

    def _build_closing(self, receipt: BookingReceipt) -> list:
        elements = [Spacer(1, 8 * mm)]
        if receipt.officer_id:
            elements.append(Paragraph(f"Booking processed by officer {receipt.officer_id}.", self.styles["ReceiptNote"]))
        elements.append(Paragraph("This receipt confirms the booking of the flat.", self.styles["ReceiptNote"]))
        elements.append(Paragraph("Please keep this receipt for your records.", self.styles["ReceiptNote"]))
        return elements
