"""
Canonical schemas for application and booking reports.

Reports are read-only views over a HousingRepository: rows are flattened
from the application, its applicant, its project and its flat.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List

from bto import ApplicationStatus, FlatType, MaritalStatus
from bto.models import format_datetime


class ReportKind:
    """Report identifier prefixes."""
    APPLICATION = "RPT-APP"
    BOOKING = "RPT-BOOK"


@dataclass
class ReportFilters:
    """
    Optional filters; an unset filter matches every row.
    """
    marital_status: Optional[MaritalStatus] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    status: Optional[ApplicationStatus] = None
    flat_type: Optional[FlatType] = None

    def __post_init__(self):
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("min_age must not exceed max_age")

    @classmethod
    def from_strings(
        cls,
        marital_status: Optional[str] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
        status: Optional[str] = None,
        flat_type: Optional[str] = None,
    ) -> "ReportFilters":
        """
        Build filters from user input.

        Raises:
            ValueError: For an unknown marital status, status or flat type
        """
        parsed_marital = None
        if marital_status:
            parsed_marital = MaritalStatus.from_string(marital_status)
            if parsed_marital is None:
                raise ValueError(f"Unknown marital status: {marital_status!r}")
        parsed_flat = None
        if flat_type:
            parsed_flat = FlatType.from_string(flat_type)
            if parsed_flat is None:
                raise ValueError(f"Unknown flat type: {flat_type!r}")
        return cls(
            marital_status=parsed_marital,
            min_age=min_age,
            max_age=max_age,
            status=ApplicationStatus(status.strip().lower()) if status else None,
            flat_type=parsed_flat,
        )

    def matches(self, row: "ApplicationReportRow") -> bool:
        if self.marital_status is not None and row.marital_status is not self.marital_status:
            return False
        if self.min_age is not None and row.age < self.min_age:
            return False
        if self.max_age is not None and row.age > self.max_age:
            return False
        if self.status is not None and row.status is not self.status:
            return False
        # Flat type only matches rows that actually hold a flat
        if self.flat_type is not None and row.flat_type is not self.flat_type:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "marital_status": self.marital_status.value if self.marital_status else None,
            "min_age": self.min_age,
            "max_age": self.max_age,
            "status": self.status.value if self.status else None,
            "flat_type": self.flat_type.value if self.flat_type else None,
        }


@dataclass
class ApplicationReportRow:
    """One application flattened with its applicant, project and flat."""
    application_id: str
    applicant_id: str
    applicant_name: str
    age: int
    marital_status: MaritalStatus
    project_id: str
    project_name: str
    neighbourhood: str
    status: ApplicationStatus
    flat_id: Optional[str] = None
    flat_type: Optional[FlatType] = None
    booked_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "application_id": self.application_id,
            "applicant_id": self.applicant_id,
            "applicant_name": self.applicant_name,
            "age": self.age,
            "marital_status": self.marital_status.value,
            "project_id": self.project_id,
            "project_name": self.project_name,
            "neighbourhood": self.neighbourhood,
            "status": self.status.value,
            "flat_id": self.flat_id,
            "flat_type": self.flat_type.value if self.flat_type else None,
            "booked_at": format_datetime(self.booked_at),
        }


@dataclass
class ApplicationReport:
    """Filtered list of applications with summaries."""
    report_id: str
    project_id: Optional[str]
    generated_at: datetime
    filters: ReportFilters
    rows: List[ApplicationReportRow] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rows)

    def count_by_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for row in self.rows:
            counts[row.status.value] = counts.get(row.status.value, 0) + 1
        return counts

    def count_by_marital_status(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for row in self.rows:
            counts[row.marital_status.value] = counts.get(row.marital_status.value, 0) + 1
        return counts

    def count_by_flat_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for row in self.rows:
            if row.flat_type is not None:
                counts[row.flat_type.value] = counts.get(row.flat_type.value, 0) + 1
        return counts

    def to_dict(self) -> dict:
        return {
            "report_id": self.report_id,
            "project_id": self.project_id,
            "generated_at": format_datetime(self.generated_at),
            "filters": self.filters.to_dict(),
            "count": self.count,
            "by_status": self.count_by_status(),
            "by_marital_status": self.count_by_marital_status(),
            "by_flat_type": self.count_by_flat_type(),
            "rows": [row.to_dict() for row in self.rows],
        }


@dataclass
class BookingReceipt:
    """Everything printed on a booking receipt."""
    receipt_id: str
    issued_at: datetime
    application_id: str
    applicant_name: str
    applicant_nric: str
    age: int
    marital_status: MaritalStatus
    project_id: str
    project_name: str
    neighbourhood: str
    flat_id: str
    flat_type: FlatType
    booked_at: Optional[datetime] = None
    officer_id: Optional[str] = None
