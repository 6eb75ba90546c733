"""
Application and booking reports.

Pure reads over a HousingRepository; nothing here mutates an entity.

Usage:
    from reporting.reports import generate_booking_report
    from reporting.schemas import ReportFilters

    report = generate_booking_report(repository, "PRJ-1", ReportFilters(flat_type=FlatType.TWO_ROOM))
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from bto import Application, ApplicationStatus, HousingRepository
from bto.models import generate_id, utcnow

from .schemas import ApplicationReport, ApplicationReportRow, BookingReceipt, ReportFilters, ReportKind

logger = logging.getLogger(__name__)


def build_row(repository: HousingRepository, application: Application) -> ApplicationReportRow:
    """Flatten one application with its applicant, project and flat."""
    applicant = repository.users.get(application.applicant_id)
    project = repository.projects.get(application.project_id)
    flat = repository.flats.get(application.flat_id) if application.flat_id else None
    return ApplicationReportRow(
        application_id=application.application_id,
        applicant_id=applicant.nric,
        applicant_name=applicant.name,
        age=applicant.age,
        marital_status=applicant.marital_status,
        project_id=project.project_id,
        project_name=project.name,
        neighbourhood=project.neighbourhood,
        status=application.status,
        flat_id=flat.flat_id if flat else None,
        flat_type=flat.flat_type if flat else None,
        booked_at=flat.booked_at if flat else None,
    )


def _applications(repository: HousingRepository, project_id: Optional[str]) -> list[Application]:
    if project_id is not None:
        # Unknown project raises EntityNotFoundError
        repository.projects.checkout(project_id)
        applications = repository.applications.find(lambda a: a.project_id == project_id)
    else:
        applications = repository.applications.list()
    return sorted(applications, key=lambda a: a.created_at)


def _build_report(
    kind: str,
    repository: HousingRepository,
    project_id: Optional[str],
    applications: Iterable[Application],
    filters: Optional[ReportFilters],
    now: Optional[datetime],
) -> ApplicationReport:
    filters = filters or ReportFilters()
    rows = [row for row in (build_row(repository, a) for a in applications) if filters.matches(row)]
    report = ApplicationReport(
        report_id=generate_id(kind),
        project_id=project_id,
        generated_at=now or utcnow(),
        filters=filters,
        rows=rows,
    )
    logger.info("Report %s generated with %s row(s)", report.report_id, report.count)
    return report


def generate_application_report(
    repository: HousingRepository,
    project_id: Optional[str] = None,
    filters: Optional[ReportFilters] = None,
    now: Optional[datetime] = None,
) -> ApplicationReport:
    """
    Every application of a project (or of all projects) that passes the
    filters, oldest first.
    """
    return _build_report(
        ReportKind.APPLICATION,
        repository,
        project_id,
        _applications(repository, project_id),
        filters,
        now,
    )


def generate_booking_report(
    repository: HousingRepository,
    project_id: Optional[str] = None,
    filters: Optional[ReportFilters] = None,
    now: Optional[datetime] = None,
) -> ApplicationReport:
    """BOOKED applications holding a flat, filtered."""
    booked = [
        a for a in _applications(repository, project_id)
        if a.status is ApplicationStatus.BOOKED and a.flat_id is not None
    ]
    return _build_report(ReportKind.BOOKING, repository, project_id, booked, filters, now)


def build_booking_receipt(
    repository: HousingRepository,
    application_id: str,
    officer_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[BookingReceipt]:
    """
    Receipt data for a BOOKED application.

    Returns:
        BookingReceipt, or None when the application holds no booked flat
    """
    application = repository.applications.get(application_id)
    if application.status is not ApplicationStatus.BOOKED or application.flat_id is None:
        return None

    row = build_row(repository, application)
    return BookingReceipt(
        receipt_id=f"REC-{application.application_id}",
        issued_at=now or utcnow(),
        application_id=application.application_id,
        applicant_name=row.applicant_name,
        applicant_nric=row.applicant_id,
        age=row.age,
        marital_status=row.marital_status,
        project_id=row.project_id,
        project_name=row.project_name,
        neighbourhood=row.neighbourhood,
        flat_id=row.flat_id,
        flat_type=row.flat_type,
        booked_at=row.booked_at,
        officer_id=officer_id,
    )
