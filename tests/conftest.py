"""
Shared fixtures: a small raw cohort export and a service built without
reading environment settings.
"""

from __future__ import annotations

import pytest

from app.domain.cohort_export import CanonicalRow, RowKind
from app.services.export_ingestion_service import ExportIngestionService

RAW_EXPORT = "\n".join(
    [
        "Monthly cohort,Cohort Start,Cohort End,Page path and screen class,Visitors,Purchases,Percentage",
        "# GA4 cohort export",
        "0,20240101-20240131,x,RESERVED_TOTAL,1000,50,0.05",
        "1,20240101-20240131,x,RESERVED_TOTAL,1000,80,0.08",
        "0,20240201-20240229,x,RESERVED_TOTAL,800,40,0.05",
        "1,20240101-20240131,x,/,400,30,0.075",
        "0,20240101-20240131,x,/,400,20,0.05",
        "0,20240101-20240131,x,/blog/my-great-post,200,4,0.02",
        "1,20240101-20240131,x,/blog/my-great-post,200,3,0.015",
        "bad,line",
    ]
)


def make_row(
    month_index: int | None,
    cohort_start: str,
    path: str,
    visitors: int,
    purchases: int,
    percentage: str = "0%",
) -> CanonicalRow:
    return CanonicalRow(
        month_index=month_index,
        cohort_start=cohort_start,
        cohort_end=cohort_start,
        path=path,
        visitors=visitors,
        purchases=purchases,
        percentage=percentage,
        kind=RowKind.for_path(path),
    )


@pytest.fixture()
def row_factory():
    return make_row


@pytest.fixture()
def raw_export() -> str:
    return RAW_EXPORT


@pytest.fixture()
def ingestion_service() -> ExportIngestionService:
    """Fresh service with generous limits for each test."""
    return ExportIngestionService(
        max_upload_bytes=1024 * 1024,
        max_lines=10_000,
        max_skipped_details=50,
        log_skipped_lines=True,
    )
