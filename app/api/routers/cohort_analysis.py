"""
app/api/routers/cohort_analysis.py

Cohort export ingestion and analysis endpoints.

POST   /exports                 upload a raw export, publish a new snapshot
DELETE /exports                 drop the current snapshot
GET    /exports/canonical.csv   cleaned, sorted export as a file download
GET    /cohorts/paths           page paths present in the export
GET    /cohorts                 cohort retention grid for one path
GET    /cohorts/chart           cumulative / incremental chart series
GET    /velocity                calendar-month velocity and path ranking

All transformation logic lives in the services; the router only handles
HTTP plumbing (serialisation, content-type, error mapping).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from app.api.dependencies import get_csv_upload, get_store
from app.domain.cohort_analysis import CohortSeries
from app.domain.cohort_export import IngestDiagnostics
from app.schemas.cohort_analysis import (
    ChartSeriesResponse,
    CohortGridResponse,
    CohortPointResponse,
    CohortSeriesResponse,
    ExportIngestionResponse,
    IngestDiagnosticsResponse,
    IngestStatsResponse,
    PathOptionResponse,
    PathOptionsResponse,
    SkippedLineResponse,
    VelocityReportResponse,
)
from app.services.analysis_store import AnalysisNotReadyError, AnalysisSnapshot, AnalysisStore
from app.services.cohort_grid_service import path_display_name
from app.services.export_ingestion_service import ExportParseError, ExportTooLargeError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cohorts"])

CANONICAL_FILENAME = "cohort_data_cleaned.csv"


# ---------------------------------------------------------------------------
# Helpers (no business logic)
# ---------------------------------------------------------------------------


def _current_snapshot(store: AnalysisStore) -> AnalysisSnapshot:
    try:
        return store.current()
    except AnalysisNotReadyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


def _diagnostics_response(diagnostics: IngestDiagnostics) -> IngestDiagnosticsResponse:
    return IngestDiagnosticsResponse(
        skipped_by_reason=diagnostics.skipped_by_reason,
        skipped_lines=[
            SkippedLineResponse(
                line_number=skipped.line_number,
                reason=skipped.reason.value,
                value=skipped.value,
            )
            for skipped in diagnostics.skipped_lines
        ],
        defaulted_values=diagnostics.defaulted_values,
        unparsed_month_indices=diagnostics.unparsed_month_indices,
    )


def _series_response(series: CohortSeries) -> CohortSeriesResponse:
    return CohortSeriesResponse(
        cohort_start=series.cohort_start,
        label=series.label,
        visitors=series.visitors,
        points=[
            CohortPointResponse.model_validate(point)
            for point in series.points.values()
        ],
    )


def _ingestion_response(snapshot: AnalysisSnapshot) -> ExportIngestionResponse:
    return ExportIngestionResponse(
        source_name=snapshot.source_name,
        created_at=snapshot.created_at,
        stats=IngestStatsResponse.model_validate(snapshot.outcome.stats),
        diagnostics=_diagnostics_response(snapshot.outcome.diagnostics),
        paths=snapshot.paths,
        default_path=snapshot.default_path,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/exports", response_model=ExportIngestionResponse)
def upload_export(
    file: UploadFile = Depends(get_csv_upload),
    store: AnalysisStore = Depends(get_store),
) -> ExportIngestionResponse:
    """
    Ingest one raw cohort export and replace the current analysis.
    """

    try:
        snapshot = store.ingest_stream(file.file, source_name=file.filename)
    except ExportTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    except ExportParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to parse file. Ensure it is the standard cohort export. {exc}",
        ) from exc
    finally:
        file.file.close()

    return _ingestion_response(snapshot)


@router.delete("/exports", status_code=status.HTTP_204_NO_CONTENT)
def reset_export(store: AnalysisStore = Depends(get_store)) -> Response:
    store.reset()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/exports/canonical.csv")
def download_canonical_export(store: AnalysisStore = Depends(get_store)) -> Response:
    """
    Download the cleaned export as CSV.
    """

    snapshot = _current_snapshot(store)
    return Response(
        content=snapshot.outcome.canonical_csv,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{CANONICAL_FILENAME}"',
            "X-Row-Count": str(snapshot.outcome.stats.valid),
        },
    )


@router.get("/cohorts/paths", response_model=PathOptionsResponse)
def list_cohort_paths(store: AnalysisStore = Depends(get_store)) -> PathOptionsResponse:
    snapshot = _current_snapshot(store)
    return PathOptionsResponse(
        default_path=snapshot.default_path,
        paths=[
            PathOptionResponse(path=path, display_name=path_display_name(path))
            for path in snapshot.paths
        ],
    )


@router.get("/cohorts", response_model=CohortGridResponse)
def get_cohort_grid(
    path: str | None = Query(default=None, description="Page path; defaults to the site-wide total."),
    store: AnalysisStore = Depends(get_store),
) -> CohortGridResponse:
    """
    Cohort retention grid for one path. An unknown path yields no cohorts.
    """

    snapshot = _current_snapshot(store)
    selected = path or snapshot.default_path
    return CohortGridResponse(
        path=selected,
        display_name=path_display_name(selected),
        cohorts=[_series_response(series) for series in snapshot.cohort_grid(selected)],
    )


@router.get("/cohorts/chart", response_model=ChartSeriesResponse)
def get_cohort_chart(
    path: str | None = Query(default=None, description="Page path; defaults to the site-wide total."),
    store: AnalysisStore = Depends(get_store),
) -> ChartSeriesResponse:
    snapshot = _current_snapshot(store)
    selected = path or snapshot.default_path
    chart = snapshot.chart_series(selected)
    return ChartSeriesResponse(
        path=selected,
        labels=chart.labels,
        max_month_index=chart.max_month_index,
        cumulative=chart.cumulative,
        incremental=chart.incremental,
    )


@router.get("/velocity", response_model=VelocityReportResponse)
def get_velocity(store: AnalysisStore = Depends(get_store)) -> VelocityReportResponse:
    """
    Site-wide calendar-month velocity plus page paths ranked by visitors.
    """

    snapshot = _current_snapshot(store)
    logger.debug(
        "Velocity requested months=%d paths=%d",
        len(snapshot.velocity.monthly),
        len(snapshot.velocity.paths),
    )
    return VelocityReportResponse.model_validate(snapshot.velocity)
