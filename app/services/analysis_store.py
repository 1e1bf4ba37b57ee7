"""
app/services/analysis_store.py

In-memory holder for the analysis derived from the last uploaded export.

Each upload runs the whole pipeline into fresh structures, then publishes the
finished ``AnalysisSnapshot`` with a single reference assignment. Readers
take the current reference and never observe a half-built snapshot. Older
snapshots are dropped, never mutated.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import BinaryIO

from app.domain.cohort_analysis import ChartSeries, CohortSeries, VelocityReport
from app.domain.cohort_export import CanonicalRow, IngestOutcome
from app.services.chart_series_service import build_chart_series
from app.services.cohort_grid_service import build_cohort_grid, default_path, list_paths
from app.services.export_ingestion_service import (
    ExportIngestionService,
    get_export_ingestion_service,
)
from app.services.velocity_service import aggregate_velocity

logger = logging.getLogger(__name__)


class AnalysisNotReadyError(LookupError):
    """
    Raised when a view is requested before any export has been ingested.
    """


@dataclass(frozen=True)
class AnalysisSnapshot:
    """
    Everything derived from one export.

    Cohort grids are built per path on request; the velocity report spans all
    paths and is computed once with the snapshot.
    """

    outcome: IngestOutcome
    velocity: VelocityReport
    paths: list[str] = field(default_factory=list)
    default_path: str = "/"
    source_name: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @property
    def rows(self) -> tuple[CanonicalRow, ...]:
        return self.outcome.rows

    def cohort_grid(self, path: str | None = None) -> list[CohortSeries]:
        return build_cohort_grid(self.rows, path or self.default_path)

    def chart_series(self, path: str | None = None) -> ChartSeries:
        return build_chart_series(self.cohort_grid(path))


def build_snapshot(outcome: IngestOutcome, *, source_name: str | None = None) -> AnalysisSnapshot:
    """
    Derive a complete snapshot from one ingestion outcome.
    """

    paths = list_paths(outcome.rows)
    return AnalysisSnapshot(
        outcome=outcome,
        velocity=aggregate_velocity(outcome.rows),
        paths=paths,
        default_path=default_path(paths),
        source_name=source_name,
    )


class AnalysisStore:
    """
    Process-wide slot for the current ``AnalysisSnapshot``.
    """

    def __init__(self, ingestion_service: ExportIngestionService | None = None) -> None:
        self._ingestion_service = ingestion_service or get_export_ingestion_service()
        self._snapshot: AnalysisSnapshot | None = None
        self._publish_lock = threading.Lock()

    def ingest_bytes(self, data: bytes, *, source_name: str | None = None) -> AnalysisSnapshot:
        """
        Parse an uploaded export and publish its snapshot.

        Parse errors propagate and leave the current snapshot in place.
        """

        outcome = self._ingestion_service.parse_export_bytes(data)
        return self.publish(build_snapshot(outcome, source_name=source_name))

    def ingest_stream(self, stream: BinaryIO, *, source_name: str | None = None) -> AnalysisSnapshot:
        """
        Read a bounded upload stream, then ingest it like ``ingest_bytes``.
        """

        data = self._ingestion_service.read_upload(stream)
        return self.ingest_bytes(data, source_name=source_name)

    def ingest_text(self, text: str, *, source_name: str | None = None) -> AnalysisSnapshot:
        outcome = self._ingestion_service.parse_export(text)
        return self.publish(build_snapshot(outcome, source_name=source_name))

    def publish(self, snapshot: AnalysisSnapshot) -> AnalysisSnapshot:
        with self._publish_lock:
            self._snapshot = snapshot
        logger.info(
            "Analysis snapshot published source=%r rows=%d paths=%d months=%d",
            snapshot.source_name,
            len(snapshot.rows),
            len(snapshot.paths),
            len(snapshot.velocity.monthly),
        )
        return snapshot

    def current(self) -> AnalysisSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise AnalysisNotReadyError("No export has been ingested yet.")
        return snapshot

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    def reset(self) -> None:
        with self._publish_lock:
            self._snapshot = None
        logger.info("Analysis snapshot cleared")


@lru_cache(maxsize=1)
def get_analysis_store() -> AnalysisStore:
    """
    Return the process-wide analysis store.
    """

    return AnalysisStore()
