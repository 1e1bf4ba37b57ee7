"""
app/services/export_ingestion_service.py

Service layer for cohort export ingestion.

Turns the raw text of one cohort-retention export into canonical rows, the
canonical CSV artifact, line counters, and a diagnostics record. The policy
is permissive: malformed lines are counted and skipped, malformed numbers are
defaulted, and only an unreadable document raises.
"""

from __future__ import annotations

import logging
from collections import Counter
from functools import lru_cache
from typing import BinaryIO, Iterable, Sequence

from app.config import get_export_ingestion_settings
from app.domain.cohort_export import (
    CANONICAL_HEADER,
    CanonicalRow,
    IngestDiagnostics,
    IngestOutcome,
    IngestStats,
    SkippedLine,
)
from app.logging_utils import log_ingestion_summary
from app.validators.export_row_validator import ExportRowValidator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ExportParseError(ValueError):
    """
    Raised when the export document as a whole cannot be read.
    """


class ExportTooLargeError(ExportParseError):
    """
    Raised when the export exceeds the configured size ceilings.
    """


# ---------------------------------------------------------------------------
# Canonical ordering and serialisation
# ---------------------------------------------------------------------------


def sort_rows(rows: Iterable[CanonicalRow]) -> list[CanonicalRow]:
    """
    Order rows by path, cohort start, then month index (unparsed last).
    """

    return sorted(rows, key=CanonicalRow.sort_key)


def serialize_rows(rows: Sequence[CanonicalRow]) -> str:
    """
    Render rows as the canonical CSV text: header plus one line per row.
    """

    return "\n".join([CANONICAL_HEADER, *(row.to_csv_line() for row in rows)])


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ExportIngestionService:
    """
    Coordinates line parsing, counting, ordering, and serialisation.
    """

    def __init__(
        self,
        *,
        max_upload_bytes: int,
        max_lines: int,
        max_skipped_details: int,
        log_skipped_lines: bool,
        validator: ExportRowValidator | None = None,
    ) -> None:
        self._max_upload_bytes = max(1, max_upload_bytes)
        self._max_lines = max(1, max_lines)
        self._max_skipped_details = max(0, max_skipped_details)
        self._log_skipped_lines = log_skipped_lines
        self._validator = validator or ExportRowValidator()

    def read_upload(self, stream: BinaryIO) -> bytes:
        """
        Read an upload stream, stopping one byte past ``max_upload_bytes``.

        Raises:
            ExportTooLargeError: the stream holds more than ``max_upload_bytes``.
        """

        data = stream.read(self._max_upload_bytes + 1)
        if len(data) > self._max_upload_bytes:
            raise ExportTooLargeError(
                f"Export exceeds the limit of {self._max_upload_bytes} bytes."
            )
        return data

    def parse_export_bytes(self, data: bytes) -> IngestOutcome:
        """
        Decode an uploaded export and parse it.

        Raises:
            ExportTooLargeError: the payload exceeds ``max_upload_bytes``.
            ExportParseError:    the payload is not UTF-8 text.
        """

        if len(data) > self._max_upload_bytes:
            raise ExportTooLargeError(
                f"Export is {len(data)} bytes; the limit is {self._max_upload_bytes}."
            )
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ExportParseError("Export must be UTF-8 encoded.") from exc
        return self.parse_export(text)

    def parse_export(self, text: str) -> IngestOutcome:
        """
        Parse raw export text into canonical rows.

        Every line is either a valid row or a skipped line, so
        ``stats.valid + stats.skipped == stats.total``.
        """

        if not isinstance(text, str):
            raise ExportParseError(
                f"Export content must be text, got {type(text).__name__}."
            )

        lines = text.split("\n")
        if len(lines) > self._max_lines:
            raise ExportTooLargeError(
                f"Export has {len(lines)} lines; the limit is {self._max_lines}."
            )

        rows: list[CanonicalRow] = []
        skip_counts: Counter[str] = Counter()
        captured: list[SkippedLine] = []
        defaulted: list[str] = []

        for line_number, raw_line in enumerate(lines, start=1):
            row, skipped = self._validator.parse_line(
                line=raw_line.strip(),
                line_number=line_number,
                defaulted=defaulted,
            )
            if skipped is not None:
                skip_counts[skipped.reason.value] += 1
                self._record_skipped(captured, skipped)
                continue
            if row is not None:
                rows.append(row)

        ordered = sort_rows(rows)
        start_dates = [row.cohort_start for row in ordered]
        stats = IngestStats(
            total=len(lines),
            valid=len(ordered),
            skipped=sum(skip_counts.values()),
            first_date=min(start_dates) if start_dates else None,
            last_date=max(start_dates) if start_dates else None,
        )
        diagnostics = IngestDiagnostics(
            skipped_by_reason=dict(skip_counts),
            skipped_lines=captured,
            defaulted_values=len(defaulted),
            unparsed_month_indices=sum(1 for row in ordered if not row.has_month_index),
        )

        outcome = IngestOutcome(
            rows=tuple(ordered),
            stats=stats,
            canonical_csv=serialize_rows(ordered),
            diagnostics=diagnostics,
        )
        log_ingestion_summary(logger, outcome)
        return outcome

    def _record_skipped(self, captured: list[SkippedLine], skipped: SkippedLine) -> None:
        if len(captured) < self._max_skipped_details:
            captured.append(skipped)
        if self._log_skipped_lines:
            logger.debug(
                "Export line skipped line=%d reason=%s value=%r",
                skipped.line_number,
                skipped.reason.value,
                skipped.value,
            )


@lru_cache(maxsize=1)
def get_export_ingestion_service() -> ExportIngestionService:
    """
    Return a cached export ingestion service configured from environment.
    """

    settings = get_export_ingestion_settings()
    return ExportIngestionService(
        max_upload_bytes=settings.max_upload_bytes,
        max_lines=settings.max_lines,
        max_skipped_details=settings.max_skipped_details,
        log_skipped_lines=settings.log_skipped_lines,
    )
