"""
Structured logging helpers for export ingestion and analysis.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from app.domain.cohort_export import IngestOutcome

INGESTED_EVENT = "export_ingested"


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


def log_ingestion_summary(logger: logging.Logger, outcome: IngestOutcome) -> None:
    """
    Log counters and data-quality figures for one ingested export.

    Logged at WARNING when rows were dropped for anything other than blank or
    header lines, or when values had to be defaulted; INFO otherwise.
    """

    stats = outcome.stats
    diagnostics = outcome.diagnostics
    log_event(
        logger,
        logging.WARNING if diagnostics.has_warnings else logging.INFO,
        INGESTED_EVENT,
        total=stats.total,
        valid=stats.valid,
        skipped=stats.skipped,
        skipped_by_reason=diagnostics.skipped_by_reason,
        defaulted_values=diagnostics.defaulted_values,
        unparsed_month_indices=diagnostics.unparsed_month_indices,
        first_date=stats.first_date,
        last_date=stats.last_date,
    )
