"""
app/services package marker.
"""

from app.services.analysis_store import (
    AnalysisNotReadyError,
    AnalysisSnapshot,
    AnalysisStore,
    get_analysis_store,
)
from app.services.export_ingestion_service import (
    ExportIngestionService,
    ExportParseError,
    ExportTooLargeError,
    get_export_ingestion_service,
)

__all__ = [
    "AnalysisNotReadyError",
    "AnalysisSnapshot",
    "AnalysisStore",
    "get_analysis_store",
    "ExportIngestionService",
    "ExportParseError",
    "ExportTooLargeError",
    "get_export_ingestion_service",
]
