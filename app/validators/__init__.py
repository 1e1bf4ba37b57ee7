"""
app/validators package marker.
"""

from app.validators.export_row_validator import ExportRowValidator

__all__ = [
    "ExportRowValidator",
]
