"""
app/api/routers package marker.
"""

from app.api.routers.cohort_analysis import router as cohort_analysis_router

__all__ = [
    "cohort_analysis_router",
]
