from __future__ import annotations

import logging

from fastapi import FastAPI

from app.config import get_log_level


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    logging.basicConfig(
        level=getattr(logging, get_log_level(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _configure_logging()

    application = FastAPI(
        title="Cohort Retention Analytics API",
        version="1.0.0",
    )

    from app.api.routers import cohort_analysis_router

    application.include_router(cohort_analysis_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
