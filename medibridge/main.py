"""
FastAPI application entrypoint.

Run locally:  uvicorn medibridge.main:app --reload
"""

import logging

from fastapi import FastAPI

from medibridge.api.routes import router
from medibridge.config import settings

logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")

app = FastAPI(
    title="MediBridge Interoperability API",
    description=(
        "Maps loosely-structured patient JSON onto a FHIR R4 Patient resource, "
        "scans it for PHIPA-regulated personal information and scores the "
        "overall data quality. Results are heuristic and need human review."
    ),
    version="1.0.0",
)

app.include_router(router, prefix="/api/v1")
