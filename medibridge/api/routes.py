"""
FastAPI routes.

Every endpoint takes an arbitrary JSON body; reading files and rendering
results are the client's job.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from medibridge.config import settings
from medibridge.etl.pipeline import process_patient_data
from medibridge.schemas.api import (
    FhirValidationResponse,
    HealthResponse,
    InteroperabilityResult,
    PatternInfo,
)
from medibridge.schemas.fhir import ConversionResult
from medibridge.schemas.phipa import ValidationResult
from medibridge.services.converter import FhirConverter
from medibridge.services.patterns import SENSITIVE_PATTERNS
from medibridge.services.phipa import PhipaScanner
from medibridge.services.validation import validate_fhir_patient

logger = logging.getLogger(__name__)

router = APIRouter()

converter = FhirConverter()
scanner = PhipaScanner(SENSITIVE_PATTERNS, max_depth=settings.SCAN_MAX_DEPTH)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(
        status="healthy",
        environment=settings.ENVIRONMENT,
        pattern_count=len(scanner.patterns),
    )


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------

@router.post("/process", response_model=InteroperabilityResult, response_model_exclude_none=True)
def process(payload: Any = Body(...)):
    """Convert to FHIR, scan for PHIPA issues and score the record."""
    try:
        return process_patient_data(payload, converter=converter, scanner=scanner)
    except RuntimeError as exc:
        logger.error("Processing failed: %s", exc)
        raise HTTPException(status_code=500, detail="Processing pipeline failed")


# ---------------------------------------------------------------------------
# Individual stages
# ---------------------------------------------------------------------------

@router.post("/convert", response_model=ConversionResult, response_model_exclude_none=True)
def convert(payload: Any = Body(...)):
    return converter.convert(payload)


@router.post("/validate", response_model=ValidationResult)
def validate(payload: Any = Body(...)):
    return scanner.validate(payload)


@router.post("/fhir/validate", response_model=FhirValidationResponse)
def validate_fhir(payload: Any = Body(...)):
    """Check a FHIR Patient resource supplied by the caller."""
    errors = validate_fhir_patient(payload)
    return FhirValidationResponse(valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Pattern library
# ---------------------------------------------------------------------------

@router.get("/patterns", response_model=list[PatternInfo])
def list_patterns():
    return [
        PatternInfo(
            type=p.type.name,
            name=p.type.value,
            severity=p.severity,
            description=p.description,
            field_name_pattern=p.field_name_pattern.pattern,
            value_pattern=p.value_pattern.pattern if p.value_pattern else None,
        )
        for p in scanner.patterns
    ]
