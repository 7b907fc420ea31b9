"""Pydantic models for pipeline results and API responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from medibridge.schemas.fhir import ConversionResult
from medibridge.schemas.phipa import Severity, ValidationResult


# ---------------------------------------------------------------------------
# Pipeline output
# ---------------------------------------------------------------------------

class InteroperabilityResult(BaseModel):
    """Everything produced for one input record. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    original_data: Any = None
    fhir_conversion: ConversionResult
    phipa_validation: ValidationResult
    processed_at: datetime
    data_quality_score: int = Field(..., ge=0, le=100)
    quality_assessment: str


# ---------------------------------------------------------------------------
# FHIR validation
# ---------------------------------------------------------------------------

class FhirValidationResponse(BaseModel):
    valid: bool
    errors: list[str] = []


# ---------------------------------------------------------------------------
# Pattern library listing
# ---------------------------------------------------------------------------

class PatternInfo(BaseModel):
    type: str
    name: str
    severity: Severity
    description: str
    field_name_pattern: str
    value_pattern: str | None = None


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    pattern_count: int
