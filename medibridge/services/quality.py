"""
Data quality scoring.

The score is two point budgets summed and clamped to 0-100:

- conversion: 30 for a successful FHIR conversion (10 for a failed one that
  still produced mapping log entries) plus up to 20 for resource completeness
- compliance: 50 when compliant, otherwise 50 minus a severity-weighted
  deduction, floored at 0

Low-severity violations and warnings do not move the score; they only show
up in the PHIPA summary.
"""

from __future__ import annotations

from medibridge.schemas.fhir import ConversionResult
from medibridge.schemas.phipa import Severity, ValidationResult

CONVERSION_SUCCESS_POINTS = 30
CONVERSION_PARTIAL_POINTS = 10

COMPLETENESS_POINTS = {
    "name": 5,
    "birthDate": 5,
    "gender": 3,
    "telecom": 4,
    "address": 3,
}

COMPLIANCE_POINTS = 50
SEVERITY_DEDUCTIONS = {
    Severity.CRITICAL: 15,
    Severity.HIGH: 10,
    Severity.MEDIUM: 5,
}

MIN_SCORE = 0
MAX_SCORE = 100

# (minimum score, label), highest first
QUALITY_LEVELS = (
    (90, "Excellent - Ready for interoperability"),
    (75, "Good - Minor improvements needed"),
    (60, "Fair - Several issues to address"),
    (40, "Poor - Major compliance issues"),
)
LOWEST_QUALITY_LEVEL = "Critical - Significant data quality and compliance problems"


def conversion_points(conversion: ConversionResult) -> int:
    if not conversion.success:
        return CONVERSION_PARTIAL_POINTS if conversion.mapping_log else 0

    points = CONVERSION_SUCCESS_POINTS
    patient = conversion.fhir_resource
    if patient is not None:
        for field, bonus in COMPLETENESS_POINTS.items():
            if getattr(patient, field):
                points += bonus
    return points


def compliance_points(validation: ValidationResult) -> int:
    if validation.is_compliant:
        return COMPLIANCE_POINTS

    deduction = sum(
        weight * validation.count_by_severity(severity)
        for severity, weight in SEVERITY_DEDUCTIONS.items()
    )
    return max(0, COMPLIANCE_POINTS - deduction)


def calculate_quality_score(conversion: ConversionResult, validation: ValidationResult) -> int:
    score = conversion_points(conversion) + compliance_points(validation)
    return min(MAX_SCORE, max(MIN_SCORE, score))


def quality_assessment(score: int) -> str:
    """Human-readable label for a quality score."""
    for threshold, label in QUALITY_LEVELS:
        if score >= threshold:
            return label
    return LOWEST_QUALITY_LEVEL
