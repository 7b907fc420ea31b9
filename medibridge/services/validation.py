"""
FHIR Patient validation.

- JSON Schema validation collects every structural error, not just the first
- a few resource rules JSON Schema cannot express cleanly are checked on top
"""

from typing import Any

import jsonschema

from medibridge.schemas.fhir import FHIR_PATIENT_SCHEMA


def validate_against_schema(data: Any, schema: dict[str, Any]) -> list[str]:
    """
    Validate a value against a JSON schema.
    Returns a list of error messages (empty list = valid).
    """
    validator = jsonschema.Draft7Validator(schema)
    return [error.message for error in validator.iter_errors(data)]


def validate_fhir_patient(resource: Any) -> list[str]:
    """Check a Patient resource (plain JSON) against schema and basic FHIR rules."""
    errors = validate_against_schema(resource, FHIR_PATIENT_SCHEMA)
    if not isinstance(resource, dict):
        return errors

    if resource.get("resourceType") != "Patient":
        errors.append('resourceType must be "Patient"')

    if not resource.get("id"):
        errors.append("Patient must have an id")

    names = resource.get("name")
    if isinstance(names, list):
        for index, name in enumerate(names):
            if isinstance(name, dict) and not (name.get("family") or name.get("given") or name.get("text")):
                errors.append(f"name[{index}] must have at least family, given, or text")

    return errors
