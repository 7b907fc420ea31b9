"""
FHIR R4 Patient resource – the canonical target of the converter.

Two views of the same resource:
- pydantic models used to build and serialize the converted Patient
- a JSON schema used to check externally supplied Patient payloads

Only a representative subset of the resource is modelled; field names keep
FHIR's camelCase spelling so a dump is valid FHIR JSON as-is.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

PATIENT_PROFILE = "http://hl7.org/fhir/StructureDefinition/Patient"
IDENTIFIER_TYPE_SYSTEM = "http://terminology.hl7.org/CodeSystem/v2-0203"


class AdministrativeGender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Datatypes
# ---------------------------------------------------------------------------

class FhirModel(BaseModel):
    """Base for FHIR datatypes: values are fixed once built."""
    model_config = ConfigDict(frozen=True)


class Coding(FhirModel):
    system: str | None = None
    code: str | None = None
    display: str | None = None


class CodeableConcept(FhirModel):
    coding: list[Coding] | None = None
    text: str | None = None


class Identifier(FhirModel):
    use: Literal["usual", "official", "temp", "secondary"] | None = None
    type: CodeableConcept | None = None
    system: str | None = None
    value: str | None = None


class HumanName(FhirModel):
    use: Literal["usual", "official", "temp", "nickname", "anonymous", "old", "maiden"] | None = None
    text: str | None = None
    family: str | None = None
    given: list[str] | None = None
    prefix: list[str] | None = None
    suffix: list[str] | None = None


class ContactPoint(FhirModel):
    system: Literal["phone", "fax", "email", "pager", "url", "sms", "other"] | None = None
    value: str | None = None
    use: Literal["home", "work", "temp", "old", "mobile"] | None = None


class Address(FhirModel):
    use: Literal["home", "work", "temp", "old", "billing"] | None = None
    type: Literal["postal", "physical", "both"] | None = None
    text: str | None = None
    line: list[str] | None = None
    city: str | None = None
    state: str | None = None
    postalCode: str | None = None
    country: str | None = None


class Meta(FhirModel):
    lastUpdated: str | None = None
    profile: list[str] | None = None


# ---------------------------------------------------------------------------
# Patient resource
# ---------------------------------------------------------------------------

class Patient(FhirModel):
    """Canonical patient produced by the converter."""
    resourceType: Literal["Patient"] = "Patient"
    id: str | None = None
    meta: Meta | None = None
    identifier: list[Identifier] | None = None
    active: bool | None = None
    name: list[HumanName] | None = None
    telecom: list[ContactPoint] | None = None
    gender: AdministrativeGender | None = None
    birthDate: date | None = None
    address: list[Address] | None = None

    def to_fhir_json(self) -> dict[str, Any]:
        """Plain JSON-compatible dict with unset fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)


class ConversionResult(BaseModel):
    """Outcome of mapping one raw record onto a Patient."""
    model_config = ConfigDict(frozen=True)

    success: bool
    fhir_resource: Patient | None = None
    original_data: Any = None
    mapping_log: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# JSON schema for externally supplied Patient resources
# ---------------------------------------------------------------------------

_STRING_LIST: dict = {"type": "array", "items": {"type": "string"}}

FHIR_PATIENT_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "FHIR Patient (subset)",
    "description": "Subset of the HL7 FHIR R4 Patient resource produced by the converter.",
    "type": "object",
    "required": ["resourceType"],
    "properties": {
        "resourceType": {
            "type": "string",
            "const": "Patient",
            "description": "Must be 'Patient' per FHIR spec.",
        },
        "id": {"type": "string", "minLength": 1},
        "meta": {
            "type": "object",
            "properties": {
                "lastUpdated": {"type": "string"},
                "profile": _STRING_LIST,
            },
        },
        "identifier": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "use": {"enum": ["usual", "official", "temp", "secondary"]},
                    "system": {"type": "string"},
                    "value": {"type": "string"},
                    "type": {"type": "object"},
                },
            },
        },
        "active": {"type": "boolean"},
        "name": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "use": {"type": "string"},
                    "text": {"type": "string"},
                    "family": {"type": "string"},
                    "given": _STRING_LIST,
                    "prefix": _STRING_LIST,
                    "suffix": _STRING_LIST,
                },
            },
        },
        "telecom": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "system": {"enum": ["phone", "fax", "email", "pager", "url", "sms", "other"]},
                    "value": {"type": "string"},
                    "use": {"enum": ["home", "work", "temp", "old", "mobile"]},
                },
            },
        },
        "gender": {
            "type": "string",
            "enum": ["male", "female", "other", "unknown"],
            "description": "Administrative gender per FHIR value set.",
        },
        "birthDate": {
            "type": "string",
            "pattern": "^\\d{4}-\\d{2}-\\d{2}$",
            "description": "ISO 8601 date (YYYY-MM-DD).",
        },
        "address": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "use": {"type": "string"},
                    "type": {"type": "string"},
                    "line": _STRING_LIST,
                    "city": {"type": "string"},
                    "state": {"type": "string"},
                    "postalCode": {"type": "string"},
                    "country": {"type": "string"},
                },
            },
        },
    },
}
