"""
Generic patient JSON -> FHIR R4 Patient converter.

Every canonical field is fed by an ordered tuple of accepted source keys
(synonyms); the first key holding a usable value wins. Adding a spelling
means editing a table below, not the extraction code.

Note: when the input carries no identity field, a fresh UUID is generated,
so converting the same record twice yields different Patient.id values.
Pass a deterministic id_factory where reproducible output is required.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable

from dateutil import parser as dateutil_parser

from medibridge.schemas.fhir import (
    IDENTIFIER_TYPE_SYSTEM,
    PATIENT_PROFILE,
    Address,
    AdministrativeGender,
    CodeableConcept,
    Coding,
    ContactPoint,
    ConversionResult,
    HumanName,
    Identifier,
    Meta,
    Patient,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Synonym tables
# ---------------------------------------------------------------------------

ID_FIELDS = ("id", "patientId", "patient_id", "mrn", "medicalRecordNumber")

GIVEN_FIELDS = ("firstName", "first_name", "given")
FAMILY_FIELDS = ("lastName", "last_name", "family")
MIDDLE_FIELDS = ("middleName", "middle_name")
PREFIX_FIELDS = ("prefix",)
SUFFIX_FIELDS = ("suffix",)
TEXT_FIELDS = ("text",)
FULL_NAME_FIELDS = ("name", "fullName", "full_name")

GENDER_FIELDS = ("gender", "sex")
BIRTH_DATE_FIELDS = ("birthDate", "birth_date", "dob", "dateOfBirth", "date_of_birth")
PHONE_FIELDS = ("phone", "phoneNumber", "phone_number", "mobile", "tel", "telephone")
EMAIL_FIELDS = ("email", "emailAddress", "email_address")
ACTIVE_FIELDS = ("active", "isActive", "is_active", "status")

LINE_FIELDS = ("street", "streetAddress", "street_address", "line")
CITY_FIELDS = ("city",)
STATE_FIELDS = ("state", "province")
POSTAL_CODE_FIELDS = ("postalCode", "postal_code", "zip", "zipCode")
COUNTRY_FIELDS = ("country",)

# (source keys, v2-0203 code, display, identifier system)
IDENTIFIER_TYPES = (
    (("mrn", "medicalRecordNumber", "medical_record_number"), "MR", "Medical Record Number", None),
    (("healthCard", "health_card", "ohip"), "HC", "Health Card Number", "urn:oid:2.16.840.1.113883.4.56"),
    (("passport", "passportNumber"), "PPN", "Passport Number", None),
)

ACTIVE_TRUE = {"active", "true", "1"}
ACTIVE_FALSE = {"inactive", "false", "0"}

# components missing from a free-form date fall back to these, never to today
DATE_DEFAULT = datetime(2000, 1, 1)

NAME_PARTS = ("given", "family", "text")


class InputShapeError(ValueError):
    """Root input is neither an object nor an array of objects."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _is_present(value: Any) -> bool:
    """None, False, empty strings and zero count as missing."""
    if isinstance(value, (str, int, float)):
        return bool(value)
    return value is not None


def first_present(data: dict[str, Any], fields: tuple[str, ...]) -> tuple[str, Any] | tuple[None, None]:
    """Return (key, value) for the first synonym with a usable value."""
    for field in fields:
        value = data.get(field)
        if _is_present(value):
            return field, value
    return None, None


def _as_str_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value if _is_present(v)]
    return [str(value)]


def _first_object(value: Any) -> dict[str, Any] | None:
    """A nested object, or the first object of a list of them."""
    if isinstance(value, list) and value:
        value = value[0]
    return value if isinstance(value, dict) else None


def _names_person(fields: dict[str, Any]) -> bool:
    """Prefix and suffix alone do not make a name."""
    return any(fields.get(part) for part in NAME_PARTS)


def parse_date(value: Any) -> date | None:
    """Best-effort calendar date parsing; None when the value is unusable."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return dateutil_parser.parse(text, default=DATE_DEFAULT).date()
    except (ValueError, OverflowError, dateutil_parser.ParserError) as exc:
        logger.debug("Unparsable date skipped (%s)", type(exc).__name__)
        return None


def _generate_uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Converter
# ---------------------------------------------------------------------------

class FhirConverter:
    """Maps loosely-structured patient JSON onto a FHIR R4 Patient."""

    def __init__(self, id_factory: Callable[[], str] = _generate_uuid):
        self._id_factory = id_factory

    def convert(self, data: Any) -> ConversionResult:
        """
        Convert one record. Arrays contribute only their first element.
        Input-shape problems are reported in the result, never raised.
        """
        mapping_log: list[str] = []

        try:
            patient_data = self._select_record(data)
            patient = self._build_patient(patient_data, mapping_log)
        except InputShapeError as exc:
            logger.warning("Conversion failed: %s", exc)
            return ConversionResult(
                success=False,
                original_data=data,
                mapping_log=mapping_log,
                errors=[f"Conversion failed: {exc}"],
            )

        mapping_log.append("✓ Successfully converted to FHIR R4 Patient resource")
        logger.info("Converted record to Patient (%d mapping steps)", len(mapping_log))
        return ConversionResult(
            success=True,
            fhir_resource=patient,
            original_data=patient_data,
            mapping_log=mapping_log,
        )

    @staticmethod
    def _select_record(data: Any) -> dict[str, Any]:
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise InputShapeError("Invalid input: expected object or array of objects")
        return data

    def _build_patient(self, data: dict[str, Any], log: list[str]) -> Patient:
        # extraction order fixes the order of mapping log entries
        patient_id = self.extract_id(data, log)
        name = self.extract_name(data, log)
        identifiers = self.extract_identifiers(data, log)
        gender = self.extract_gender(data, log)
        birth_date = self.extract_birth_date(data, log)
        telecom = self.extract_telecom(data, log)
        addresses = self.extract_address(data, log)
        active = self.extract_active(data, log)

        return Patient(
            id=patient_id,
            meta=Meta(
                lastUpdated=datetime.now(timezone.utc).isoformat(),
                profile=[PATIENT_PROFILE],
            ),
            identifier=identifiers or None,
            active=active,
            name=[name] if name is not None else None,
            telecom=telecom or None,
            gender=gender,
            birthDate=birth_date,
            address=addresses or None,
        )

    # -- identity -------------------------------------------------------------

    def extract_id(self, data: dict[str, Any], log: list[str]) -> str:
        field, value = first_present(data, ID_FIELDS)
        if field is not None:
            log.append(f"Mapped {field} → Patient.id")
            return str(value)

        generated = self._id_factory()
        log.append(f"Generated UUID for Patient.id: {generated}")
        return generated

    # -- name -----------------------------------------------------------------

    def extract_name(self, data: dict[str, Any], log: list[str]) -> HumanName | None:
        top, top_steps = self._structured_name(data, source="")
        fields, steps = top, top_steps
        if not _names_person(fields):
            nested = _first_object(data.get("name"))
            if nested is not None:
                fields, steps = self._structured_name(nested, source="name.")
        if not _names_person(fields):
            fields, steps = self._full_name(data)

        if not _names_person(fields):
            log.append("⚠ No name data found in input")
            return None

        # top-level prefix/suffix still apply to a name found elsewhere
        if fields is not top:
            for target in ("prefix", "suffix"):
                if target in top and target not in fields:
                    fields[target] = top[target]
                    steps.extend(s for s in top_steps if s.endswith(f"Patient.name.{target}"))

        log.extend(steps)
        return HumanName(use="official", **fields)

    @staticmethod
    def _structured_name(data: dict[str, Any], source: str) -> tuple[dict[str, Any], list[str]]:
        """Name parts found in data, with the log entries that record them."""
        fields: dict[str, Any] = {}
        steps: list[str] = []

        field, value = first_present(data, GIVEN_FIELDS)
        if field is not None:
            fields["given"] = _as_str_list(value)
            steps.append(f"Mapped {source}{field} → Patient.name.given")

        field, value = first_present(data, FAMILY_FIELDS)
        if field is not None:
            fields["family"] = str(value)
            steps.append(f"Mapped {source}{field} → Patient.name.family")

        field, value = first_present(data, MIDDLE_FIELDS)
        if field is not None:
            fields["given"] = fields.get("given", []) + _as_str_list(value)
            steps.append(f"Mapped {source}{field} → Patient.name.given")

        for synonyms, target in ((PREFIX_FIELDS, "prefix"), (SUFFIX_FIELDS, "suffix")):
            field, value = first_present(data, synonyms)
            parts = _as_str_list(value) if field is not None else []
            if parts:
                fields[target] = parts
                steps.append(f"Mapped {source}{field} → Patient.name.{target}")

        # "text" is only meaningful inside a nested FHIR-style name object
        if source:
            field, value = first_present(data, TEXT_FIELDS)
            if field is not None:
                fields["text"] = str(value)
                steps.append(f"Mapped {source}{field} → Patient.name.text")

        if not fields.get("given"):
            fields.pop("given", None)
        return fields, steps

    @staticmethod
    def _full_name(data: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
        for field in FULL_NAME_FIELDS:
            value = data.get(field)
            if not _is_present(value) or isinstance(value, (dict, list, bool)):
                continue

            parts = str(value).split()
            if not parts:
                continue

            if len(parts) > 1:
                return (
                    {"given": parts[:-1], "family": parts[-1]},
                    [f"Parsed {field} → Patient.name (given + family)"],
                )
            return {"text": parts[0]}, [f"Mapped {field} → Patient.name.text"]
        return {}, []

    # -- identifiers ----------------------------------------------------------

    @staticmethod
    def extract_identifiers(data: dict[str, Any], log: list[str]) -> list[Identifier]:
        identifiers: list[Identifier] = []

        for fields, code, display, system in IDENTIFIER_TYPES:
            field, value = first_present(data, fields)
            if field is None:
                continue
            identifiers.append(
                Identifier(
                    use="official",
                    type=CodeableConcept(
                        coding=[Coding(system=IDENTIFIER_TYPE_SYSTEM, code=code, display=display)]
                    ),
                    system=system,
                    value=str(value),
                )
            )
            log.append(f"Mapped {field} → Patient.identifier ({code})")

        return identifiers

    # -- demographics ---------------------------------------------------------

    @staticmethod
    def extract_gender(data: dict[str, Any], log: list[str]) -> AdministrativeGender | None:
        field, value = first_present(data, GENDER_FIELDS)
        if field is None:
            return None

        text = str(value).lower()
        if "female" in text:
            gender = AdministrativeGender.FEMALE
        elif "male" in text:
            gender = AdministrativeGender.MALE
        elif "other" in text or "non-binary" in text:
            gender = AdministrativeGender.OTHER
        else:
            gender = AdministrativeGender.UNKNOWN

        log.append(f"Mapped {field} → Patient.gender ({gender.value})")
        return gender

    @staticmethod
    def extract_birth_date(data: dict[str, Any], log: list[str]) -> date | None:
        for field in BIRTH_DATE_FIELDS:
            if not _is_present(data.get(field)):
                continue
            parsed = parse_date(data[field])
            if parsed is not None:
                log.append(f"Mapped {field} → Patient.birthDate")
                return parsed

        log.append("⚠ No parsable birth date found in input")
        return None

    # -- contact --------------------------------------------------------------

    @staticmethod
    def extract_telecom(data: dict[str, Any], log: list[str]) -> list[ContactPoint]:
        telecom: list[ContactPoint] = []

        field, value = first_present(data, PHONE_FIELDS)
        if field is not None:
            telecom.append(
                ContactPoint(
                    system="phone",
                    value=str(value),
                    use="mobile" if "mobile" in field else "home",
                )
            )
            log.append(f"Mapped {field} → Patient.telecom (phone)")

        field, value = first_present(data, EMAIL_FIELDS)
        if field is not None:
            telecom.append(ContactPoint(system="email", value=str(value), use="home"))
            log.append(f"Mapped {field} → Patient.telecom (email)")

        if not telecom:
            log.append("⚠ No contact information found in input")
        return telecom

    @staticmethod
    def extract_address(data: dict[str, Any], log: list[str]) -> list[Address]:
        nested = _first_object(data.get("address"))
        source, address_data = ("address.", nested) if nested is not None else ("", data)

        parts: dict[str, Any] = {}

        field, value = first_present(address_data, LINE_FIELDS)
        if field is not None:
            parts["line"] = _as_str_list(value) or None
            log.append(f"Mapped {source}{field} → Patient.address.line")

        for fields, target in (
            (CITY_FIELDS, "city"),
            (STATE_FIELDS, "state"),
            (POSTAL_CODE_FIELDS, "postalCode"),
            (COUNTRY_FIELDS, "country"),
        ):
            field, value = first_present(address_data, fields)
            if field is not None:
                parts[target] = str(value)
                log.append(f"Mapped {source}{field} → Patient.address.{target}")

        if not parts:
            log.append("⚠ No address data found in input")
            return []
        return [Address(use="home", type="physical", **parts)]

    # -- status ---------------------------------------------------------------

    @staticmethod
    def extract_active(data: dict[str, Any], log: list[str]) -> bool | None:
        for field in ACTIVE_FIELDS:
            value = data.get(field)
            if isinstance(value, bool):
                log.append(f"Mapped {field} → Patient.active")
                return value
            if isinstance(value, str):
                lowered = value.lower()
                if lowered in ACTIVE_TRUE:
                    log.append(f"Mapped {field} → Patient.active (true)")
                    return True
                if lowered in ACTIVE_FALSE:
                    log.append(f"Mapped {field} → Patient.active (false)")
                    return False
        return None
