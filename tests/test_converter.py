"""Tests for the generic JSON -> FHIR Patient converter."""

import json
from datetime import date

import pytest
from pydantic import ValidationError

from medibridge.schemas.fhir import AdministrativeGender, Patient
from medibridge.services.converter import FhirConverter, parse_date
from medibridge.services.validation import validate_fhir_patient


def _convert(data, id_factory=lambda: "generated-id"):
    return FhirConverter(id_factory=id_factory).convert(data)


def _make_record(**overrides):
    record = {
        "patientId": "P-1001",
        "firstName": "Jane",
        "lastName": "Doe",
        "dob": "1990-01-15",
        "gender": "Female",
        "phone": "416-555-0199",
        "email": "jane@example.com",
        "address": {
            "street": "100 Queen St W",
            "city": "Toronto",
            "province": "ON",
            "postalCode": "M5H 2N2",
            "country": "CA",
        },
        "status": "active",
    }
    record.update(overrides)
    return record


# ---------------------------------------------------------------------------
# Input shape
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("data", [42, "John Doe", None, True, 3.5])
def test_scalar_root_fails_without_patient(data):
    result = _convert(data)

    assert result.success is False
    assert result.fhir_resource is None
    assert result.errors
    assert result.errors[0].startswith("Conversion failed: Invalid input")


def test_empty_array_is_input_shape_error():
    result = _convert([])

    assert result.success is False
    assert result.fhir_resource is None
    assert result.mapping_log == ()
    assert result.original_data == []


def test_array_of_scalars_is_input_shape_error():
    result = _convert(["not", "objects"])
    assert result.success is False


def test_array_maps_only_first_record():
    result = _convert([{"firstName": "First"}, {"firstName": "Second"}])

    assert result.success is True
    assert result.fhir_resource.name[0].given == ["First"]
    assert result.original_data == {"firstName": "First"}


def test_full_record_maps_every_section():
    result = _convert(_make_record())
    patient = result.fhir_resource

    assert result.success is True
    assert result.errors == ()
    assert patient.resourceType == "Patient"
    assert patient.id == "P-1001"
    assert patient.meta.profile == ["http://hl7.org/fhir/StructureDefinition/Patient"]
    assert patient.meta.lastUpdated
    assert patient.name[0].given == ["Jane"]
    assert patient.name[0].family == "Doe"
    assert patient.birthDate == date(1990, 1, 15)
    assert patient.gender == AdministrativeGender.FEMALE
    assert [t.system for t in patient.telecom] == ["phone", "email"]
    assert patient.address[0].city == "Toronto"
    assert patient.active is True
    assert result.mapping_log[-1] == "✓ Successfully converted to FHIR R4 Patient resource"


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def test_id_synonyms_first_present_wins():
    result = _convert({"patient_id": "", "mrn": "MRN-7", "medicalRecordNumber": "MRN-8"})

    assert result.fhir_resource.id == "MRN-7"
    assert "Mapped mrn → Patient.id" in result.mapping_log


def test_numeric_id_is_stringified():
    assert _convert({"id": 1234}).fhir_resource.id == "1234"


def test_missing_id_uses_injected_factory():
    result = _convert({"firstName": "Ann"}, id_factory=lambda: "fixed-id")

    assert result.fhir_resource.id == "fixed-id"
    assert "Generated UUID for Patient.id: fixed-id" in result.mapping_log


def test_default_factory_generates_uuids():
    converter = FhirConverter()
    first = converter.convert({}).fhir_resource.id
    second = converter.convert({}).fhir_resource.id

    assert len(first) == 36
    assert first != second


# ---------------------------------------------------------------------------
# Name
# ---------------------------------------------------------------------------

def test_structured_name_with_middle_prefix_suffix():
    name = _convert(
        {"first_name": "John", "middle_name": "Paul", "last_name": "Smith", "prefix": "Dr.", "suffix": ["Jr."]}
    ).fhir_resource.name[0]

    assert name.given == ["John", "Paul"]
    assert name.family == "Smith"
    assert name.prefix == ["Dr."]
    assert name.suffix == ["Jr."]
    assert name.use == "official"


def test_nested_fhir_style_name_object():
    result = _convert({"name": {"given": ["Jane"], "family": "Smith"}})
    name = result.fhir_resource.name[0]

    assert result.success is True
    assert name.given == ["Jane"]
    assert name.family == "Smith"
    assert result.fhir_resource.identifier is None


def test_full_name_is_split_on_whitespace():
    name = _convert({"fullName": "Mary  Ann Smith"}).fhir_resource.name[0]

    assert name.given == ["Mary", "Ann"]
    assert name.family == "Smith"
    assert name.text is None


def test_single_token_name_becomes_text():
    name = _convert({"name": "Cher"}).fhir_resource.name[0]

    assert name.text == "Cher"
    assert name.given is None
    assert name.family is None


def test_explicit_fields_take_precedence_over_full_name():
    name = _convert({"firstName": "Jon", "lastName": "Snow", "name": "Aegon Targaryen"}).fhir_resource.name[0]

    assert name.given == ["Jon"]
    assert name.family == "Snow"


def test_prefix_alone_does_not_hide_full_name():
    name = _convert({"prefix": "Dr.", "full_name": "Jane Smith"}).fhir_resource.name[0]

    assert name.prefix == ["Dr."]
    assert name.given == ["Jane"]
    assert name.family == "Smith"


def test_prefix_without_a_name_is_not_logged():
    result = _convert({"prefix": "Dr.", "suffix": "Jr."})

    assert result.fhir_resource.name is None
    assert "⚠ No name data found in input" in result.mapping_log
    assert not any("Patient.name." in entry for entry in result.mapping_log)


def test_prefix_merged_into_full_name_is_logged():
    log = _convert({"prefix": "Dr.", "fullName": "Jane Smith"}).mapping_log

    assert "Parsed fullName → Patient.name (given + family)" in log
    assert "Mapped prefix → Patient.name.prefix" in log


def test_missing_name_is_logged_not_an_error():
    result = _convert({"mrn": "MRN-1"})

    assert result.success is True
    assert result.fhir_resource.name is None
    assert "⚠ No name data found in input" in result.mapping_log


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

def test_typed_identifiers_coexist():
    identifiers = _convert(
        {"mrn": "MRN-1", "ohip": "1234567890", "passportNumber": "AB1234567"}
    ).fhir_resource.identifier

    codes = [i.type.coding[0].code for i in identifiers]
    assert codes == ["MR", "HC", "PPN"]
    assert identifiers[1].system == "urn:oid:2.16.840.1.113883.4.56"
    assert identifiers[1].value == "1234567890"
    assert all(i.use == "official" for i in identifiers)
    assert identifiers[0].type.coding[0].system == "http://terminology.hl7.org/CodeSystem/v2-0203"


# ---------------------------------------------------------------------------
# Demographics
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("male", AdministrativeGender.MALE),
        ("MALE", AdministrativeGender.MALE),
        ("Female", AdministrativeGender.FEMALE),
        ("female-identified", AdministrativeGender.FEMALE),
        ("Non-Binary", AdministrativeGender.OTHER),
        ("other", AdministrativeGender.OTHER),
        ("M", AdministrativeGender.UNKNOWN),
        ("prefer not to say", AdministrativeGender.UNKNOWN),
    ],
)
def test_gender_normalization(raw, expected):
    assert _convert({"sex": raw}).fhir_resource.gender == expected


def test_absent_gender_left_unset():
    assert _convert({"firstName": "A"}).fhir_resource.gender is None


@pytest.mark.parametrize(
    "raw",
    [
        "1985-03-22",
        "1985-03-22T10:30:00Z",
        "03/22/1985",
        "1985/03/22",
        "March 22, 1985",
        "22 Mar 1985",
        "1985-3-22",
        "March 22 1985",
        "22-Mar-1985",
        "1985.03.22",
        "Mar 22, 1985 10:00 AM",
    ],
)
def test_birth_date_formats(raw):
    assert _convert({"birthDate": raw}).fhir_resource.birthDate == date(1985, 3, 22)


def test_loose_birth_date_counts_toward_the_record():
    result = _convert({"firstName": "A", "dob": "1985-3-22"})

    assert result.fhir_resource.birthDate == date(1985, 3, 22)
    assert "Mapped dob → Patient.birthDate" in result.mapping_log


def test_unparsable_birth_date_falls_through_to_next_synonym():
    result = _convert({"birthDate": "sometime in spring", "date_of_birth": "2001-12-31"})

    assert result.fhir_resource.birthDate == date(2001, 12, 31)
    assert "Mapped date_of_birth → Patient.birthDate" in result.mapping_log


def test_unparsable_birth_date_is_skipped_silently():
    result = _convert({"dob": "not a date"})

    assert result.success is True
    assert result.fhir_resource.birthDate is None


def test_parse_date_rejects_non_strings():
    assert parse_date(19850322) is None
    assert parse_date(None) is None


# ---------------------------------------------------------------------------
# Telecom & address
# ---------------------------------------------------------------------------

def test_first_phone_wins_and_email_is_independent():
    telecom = _convert(
        {"phone_number": "555-0100", "mobile": "555-0199", "email_address": "a@b.com"}
    ).fhir_resource.telecom

    assert len(telecom) == 2
    assert telecom[0].value == "555-0100"
    assert telecom[0].use == "home"
    assert telecom[1].system == "email"


def test_mobile_phone_use():
    telecom = _convert({"mobile": "555-0199"}).fhir_resource.telecom
    assert telecom[0].use == "mobile"


def test_nested_address_object():
    address = _convert(_make_record()).fhir_resource.address[0]

    assert address.line == ["100 Queen St W"]
    assert address.state == "ON"
    assert address.postalCode == "M5H 2N2"
    assert address.country == "CA"
    assert address.use == "home"
    assert address.type == "physical"


def test_top_level_address_fallback():
    address = _convert({"city": "Ottawa", "zipCode": "K1A 0B1"}).fhir_resource.address[0]

    assert address.city == "Ottawa"
    assert address.postalCode == "K1A 0B1"
    assert address.line is None


def test_no_address_data_emits_no_address():
    assert _convert({"firstName": "A"}).fhir_resource.address is None


# ---------------------------------------------------------------------------
# Active flag
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "record, expected",
    [
        ({"active": False}, False),
        ({"isActive": True}, True),
        ({"status": "Inactive"}, False),
        ({"is_active": "1"}, True),
        ({"active": "maybe", "status": "active"}, True),
        ({"status": "pending"}, None),
        ({}, None),
    ],
)
def test_active_status(record, expected):
    assert _convert(record).fhir_resource.active is expected


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def test_patient_json_round_trip():
    patient = _convert(_make_record(mrn="MRN-1", passport="AB1234567")).fhir_resource

    payload = json.loads(json.dumps(patient.to_fhir_json()))
    restored = Patient.model_validate(payload)

    assert restored.model_dump() == patient.model_dump()
    assert payload["birthDate"] == "1990-01-15"
    assert payload["gender"] == "female"


def test_converted_patient_passes_fhir_validation():
    patient = _convert(_make_record()).fhir_resource
    assert validate_fhir_patient(patient.to_fhir_json()) == []


def test_converted_patient_is_frozen():
    patient = _convert(_make_record()).fhir_resource

    with pytest.raises(ValidationError):
        patient.birthDate = None
    with pytest.raises(ValidationError):
        patient.name[0].family = "Other"
