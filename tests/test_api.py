"""Tests for the HTTP surface using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from medibridge.main import app
from medibridge.services.patterns import SENSITIVE_PATTERNS
from medibridge.services.validation import validate_fhir_patient


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["pattern_count"] == len(SENSITIVE_PATTERNS)


def test_process_record(client):
    response = client.post("/api/v1/process", json={"firstName": "John", "lastName": "Doe", "sin": "123456789"})

    assert response.status_code == 200
    body = response.json()
    assert body["data_quality_score"] == 70
    assert body["fhir_conversion"]["success"] is True
    assert body["phipa_validation"]["is_compliant"] is False
    assert body["phipa_validation"]["violations"][0]["value"] == "1234*****"
    assert body["original_data"]["lastName"] == "Doe"


def test_process_returns_fhir_json_without_nulls(client):
    response = client.post("/api/v1/process", json={"firstName": "John", "lastName": "Doe"})

    patient = response.json()["fhir_conversion"]["fhir_resource"]
    assert "gender" not in patient
    assert "birthDate" not in patient
    assert None not in patient["name"][0].values()
    assert validate_fhir_patient(patient) == []


def test_process_scalar_body(client):
    response = client.post("/api/v1/process", json=42)

    assert response.status_code == 200
    assert response.json()["fhir_conversion"]["success"] is False


def test_convert_returns_fhir_json(client):
    response = client.post("/api/v1/convert", json={"id": "P-9", "fullName": "Ada Lovelace", "dob": "1815-12-10"})

    assert response.status_code == 200
    patient = response.json()["fhir_resource"]
    assert patient["resourceType"] == "Patient"
    assert patient["id"] == "P-9"
    assert patient["birthDate"] == "1815-12-10"
    assert patient["name"][0] == {"use": "official", "given": ["Ada"], "family": "Lovelace"}


def test_convert_empty_array(client):
    response = client.post("/api/v1/convert", json=[])

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["errors"]


def test_validate_endpoint(client):
    response = client.post("/api/v1/validate", json={"email": "a@b.com"})

    assert response.status_code == 200
    body = response.json()
    assert body["is_compliant"] is True
    assert body["warnings"][0]["warning_type"] == "Contact Information"


def test_fhir_validate_endpoint(client):
    response = client.post("/api/v1/fhir/validate", json={"resourceType": "Patient"})

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    assert "Patient must have an id" in body["errors"]


def test_patterns_listing(client):
    response = client.get("/api/v1/patterns")

    assert response.status_code == 200
    patterns = response.json()
    assert [p["type"] for p in patterns][0] == "SIN"
    assert patterns[0]["name"] == "Social Insurance Number (SIN)"
    assert patterns[0]["severity"] == "critical"
    assert len(patterns) == len(SENSITIVE_PATTERNS)
