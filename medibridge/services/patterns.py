"""
Sensitive-field pattern library.

The definitions below are plain data; build_pattern_library() compiles and
checks them once at import time, so a malformed entry fails at startup rather
than during a scan. The resulting tuple is immutable and safe to share
between concurrent scans.
"""

from __future__ import annotations

import re
from typing import Any

from medibridge.schemas.phipa import SensitiveFieldPattern, Severity, ViolationType

PATTERN_DEFINITIONS: list[dict[str, Any]] = [
    {
        "type": "SIN",
        "field_name": r"sin|social.?insurance|ssn",
        "value": r"\d{3}[-\s]?\d{3}[-\s]?\d{3}",
        "severity": "critical",
        "description": "Social Insurance Numbers must not be stored or transmitted in plain text",
    },
    {
        "type": "CREDIT_CARD",
        "field_name": r"credit.?card|card.?number|cc.?num",
        "value": r"(?:\d{4}[-\s]?){3}\d{4}",
        "severity": "critical",
        "description": "Credit card numbers are not permitted in health data systems",
    },
    {
        "type": "BANK_ACCOUNT",
        "field_name": r"bank.?account|account.?number|routing",
        "value": r"\d{7,17}",
        "severity": "high",
        "description": "Bank account numbers should not be included in patient data",
    },
    {
        "type": "DRIVERS_LICENSE",
        "field_name": r"driver.?license|dl.?number|licence",
        "severity": "high",
        "description": "Driver's license numbers are personally identifiable and should be encrypted",
    },
    {
        "type": "PASSPORT",
        "field_name": r"passport",
        "value": r"[A-Z]{1,2}\d{6,9}",
        "severity": "high",
        "description": "Passport numbers must be protected as sensitive identifiers",
    },
    {
        "type": "HEALTH_CARD",
        "field_name": r"health.?card|ohip|medicare.?number|provincial.?health",
        "value": r"\d{10}",
        "severity": "critical",
        "description": "Health card numbers are highly sensitive and must be encrypted",
    },
    {
        "type": "IP_ADDRESS",
        "field_name": r"ip.?address|ip.?addr",
        "value": r"(?:\d{1,3}\.){3}\d{1,3}",
        "severity": "medium",
        "description": "IP addresses can be used to identify individuals",
    },
    {
        "type": "BIOMETRIC_DATA",
        "field_name": r"fingerprint|retina|biometric|facial.?recognition",
        "severity": "critical",
        "description": "Biometric data requires special encryption and handling",
    },
    {
        "type": "GENETIC_DATA",
        "field_name": r"genetic|dna|genome|hereditary",
        "severity": "critical",
        "description": "Genetic information is highly sensitive personal health data",
    },
]

RECOMMENDATIONS: dict[ViolationType, str] = {
    ViolationType.SIN: "Remove SIN from patient records or use tokenization/encryption",
    ViolationType.CREDIT_CARD: "Remove credit card information from health records",
    ViolationType.BANK_ACCOUNT: "Use a separate billing system for financial data",
    ViolationType.DRIVERS_LICENSE: "Use alternate patient identifiers or encrypt",
    ViolationType.PASSPORT: "Use alternate identifiers and encrypt if required",
    ViolationType.HEALTH_CARD: "Encrypt health card numbers and use tokenization",
    ViolationType.IP_ADDRESS: "Anonymize or remove IP addresses from patient data",
    ViolationType.BIOMETRIC_DATA: "Use specialized biometric encryption and secure storage",
    ViolationType.GENETIC_DATA: "Apply highest level of encryption and access controls",
    ViolationType.CUSTOM_SENSITIVE: "Review and encrypt sensitive fields",
}
DEFAULT_RECOMMENDATION = "Encrypt or remove sensitive data"


def recommendation_for(violation_type: ViolationType) -> str:
    return RECOMMENDATIONS.get(violation_type, DEFAULT_RECOMMENDATION)


def build_pattern_library(
    definitions: list[dict[str, Any]],
) -> tuple[SensitiveFieldPattern, ...]:
    """
    Compile raw pattern definitions into SensitiveFieldPattern entries.
    Raises ValueError on an unknown type or severity, an invalid regex,
    or a duplicated type. Order is preserved; it is the reporting order.
    """
    patterns: list[SensitiveFieldPattern] = []
    seen: set[ViolationType] = set()

    for index, entry in enumerate(definitions):
        try:
            violation_type = ViolationType[entry["type"]]
            severity = Severity(entry["severity"])
            field_name = re.compile(entry["field_name"], re.IGNORECASE)
            value = re.compile(entry["value"]) if entry.get("value") else None
            description = entry["description"]
        except (KeyError, ValueError, re.error) as exc:
            raise ValueError(f"Invalid pattern definition #{index}: {exc}") from exc

        if violation_type in seen:
            raise ValueError(f"Duplicate pattern definition for {violation_type.name}")
        seen.add(violation_type)

        patterns.append(
            SensitiveFieldPattern(
                type=violation_type,
                field_name_pattern=field_name,
                value_pattern=value,
                severity=severity,
                description=description,
            )
        )

    return tuple(patterns)


SENSITIVE_PATTERNS: tuple[SensitiveFieldPattern, ...] = build_pattern_library(PATTERN_DEFINITIONS)
