"""
PHIPA (Personal Health Information Protection Act) compliance models.

Violations are confirmed matches against a regulated-data pattern and decide
the compliance verdict. Warnings are advisory only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ViolationType(str, Enum):
    SIN = "Social Insurance Number (SIN)"
    CREDIT_CARD = "Credit Card Number"
    BANK_ACCOUNT = "Bank Account Number"
    DRIVERS_LICENSE = "Driver's License"
    PASSPORT = "Passport Number"
    HEALTH_CARD = "Health Card Number"
    EMAIL_UNENCRYPTED = "Unencrypted Email Address"
    PHONE_UNMASKED = "Unmasked Phone Number"
    DATE_OF_BIRTH_FULL = "Full Date of Birth (Should be Partial)"
    POSTAL_CODE_FULL = "Full Postal Code (Too Specific)"
    IP_ADDRESS = "IP Address"
    BIOMETRIC_DATA = "Biometric Data"
    GENETIC_DATA = "Genetic Information"
    CUSTOM_SENSITIVE = "Custom Sensitive Field"


@dataclass(frozen=True)
class SensitiveFieldPattern:
    """
    One entry of the pattern library.

    field_name_pattern is searched in the key name; value_pattern, when set,
    must match the whole string value.
    """

    type: ViolationType
    field_name_pattern: re.Pattern
    severity: Severity
    description: str
    value_pattern: re.Pattern | None = None

    def matches_field(self, field_name: str) -> bool:
        return self.field_name_pattern.search(field_name) is not None

    def matches_value(self, value: str) -> bool:
        return self.value_pattern is None or self.value_pattern.fullmatch(value) is not None


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    violation_type: ViolationType
    value: str | None = None  # masked, never the raw value
    severity: Severity
    description: str
    recommendation: str


class ComplianceWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    warning_type: str
    description: str


class ValidationResult(BaseModel):
    """Verdict of one scan: compliant exactly when there are no violations."""
    model_config = ConfigDict(frozen=True)

    is_compliant: bool
    violations: tuple[Violation, ...] = ()
    warnings: tuple[ComplianceWarning, ...] = ()
    scan_date: datetime
    summary: str

    def count_by_severity(self, severity: Severity) -> int:
        return sum(1 for v in self.violations if v.severity == severity)
