"""
PHIPA compliance scanner.

Walks an arbitrary JSON value depth-first and checks every object key against
the sensitive-field pattern library plus a few structural heuristics.

The walk keeps its own stack of iterators instead of recursing, so deeply
nested (or hostile) input cannot exhaust the interpreter's recursion limit.
Containers nested beyond max_depth are reported as a warning and skipped.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterator

from medibridge.schemas.phipa import (
    ComplianceWarning,
    SensitiveFieldPattern,
    Severity,
    ValidationResult,
    Violation,
    ViolationType,
)
from medibridge.services.patterns import SENSITIVE_PATTERNS, recommendation_for

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100

MASK_CHAR = "*"
VISIBLE_CHARS = 4
REDACTED = "[REDACTED]"

SIN_VALUE = re.compile(r"\d{3}[-\s]?\d{3}[-\s]?\d{3}")
CARD_VALUE = re.compile(r"\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}")

DOB_FIELD = re.compile(r"birth.?date|dob|date.?of.?birth", re.IGNORECASE)
FULL_DATE_VALUES = (re.compile(r"\d{4}-\d{2}-\d{2}"), re.compile(r"\d{2}/\d{2}/\d{4}"))

POSTAL_FIELD = re.compile(r"postal.?code|zip.?code", re.IGNORECASE)
FULL_POSTAL_VALUE = re.compile(r"[A-Z]\d[A-Z]\s?\d[A-Z]\d")

EMAIL_FIELD = re.compile(r"email", re.IGNORECASE)
PHONE_FIELD = re.compile(r"phone|mobile|tel", re.IGNORECASE)
PHONE_VALUE = re.compile(r"\d{3}[-.\s]?\d{3}[-.\s]?\d{4}")


def mask_value(value: str) -> str:
    """Keep the first four characters, mask the rest; length is preserved."""
    if len(value) <= VISIBLE_CHARS:
        return MASK_CHAR * VISIBLE_CHARS
    return value[:VISIBLE_CHARS] + MASK_CHAR * (len(value) - VISIBLE_CHARS)


def generate_summary(violations: list[Violation], warnings: list[ComplianceWarning]) -> str:
    if not violations and not warnings:
        return "PHIPA Compliant: No violations or warnings detected."

    critical = sum(1 for v in violations if v.severity == Severity.CRITICAL)
    high = sum(1 for v in violations if v.severity == Severity.HIGH)

    summary = ""
    if violations:
        summary += f"NON-COMPLIANT: {len(violations)} violation(s) detected. "
        if critical:
            summary += f"{critical} critical issue(s) require immediate attention. "
        if high:
            summary += f"{high} high-priority issue(s) found. "
    if warnings:
        summary += f"{len(warnings)} warning(s) for review."
    return summary.strip()


def _children(value: Any, path: str) -> Iterator[tuple[str | None, Any, str]]:
    """Yield (key, child, child_path); key is None for array items."""
    if isinstance(value, dict):
        for key, child in value.items():
            yield key, child, f"{path}.{key}" if path else str(key)
    else:
        for index, child in enumerate(value):
            yield None, child, f"{path}[{index}]"


class PhipaScanner:
    """Scans JSON data for PHIPA-regulated personal information."""

    def __init__(
        self,
        patterns: tuple[SensitiveFieldPattern, ...] = SENSITIVE_PATTERNS,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.patterns = patterns
        self.max_depth = max_depth
        self._sin_pattern = next((p for p in patterns if p.type == ViolationType.SIN), None)

    def validate(self, data: Any) -> ValidationResult:
        """Scan any JSON value. Never raises on unexpected shapes."""
        violations: list[Violation] = []
        warnings: list[ComplianceWarning] = []

        if isinstance(data, (dict, list)):
            self._walk(data, violations, warnings)

        summary = generate_summary(violations, warnings)
        logger.info(
            "PHIPA scan finished: %d violation(s), %d warning(s)",
            len(violations),
            len(warnings),
        )
        return ValidationResult(
            is_compliant=not violations,
            violations=violations,
            warnings=warnings,
            scan_date=datetime.now(timezone.utc),
            summary=summary,
        )

    def _walk(
        self,
        root: dict | list,
        violations: list[Violation],
        warnings: list[ComplianceWarning],
    ) -> None:
        # Pre-order: a key is checked, then its subtree, then its next sibling
        stack: list[Iterator[tuple[str | None, Any, str]]] = [_children(root, "")]

        while stack:
            item = next(stack[-1], None)
            if item is None:
                stack.pop()
                continue

            key, value, path = item
            if key is not None:
                self._check_key(str(key), value, path, violations, warnings)

            if isinstance(value, (dict, list)):
                if len(stack) > self.max_depth:
                    logger.warning("Scan depth limit (%d) reached at %s", self.max_depth, path)
                    warnings.append(
                        ComplianceWarning(
                            field=path,
                            warning_type="Scan Depth",
                            description=(
                                f"Data nested deeper than {self.max_depth} levels was not scanned. "
                                "Review this field manually."
                            ),
                        )
                    )
                    continue
                stack.append(_children(value, path))

    def _check_key(
        self,
        field_name: str,
        value: Any,
        path: str,
        violations: list[Violation],
        warnings: list[ComplianceWarning],
    ) -> None:
        self.check_field_name(field_name, value, path, violations)
        self.check_value_patterns(field_name, value, path, violations)
        self.check_date_of_birth(field_name, value, path, warnings)
        self.check_postal_code(field_name, value, path, warnings)
        self.check_email_phone(field_name, value, path, warnings)

    # -- violations -----------------------------------------------------------

    def check_field_name(
        self, field_name: str, value: Any, path: str, violations: list[Violation]
    ) -> None:
        for pattern in self.patterns:
            if not pattern.matches_field(field_name):
                continue
            if isinstance(value, str):
                if not pattern.matches_value(value):
                    continue
                masked = mask_value(value)
            else:
                masked = REDACTED

            violations.append(
                Violation(
                    field=path,
                    violation_type=pattern.type,
                    value=masked,
                    severity=pattern.severity,
                    description=pattern.description,
                    recommendation=recommendation_for(pattern.type),
                )
            )

    def check_value_patterns(
        self, field_name: str, value: Any, path: str, violations: list[Violation]
    ) -> None:
        if not isinstance(value, str):
            return

        # A SIN-named key was already reported by check_field_name
        named_as_sin = self._sin_pattern is not None and self._sin_pattern.matches_field(field_name)
        if SIN_VALUE.fullmatch(value) and not named_as_sin:
            violations.append(
                Violation(
                    field=path,
                    violation_type=ViolationType.SIN,
                    value=mask_value(value),
                    severity=Severity.CRITICAL,
                    description="Possible Social Insurance Number detected in field value",
                    recommendation="Remove or encrypt SIN data",
                )
            )

        if CARD_VALUE.fullmatch(value):
            violations.append(
                Violation(
                    field=path,
                    violation_type=ViolationType.CREDIT_CARD,
                    value=mask_value(value),
                    severity=Severity.CRITICAL,
                    description="Possible credit card number detected",
                    recommendation="Credit card data should not be stored in patient records",
                )
            )

    # -- warnings -------------------------------------------------------------

    @staticmethod
    def check_date_of_birth(
        field_name: str, value: Any, path: str, warnings: list[ComplianceWarning]
    ) -> None:
        if not DOB_FIELD.search(field_name) or not isinstance(value, str):
            return
        if any(p.fullmatch(value) for p in FULL_DATE_VALUES):
            warnings.append(
                ComplianceWarning(
                    field=path,
                    warning_type="Date Precision",
                    description=(
                        "Full date of birth may be too specific. "
                        "Consider using year and month only for de-identification."
                    ),
                )
            )

    @staticmethod
    def check_postal_code(
        field_name: str, value: Any, path: str, warnings: list[ComplianceWarning]
    ) -> None:
        if not POSTAL_FIELD.search(field_name) or not isinstance(value, str):
            return
        if FULL_POSTAL_VALUE.fullmatch(value):
            warnings.append(
                ComplianceWarning(
                    field=path,
                    warning_type="Geographic Precision",
                    description=(
                        "Full postal code may be too specific. "
                        "Consider using first 3 characters only (FSA) for de-identification."
                    ),
                )
            )

    @staticmethod
    def check_email_phone(
        field_name: str, value: Any, path: str, warnings: list[ComplianceWarning]
    ) -> None:
        if not isinstance(value, str):
            return

        if EMAIL_FIELD.search(field_name) and "@" in value:
            warnings.append(
                ComplianceWarning(
                    field=path,
                    warning_type="Contact Information",
                    description=(
                        "Email addresses should be encrypted in transit and at rest. "
                        "Ensure proper security measures."
                    ),
                )
            )

        if PHONE_FIELD.search(field_name) and PHONE_VALUE.search(value):
            warnings.append(
                ComplianceWarning(
                    field=path,
                    warning_type="Contact Information",
                    description=(
                        "Phone numbers should be encrypted. "
                        "Consider partial masking for display purposes."
                    ),
                )
            )
