"""
Interoperability pipeline: raw patient JSON -> FHIR conversion + PHIPA scan
-> data quality score.

Conversion and scanning read the same raw input and share no state; the
scoring stage waits for both.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any

from medibridge.etl.dag import DAG
from medibridge.schemas.api import InteroperabilityResult
from medibridge.services.converter import FhirConverter
from medibridge.services.phipa import PhipaScanner
from medibridge.services.quality import calculate_quality_score, quality_assessment

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pipeline factory
# ---------------------------------------------------------------------------

def build_interoperability_pipeline(
    converter: FhirConverter | None = None,
    scanner: PhipaScanner | None = None,
) -> DAG:
    """Construct the convert / scan / score DAG around the given services."""
    converter = converter or FhirConverter()
    scanner = scanner or PhipaScanner()

    def convert(context: dict[str, Any]) -> dict[str, Any]:
        return {"fhir_conversion": converter.convert(context["raw_input"])}

    def scan(context: dict[str, Any]) -> dict[str, Any]:
        # PHIPA rules apply to the data as received, not the FHIR output
        return {"phipa_validation": scanner.validate(context["raw_input"])}

    def score(context: dict[str, Any]) -> dict[str, Any]:
        value = calculate_quality_score(context["fhir_conversion"], context["phipa_validation"])
        return {"data_quality_score": value}

    dag = DAG("interoperability")
    dag.add_stage("convert", convert)
    dag.add_stage("scan", scan)
    dag.add_stage("score", score, depends_on=["convert", "scan"])
    return dag


def process_patient_data(
    data: Any,
    converter: FhirConverter | None = None,
    scanner: PhipaScanner | None = None,
) -> InteroperabilityResult:
    """
    Run one record through the pipeline.

    A malformed record is not an error here: it comes back as a failed
    conversion inside the result. RuntimeError means a stage crashed.
    The result holds its own copy of the input; later changes to the
    caller's data do not reach it.
    """
    snapshot = copy.deepcopy(data)
    pipeline = build_interoperability_pipeline(converter, scanner)
    logger.debug("Running pipeline %s", pipeline.to_dict())
    summary = pipeline.run({"raw_input": snapshot})

    if summary["status"] != "completed":
        failed = {name: s["error"] for name, s in summary["stages"].items() if s["error"]}
        raise RuntimeError(f"Interoperability pipeline failed: {failed}")

    context = summary["context"]
    score = context["data_quality_score"]
    logger.info(
        "Processed record: conversion=%s compliant=%s score=%d",
        context["fhir_conversion"].success,
        context["phipa_validation"].is_compliant,
        score,
    )
    return InteroperabilityResult(
        original_data=snapshot,
        fhir_conversion=context["fhir_conversion"],
        phipa_validation=context["phipa_validation"],
        processed_at=datetime.now(timezone.utc),
        data_quality_score=score,
        quality_assessment=quality_assessment(score),
    )
