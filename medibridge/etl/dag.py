"""
Minimal DAG runner for the interoperability pipeline.

Stages are plain callables taking the shared context dict and returning a dict
of new context values. Independent stages (FHIR conversion, PHIPA scan) have
no edges between them; the scoring stage depends on both.

A stage that raises is marked failed and every stage downstream of it is
skipped; the run itself never raises for a stage failure.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

StageFn = Callable[[dict[str, Any]], "dict[str, Any] | None"]


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class Stage:
    name: str
    execute_fn: StageFn
    depends_on: list[str] = field(default_factory=list)
    status: StageStatus = StageStatus.PENDING
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    duration_ms: float = 0.0

    def summary(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
            "error": self.error,
        }


class DAG:
    """
    Usage:
        dag = DAG("interoperability")
        dag.add_stage("convert", convert_fn)
        dag.add_stage("scan", scan_fn)
        dag.add_stage("score", score_fn, depends_on=["convert", "scan"])
        summary = dag.run({"raw_input": payload})
    """

    def __init__(self, name: str):
        self.name = name
        self.stages: dict[str, Stage] = {}

    def add_stage(
        self,
        name: str,
        execute_fn: StageFn,
        depends_on: list[str] | None = None,
    ) -> DAG:
        if name in self.stages:
            raise ValueError(f"Duplicate stage name: {name}")
        self.stages[name] = Stage(name=name, execute_fn=execute_fn, depends_on=list(depends_on or []))
        return self

    def execution_order(self) -> list[str]:
        """Kahn's algorithm; ties keep insertion order."""
        dependents: dict[str, list[str]] = {name: [] for name in self.stages}
        remaining: dict[str, int] = {}
        for stage in self.stages.values():
            for dep in stage.depends_on:
                if dep not in self.stages:
                    raise ValueError(f"Stage '{stage.name}' depends on unknown stage '{dep}'")
                dependents[dep].append(stage.name)
            remaining[stage.name] = len(stage.depends_on)

        ready = deque(name for name, count in remaining.items() if count == 0)
        order: list[str] = []
        while ready:
            current = ready.popleft()
            order.append(current)
            for name in dependents[current]:
                remaining[name] -= 1
                if remaining[name] == 0:
                    ready.append(name)

        if len(order) != len(self.stages):
            raise ValueError("Cycle detected in DAG")
        return order

    def run(self, initial_context: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run every stage in dependency order and return a run summary.
        Stage results accumulate in the shared context as they complete.
        """
        order = self.execution_order()
        context = dict(initial_context or {})
        stage_summaries: dict[str, Any] = {}

        logger.info("Starting pipeline '%s' (%d stages)", self.name, len(order))

        for name in order:
            stage = self.stages[name]

            blocked_by = [
                dep for dep in stage.depends_on
                if self.stages[dep].status in (StageStatus.FAILED, StageStatus.SKIPPED)
            ]
            if blocked_by:
                stage.status = StageStatus.SKIPPED
                logger.warning("Skipping stage '%s' – upstream %s did not succeed", name, blocked_by)
                stage_summaries[name] = stage.summary()
                continue

            stage.status = StageStatus.RUNNING
            start = time.perf_counter()
            try:
                stage.result = stage.execute_fn(context) or {}
                stage.status = StageStatus.SUCCESS
                context.update(stage.result)
            except Exception as exc:
                stage.status = StageStatus.FAILED
                stage.error = str(exc)
                logger.error("Stage '%s' failed: %s", name, exc)
            finally:
                stage.duration_ms = (time.perf_counter() - start) * 1000

            stage_summaries[name] = stage.summary()

        succeeded = all(s.status == StageStatus.SUCCESS for s in self.stages.values())
        status = "completed" if succeeded else "failed"
        logger.info("Pipeline '%s' finished – %s", self.name, status)
        return {"pipeline": self.name, "status": status, "stages": stage_summaries, "context": context}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "stages": {name: {"depends_on": s.depends_on} for name, s in self.stages.items()},
        }
