"""Tests for the DAG runner – no services involved."""

import pytest

from medibridge.etl.dag import DAG, StageStatus


def test_independent_stages_feed_a_joining_stage():
    """convert + scan -> score: the join sees both upstream results."""
    dag = DAG("join")
    dag.add_stage("left", lambda ctx: {"left": ctx["seed"] + 1})
    dag.add_stage("right", lambda ctx: {"right": ctx["seed"] + 2})
    dag.add_stage("join", lambda ctx: {"total": ctx["left"] + ctx["right"]}, depends_on=["left", "right"])

    summary = dag.run({"seed": 10})

    assert summary["status"] == "completed"
    assert summary["context"]["total"] == 23
    assert dag.execution_order() == ["left", "right", "join"]


def test_stage_order_follows_dependencies_not_insertion():
    order = []
    dag = DAG("reverse")
    dag.add_stage("last", lambda ctx: order.append("last"), depends_on=["first"])
    dag.add_stage("first", lambda ctx: order.append("first"))

    dag.run()
    assert order == ["first", "last"]


def test_failed_stage_skips_downstream():
    def failing(ctx):
        raise RuntimeError("Intentional failure")

    def downstream(ctx):
        pytest.fail("Should not have run")

    dag = DAG("failure")
    dag.add_stage("ok", lambda ctx: {"a": 1})
    dag.add_stage("fail", failing)
    dag.add_stage("after", downstream, depends_on=["ok", "fail"])
    dag.add_stage("after_after", downstream, depends_on=["after"])

    summary = dag.run()

    assert summary["status"] == "failed"
    assert dag.stages["ok"].status == StageStatus.SUCCESS
    assert dag.stages["fail"].status == StageStatus.FAILED
    assert summary["stages"]["fail"]["error"] == "Intentional failure"
    assert dag.stages["after"].status == StageStatus.SKIPPED
    assert dag.stages["after_after"].status == StageStatus.SKIPPED


def test_cycle_detection():
    dag = DAG("cycle")
    dag.add_stage("a", lambda ctx: None, depends_on=["b"])
    dag.add_stage("b", lambda ctx: None, depends_on=["a"])

    with pytest.raises(ValueError, match="Cycle detected"):
        dag.run()


def test_unknown_dependency():
    dag = DAG("unknown")
    dag.add_stage("a", lambda ctx: None, depends_on=["missing"])

    with pytest.raises(ValueError, match="unknown stage 'missing'"):
        dag.run()


def test_duplicate_stage_name():
    dag = DAG("dup")
    dag.add_stage("a", lambda ctx: None)

    with pytest.raises(ValueError, match="Duplicate stage name"):
        dag.add_stage("a", lambda ctx: None)


def test_to_dict_serialization():
    dag = DAG("serialize_test")
    dag.add_stage("x", lambda ctx: None)
    dag.add_stage("y", lambda ctx: None, depends_on=["x"])

    d = dag.to_dict()
    assert d["name"] == "serialize_test"
    assert d["stages"]["y"]["depends_on"] == ["x"]
