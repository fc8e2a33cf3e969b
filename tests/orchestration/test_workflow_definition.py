"""Tests for WorkflowDefinition validation and StepResults."""

import logging

import pytest

from orchestration.models import ok
from orchestration.workflow import (
    STEP_FAILED,
    Step,
    StepResults,
    WorkflowDefinition,
    WorkflowDefinitionError,
)


async def _noop(ctx, input_, results):
    return ok()


async def _undo(ctx, input_, value):
    return ok()


def _build(steps):
    return WorkflowDefinition(name="wf", steps=steps, build_output=lambda results: None)


def test_empty_definition_is_rejected():
    with pytest.raises(WorkflowDefinitionError, match="no steps"):
        _build([])


def test_duplicate_step_names_are_rejected():
    with pytest.raises(WorkflowDefinitionError, match="duplicate step name 'a'"):
        _build([Step("a", _noop), Step("a", _noop)])


def test_optional_step_without_rollback_before_required_step_warns(caplog):
    with caplog.at_level(logging.WARNING):
        definition = _build(
            [
                Step("check", _noop),
                Step("send_email", _noop, optional=True),
                Step("charge", _noop),
            ]
        )

    assert len(definition.warnings) == 1
    assert "send_email" in definition.warnings[0]
    assert "charge" in definition.warnings[0]
    assert any("send_email" in record.getMessage() for record in caplog.records)


def test_trailing_optional_steps_and_compensable_ones_do_not_warn():
    definition = _build(
        [
            Step("reserve", _noop, rollback=_undo, optional=True),
            Step("create", _noop, rollback=_undo),
            Step("notify", _noop, optional=True),
            Step("bill", _noop, optional=True),
        ]
    )

    assert definition.warnings == []
    assert definition.step_names == ["reserve", "create", "notify", "bill"]


def test_step_compensable_flag():
    assert Step("a", _noop, rollback=_undo).compensable is True
    assert Step("b", _noop).compensable is False


def test_step_results_view_is_read_only():
    values = {"a": 1, "b": STEP_FAILED}
    view = StepResults(values)

    with pytest.raises(TypeError):
        view["c"] = 3  # type: ignore[index]

    assert view["a"] == 1
    assert view.get("b") is None
    assert view.get("missing", "d") == "d"
    assert view.succeeded("a") and not view.succeeded("b")
    assert view.failed("b") and not view.failed("missing")
    assert view.as_dict() == {"a": 1}
    assert len(view) == 2


def test_step_results_tracks_later_writes():
    values: dict = {}
    view = StepResults(values)
    values["a"] = "x"

    assert view.require("a") == "x"


def test_require_raises_for_failed_or_missing_step():
    view = StepResults({"b": STEP_FAILED})

    with pytest.raises(KeyError):
        view.require("b")
    with pytest.raises(KeyError):
        view.require("missing")


def test_step_failed_marker_is_falsy_singleton():
    assert not STEP_FAILED
    assert type(STEP_FAILED)() is STEP_FAILED
    assert repr(STEP_FAILED) == "STEP_FAILED"
