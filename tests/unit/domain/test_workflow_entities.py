"""Tests for workflow entities."""

import json

import pytest
from pydantic import ValidationError

from src.domain.entities.workflow import (
    ExecutionStatus,
    StepResult,
    StepStatus,
    WorkflowExecutionResult,
    WorkflowStep,
    step_output_variable,
)


class TestWorkflowStep:
    """Tests for WorkflowStep coercion."""

    def test_numeric_id_becomes_string(self):
        step = WorkflowStep(id=3, type="transform")
        assert step.id == "3"

    def test_dict_config_serialized_to_text(self):
        step = WorkflowStep(id="1", type="transform", config={"operation": "format"})
        assert json.loads(step.config) == {"operation": "format"}

    def test_none_config_becomes_empty(self):
        step = WorkflowStep(id="1", type="prompt", config=None)
        assert step.config == ""

    def test_unknown_type_accepted(self):
        """Unknown kinds fail at execution time, not at load time."""
        step = WorkflowStep(id="1", type="webhook")
        assert step.type == "webhook"

    def test_missing_type_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowStep(id="1")


def test_step_output_variable_name():
    assert step_output_variable("abc") == "step_abc_output"


def test_serialized_output_shape():
    result = WorkflowExecutionResult(
        status=ExecutionStatus.COMPLETED,
        output="done",
        step_results=[
            StepResult(step_id="1", step_name="one", status=StepStatus.SUCCESS, output="done", duration=4),
        ],
        total_duration=5,
    )
    data = json.loads(result.serialized_output())
    assert data["final_output"] == "done"
    assert data["total_duration"] == 5
    assert data["step_results"][0]["status"] == "success"
    assert data["step_results"][0]["error"] is None
