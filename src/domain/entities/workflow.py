"""Workflow entities: step definitions, step results, execution results."""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class StepType(str, Enum):
    """Step kinds the executor knows how to run."""

    PROMPT = "prompt"
    API_CALL = "api_call"
    TRANSFORM = "transform"


class StepStatus(str, Enum):
    """Outcome of a single step."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"  # Reserved for conditional branching; never produced today


class ExecutionStatus(str, Enum):
    """Outcome of a workflow run. RUNNING only exists on persisted execution records."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def step_output_variable(step_id: str) -> str:
    """Variable name under which a step's output is exposed to later steps."""
    return f"step_{step_id}_output"


class WorkflowStep(BaseModel):
    """One unit of work in a workflow definition.

    ``type`` stays a plain string so that unknown kinds survive loading and fail
    at execution time instead of rejecting the whole workflow.
    """

    id: str
    name: str = ""
    type: str
    config: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Stored definitions use numeric ids as often as string ones
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("config", mode="before")
    @classmethod
    def _coerce_config(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return value


class StepResult(BaseModel):
    """Outcome of executing one step."""

    step_id: str
    step_name: str
    status: StepStatus
    output: str = ""
    error: str | None = None  # Set only when status is failed
    duration: int = 0  # Milliseconds


class WorkflowExecutionResult(BaseModel):
    """Outcome of a full workflow run. Built once per run, never mutated after return."""

    status: ExecutionStatus
    output: str = ""
    error: str | None = None
    step_results: list[StepResult] = Field(default_factory=list)
    total_duration: int = 0  # Milliseconds

    def serialized_output(self) -> str:
        """JSON document stored in the execution record's output column."""
        return json.dumps(
            {
                "final_output": self.output,
                "step_results": [r.model_dump(mode="json") for r in self.step_results],
                "total_duration": self.total_duration,
            },
            ensure_ascii=False,
        )
