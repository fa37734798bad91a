"""Workflow DTOs."""

import json
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from src.domain.entities.workflow import ExecutionStatus, WorkflowStep
from src.domain.ports.repository import ExecutionRecord, WorkflowRecord, WorkflowShareRecord

STEPS_ADAPTER = TypeAdapter(list[WorkflowStep])


def dump_steps(steps: list[WorkflowStep]) -> str:
    """Serialize steps to the stored WorkflowStep[] JSON text."""
    return json.dumps([s.model_dump() for s in steps], ensure_ascii=False)


def load_steps(text: str) -> list[WorkflowStep]:
    """Parse stored steps. Raises ValueError on malformed JSON or shape."""
    try:
        return STEPS_ADAPTER.validate_json(text or "[]")
    except ValidationError as e:
        raise ValueError("Invalid workflow steps format") from e


def unique_step_ids(steps: list[WorkflowStep] | None) -> list[WorkflowStep] | None:
    """Step ids address outputs in templates, so they must not repeat."""
    if steps is None:
        return steps
    seen: set[str] = set()
    for step in steps:
        if step.id in seen:
            raise ValueError(f"Duplicate step id: {step.id}")
        seen.add(step.id)
    return steps


class WorkflowCreateRequest(BaseModel):
    """Request to create a workflow."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5_000)
    steps: list[WorkflowStep] = Field(default_factory=list, max_length=100)
    tags: list[str] = Field(default_factory=list, max_length=20)
    is_public: bool = False

    check_step_ids = field_validator("steps")(unique_step_ids)


class WorkflowUpdateRequest(BaseModel):
    """Partial workflow update. Omitted fields stay unchanged."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5_000)
    steps: list[WorkflowStep] | None = Field(None, max_length=100)
    tags: list[str] | None = Field(None, max_length=20)
    is_public: bool | None = None

    check_step_ids = field_validator("steps")(unique_step_ids)


class WorkflowImportRequest(BaseModel):
    """Bulk import of workflow definitions."""

    workflows: list[WorkflowCreateRequest] = Field(..., min_length=1, max_length=50)


class WorkflowExecuteRequest(BaseModel):
    """Run a stored workflow."""

    input: str = Field("", max_length=100_000)


class WorkflowRunRequest(BaseModel):
    """Run ad-hoc steps without storing them."""

    steps: list[WorkflowStep] = Field(..., max_length=100)
    input: str = Field("", max_length=100_000)

    check_step_ids = field_validator("steps")(unique_step_ids)


class WorkflowResponse(BaseModel):
    """Stored workflow with decoded steps."""

    id: int
    title: str
    description: str | None = None
    steps: list[WorkflowStep]
    tags: list[str]
    is_public: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: WorkflowRecord) -> "WorkflowResponse":
        try:
            steps = load_steps(record.steps)
        except ValueError:
            steps = []  # Still listable; execution reports the format error
        return cls(
            id=record.id,
            title=record.title,
            description=record.description,
            steps=steps,
            tags=record.tags,
            is_public=record.is_public,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class ExecutionResponse(BaseModel):
    """Stored execution. ``result`` is the decoded output document when present."""

    id: int
    workflow_id: int
    status: ExecutionStatus
    input: str | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_record(cls, record: ExecutionRecord) -> "ExecutionResponse":
        result = None
        if record.output:
            try:
                result = json.loads(record.output)
            except json.JSONDecodeError:
                result = {"final_output": record.output}
        return cls(
            id=record.id,
            workflow_id=record.workflow_id,
            status=record.status,
            input=record.input,
            result=result,
            error=record.error,
            started_at=record.started_at,
            completed_at=record.completed_at,
        )


class ExecutionStartedResponse(BaseModel):
    """Returned when an execution is scheduled in the background."""

    execution_id: int
    status: ExecutionStatus = ExecutionStatus.RUNNING


class WorkflowStreamEvent(BaseModel):
    """SSE event for streaming workflow progress."""

    event_type: str  # step_started, step_completed, step_failed, error, done
    payload: dict[str, Any] | None = None


class ShareCreateRequest(BaseModel):
    """Create a share link for a workflow."""

    permission: Literal["view", "edit"] = "view"
    is_public: bool = True
    expires_at: datetime | None = None

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ShareResponse(BaseModel):
    id: int
    workflow_id: int
    token: str
    permission: str
    is_public: bool
    expires_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: WorkflowShareRecord) -> "ShareResponse":
        return cls.model_validate(record.model_dump())


class SharedWorkflowView(BaseModel):
    """Read-only subset exposed through ``view`` links."""

    id: int
    title: str
    description: str | None = None
    steps: list[WorkflowStep]
    tags: list[str]
    created_at: datetime


class SharedWorkflowResponse(BaseModel):
    """Workflow resolved from a share token. ``edit`` links get the full record."""

    workflow: WorkflowResponse | SharedWorkflowView
    permission: str
