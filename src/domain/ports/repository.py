"""Repository Port - persistence of workflows, executions, usage counters and audit log."""

from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, Field

from src.domain.entities.workflow import ExecutionStatus


class WorkflowRecord(BaseModel):
    """Stored workflow definition. ``steps`` is JSON text in the WorkflowStep[] shape."""

    id: int
    user_id: int
    title: str
    description: str | None = None
    steps: str = "[]"
    tags: list[str] = Field(default_factory=list)
    is_public: bool = False
    created_at: datetime
    updated_at: datetime


class ExecutionRecord(BaseModel):
    """Stored workflow execution."""

    id: int
    workflow_id: int
    user_id: int
    status: ExecutionStatus
    input: str | None = None
    output: str | None = None  # Serialized {final_output, step_results, total_duration}
    error: str | None = None
    started_at: datetime
    completed_at: datetime | None = None


class AuditLogEntry(BaseModel):
    """Who did what to which resource."""

    id: int
    user_id: int
    action: str  # "create" | "update" | "delete" | "execute"
    resource_type: str
    resource_id: int | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class ImageGenerationRecord(BaseModel):
    """Stored image generation request and its outcome."""

    id: int
    user_id: int
    prompt: str
    model: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    status: str = "pending"  # "pending" | "success" | "failed"
    image_urls: list[str] = Field(default_factory=list)
    error_message: str | None = None
    created_at: datetime


class WorkflowShareRecord(BaseModel):
    """Share link for a workflow."""

    id: int
    workflow_id: int
    user_id: int
    token: str
    permission: str = "view"  # "view" | "edit"
    is_public: bool = True
    expires_at: datetime | None = None
    created_at: datetime


class WorkflowRepository(Protocol):
    """Interface for workflow persistence."""

    def create_workflow(self, user_id: int, **fields: Any) -> WorkflowRecord: ...

    def get_workflow(self, workflow_id: int, user_id: int) -> WorkflowRecord | None: ...

    def list_workflows(self, user_id: int) -> list[WorkflowRecord]: ...

    def update_workflow(self, workflow_id: int, user_id: int, **fields: Any) -> WorkflowRecord | None: ...

    def delete_workflow(self, workflow_id: int, user_id: int) -> bool: ...

    def count_workflows(self, user_id: int) -> int: ...

    def create_execution(
        self,
        workflow_id: int,
        user_id: int,
        input: str | None,
    ) -> ExecutionRecord: ...

    def update_execution(self, execution_id: int, **fields: Any) -> ExecutionRecord | None: ...

    def get_execution(self, execution_id: int) -> ExecutionRecord | None: ...

    def list_executions(self, workflow_id: int, user_id: int) -> list[ExecutionRecord]: ...

    def record_workflow_usage(
        self,
        workflow_id: int,
        user_id: int,
        execution_time: int,
        status: str,
    ) -> None: ...

    def get_usage_count(self, user_id: int, resource_type: str) -> int:
        """Usage count for the current calendar month."""
        ...

    def increment_usage_count(self, user_id: int, resource_type: str) -> int:
        """Increment this month's counter and return the new value."""
        ...

    def create_audit_log(
        self,
        user_id: int,
        action: str,
        resource_type: str,
        resource_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry: ...

    def list_audit_logs(self, user_id: int | None = None, limit: int = 50) -> list[AuditLogEntry]: ...

    def create_image_generation(
        self,
        user_id: int,
        prompt: str,
        model: str,
        parameters: dict[str, Any],
    ) -> ImageGenerationRecord: ...

    def update_image_generation(self, generation_id: int, **fields: Any) -> ImageGenerationRecord | None: ...

    def list_image_generations(self, user_id: int, limit: int = 20, offset: int = 0) -> list[ImageGenerationRecord]: ...

    def create_share(
        self,
        workflow_id: int,
        user_id: int,
        permission: str,
        is_public: bool,
        expires_at: datetime | None,
    ) -> WorkflowShareRecord: ...

    def get_share_by_token(self, token: str) -> WorkflowShareRecord | None: ...

    def delete_share(self, share_id: int, user_id: int) -> bool: ...

    def get_workflow_by_id(self, workflow_id: int) -> WorkflowRecord | None:
        """Workflow regardless of owner (share resolution)."""
        ...
