"""Workflow application layer."""

from src.application.workflow.dto import (
    ExecutionResponse,
    WorkflowCreateRequest,
    WorkflowResponse,
    WorkflowStreamEvent,
)
from src.application.workflow.executor import StepExecutor, WorkflowExecutor
from src.application.workflow.use_case import WorkflowNotFoundError, WorkflowUseCase

__all__ = [
    "ExecutionResponse",
    "StepExecutor",
    "WorkflowCreateRequest",
    "WorkflowExecutor",
    "WorkflowNotFoundError",
    "WorkflowResponse",
    "WorkflowStreamEvent",
    "WorkflowUseCase",
]
