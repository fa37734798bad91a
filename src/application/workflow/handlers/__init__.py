"""Workflow step handlers."""

from src.application.workflow.handlers.api_call import ApiCallError, ApiCallStepHandler
from src.application.workflow.handlers.base import StepHandler
from src.application.workflow.handlers.prompt import PromptStepHandler
from src.application.workflow.handlers.transform import (
    TransformError,
    TransformStepHandler,
    apply_transform,
)

__all__ = [
    "ApiCallError",
    "ApiCallStepHandler",
    "PromptStepHandler",
    "StepHandler",
    "TransformError",
    "TransformStepHandler",
    "apply_transform",
]
