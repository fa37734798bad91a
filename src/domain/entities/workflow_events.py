"""Workflow event types for SSE streaming."""

from enum import Enum


class WorkflowEventType(str, Enum):
    """Event types streamed to client."""

    STEP_STARTED = "step_started"
    STEP_COMPLETED = "step_completed"
    STEP_FAILED = "step_failed"
    ERROR = "error"  # Run could not start (bad definition, gate denial)
    DONE = "done"  # Final WorkflowExecutionResult
