"""Workflow API routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sse_starlette.sse import EventSourceResponse

from src.api.dependencies import (
    CurrentUser,
    get_workflow_use_case,
    limiter,
    rate_limited,
)
from src.application.workflow.dto import (
    ExecutionResponse,
    ExecutionStartedResponse,
    ShareCreateRequest,
    ShareResponse,
    SharedWorkflowResponse,
    WorkflowCreateRequest,
    WorkflowExecuteRequest,
    WorkflowImportRequest,
    WorkflowResponse,
    WorkflowRunRequest,
    WorkflowUpdateRequest,
)
from src.application.workflow.use_case import WorkflowUseCase
from src.domain.entities.rate_limit import RateLimitFeature
from src.domain.entities.user import UserContext
from src.domain.entities.workflow import WorkflowExecutionResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])

UseCase = Annotated[WorkflowUseCase, Depends(get_workflow_use_case)]
GeneralGated = Annotated[UserContext, Depends(rate_limited(RateLimitFeature.GENERAL))]
ImportGated = Annotated[UserContext, Depends(rate_limited(RateLimitFeature.IMPORT))]
ShareGated = Annotated[UserContext, Depends(rate_limited(RateLimitFeature.CREATE_SHARE))]


@router.get("")
@limiter.limit("60/minute")
async def list_workflows(request: Request, user: CurrentUser, use_case: UseCase) -> list[WorkflowResponse]:
    """List the caller's workflows, newest first."""
    return use_case.list_workflows(user)


@router.post("", status_code=201)
@limiter.limit("30/minute")
async def create_workflow(
    request: Request,
    body: WorkflowCreateRequest,
    user: CurrentUser,
    use_case: UseCase,
) -> WorkflowResponse:
    """Create a workflow (subject to the plan's workflow quota)."""
    return use_case.create_workflow(user, body)


@router.post("/import", status_code=201)
@limiter.limit("10/minute")
async def import_workflows(
    request: Request,
    body: WorkflowImportRequest,
    user: ImportGated,
    use_case: UseCase,
) -> list[WorkflowResponse]:
    """Bulk import workflow definitions."""
    return use_case.import_workflows(user, body.workflows)


@router.post("/run")
@limiter.limit("30/minute")
async def run_steps(
    request: Request,
    body: WorkflowRunRequest,
    user: GeneralGated,
    use_case: UseCase,
) -> WorkflowExecutionResult:
    """Run ad-hoc steps synchronously; nothing is stored."""
    return await use_case.run_steps(body.steps, body.input)


@router.get("/shared/{token}")
@limiter.limit("60/minute")
async def get_shared_workflow(request: Request, token: str, use_case: UseCase) -> SharedWorkflowResponse:
    """Resolve a public share link (no identity required)."""
    return use_case.get_shared(token)


@router.delete("/shares/{share_id}")
@limiter.limit("30/minute")
async def delete_share(request: Request, share_id: int, user: CurrentUser, use_case: UseCase) -> dict:
    """Revoke a share link created by the caller."""
    use_case.delete_share(user, share_id)
    return {"ok": True}


@router.get("/{workflow_id}")
@limiter.limit("60/minute")
async def get_workflow(request: Request, workflow_id: int, user: CurrentUser, use_case: UseCase) -> WorkflowResponse:
    """Get one workflow."""
    return use_case.get_workflow(user, workflow_id)


@router.put("/{workflow_id}")
@limiter.limit("30/minute")
async def update_workflow(
    request: Request,
    workflow_id: int,
    body: WorkflowUpdateRequest,
    user: CurrentUser,
    use_case: UseCase,
) -> WorkflowResponse:
    """Update title, description, steps, tags or visibility."""
    return use_case.update_workflow(user, workflow_id, body)


@router.delete("/{workflow_id}")
@limiter.limit("30/minute")
async def delete_workflow(request: Request, workflow_id: int, user: CurrentUser, use_case: UseCase) -> dict:
    """Delete a workflow."""
    use_case.delete_workflow(user, workflow_id)
    return {"ok": True}


@router.post("/{workflow_id}/execute", status_code=202)
@limiter.limit("30/minute")
async def execute_workflow(
    request: Request,
    workflow_id: int,
    body: WorkflowExecuteRequest,
    background_tasks: BackgroundTasks,
    user: GeneralGated,
    use_case: UseCase,
) -> ExecutionStartedResponse:
    """Start an execution in the background; poll ``/executions`` for the result."""
    execution_id = use_case.start_execution(user, workflow_id, body.input)
    background_tasks.add_task(use_case.run_execution, user, workflow_id, execution_id, body.input)
    return ExecutionStartedResponse(execution_id=execution_id)


@router.get("/{workflow_id}/execute/stream")
@limiter.limit("30/minute")
async def execute_workflow_stream(
    request: Request,
    workflow_id: int,
    user: GeneralGated,
    use_case: UseCase,
    input: str = "",
) -> EventSourceResponse:
    """Run a workflow and stream step events via SSE."""

    async def event_generator():
        try:
            async for evt in use_case.execute_stream(user, workflow_id, input):
                yield {"event": evt.event_type, "data": evt.model_dump_json()}
        except Exception:
            logger.exception("Workflow stream failed")
            yield {"event": "error", "data": "Stream failed"}
        yield {"event": "close", "data": ""}

    return EventSourceResponse(event_generator())


@router.get("/{workflow_id}/executions")
@limiter.limit("60/minute")
async def list_executions(
    request: Request,
    workflow_id: int,
    user: CurrentUser,
    use_case: UseCase,
) -> list[ExecutionResponse]:
    """Execution history of a workflow, newest first."""
    return use_case.list_executions(user, workflow_id)


@router.post("/{workflow_id}/shares", status_code=201)
@limiter.limit("10/minute")
async def create_share(
    request: Request,
    workflow_id: int,
    body: ShareCreateRequest,
    user: ShareGated,
    use_case: UseCase,
) -> ShareResponse:
    """Create a share link for a workflow."""
    return use_case.create_share(user, workflow_id, body)
