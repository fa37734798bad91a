"""Workflow use case - CRUD, quotas, execution and persistence of results."""

import asyncio
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

from src.application.workflow.dto import (
    ExecutionResponse,
    ShareCreateRequest,
    ShareResponse,
    SharedWorkflowResponse,
    SharedWorkflowView,
    WorkflowCreateRequest,
    WorkflowResponse,
    WorkflowStreamEvent,
    WorkflowUpdateRequest,
    dump_steps,
    load_steps,
)
from src.application.workflow.executor import WorkflowExecutor
from src.domain.entities.user import UserContext
from src.domain.entities.workflow import (
    ExecutionStatus,
    StepStatus,
    WorkflowExecutionResult,
    WorkflowStep,
)
from src.domain.entities.workflow_events import WorkflowEventType
from src.domain.ports.repository import WorkflowRecord, WorkflowRepository
from src.domain.services.subscription import QuotaExceededError, check_feature_limit
from src.shared.logging import log_context

logger = logging.getLogger(__name__)

EXECUTION_USAGE = "workflow_execution"


class WorkflowNotFoundError(Exception):
    """Workflow does not exist or belongs to another user."""

    def __init__(self, workflow_id: int) -> None:
        super().__init__(f"Workflow {workflow_id} not found")
        self.workflow_id = workflow_id


class ShareNotFoundError(Exception):
    """Share token unknown or expired, or share id not owned by the caller."""


class ShareAccessError(Exception):
    """Share link is not public."""


def _failed_result(error: str) -> WorkflowExecutionResult:
    return WorkflowExecutionResult(status=ExecutionStatus.FAILED, error=error)


class WorkflowUseCase:
    """Workflow management and execution for one repository."""

    def __init__(self, repository: WorkflowRepository, executor: WorkflowExecutor) -> None:
        self._repo = repository
        self._executor = executor

    # Definitions

    def list_workflows(self, user: UserContext) -> list[WorkflowResponse]:
        return [WorkflowResponse.from_record(r) for r in self._repo.list_workflows(user.id)]

    def get_workflow(self, user: UserContext, workflow_id: int) -> WorkflowResponse:
        return WorkflowResponse.from_record(self._get_record(user, workflow_id))

    def create_workflow(self, user: UserContext, request: WorkflowCreateRequest) -> WorkflowResponse:
        """Create a workflow after checking the plan's workflow quota."""
        self._check_workflow_quota(user, adding=1)
        return self._create(user, request, action="create")

    def import_workflows(self, user: UserContext, requests: list[WorkflowCreateRequest]) -> list[WorkflowResponse]:
        """Bulk create. The whole batch must fit in the remaining quota."""
        self._check_workflow_quota(user, adding=len(requests))
        created = [self._create(user, r, action="import") for r in requests]
        logger.info("Imported %d workflow(s) for user %s", len(created), user.id)
        return created

    def update_workflow(
        self,
        user: UserContext,
        workflow_id: int,
        request: WorkflowUpdateRequest,
    ) -> WorkflowResponse:
        fields: dict[str, Any] = request.model_dump(exclude_none=True, exclude={"steps"})
        if request.steps is not None:
            fields["steps"] = dump_steps(request.steps)
        record = self._repo.update_workflow(workflow_id, user.id, **fields)
        if record is None:
            raise WorkflowNotFoundError(workflow_id)
        self._repo.create_audit_log(user.id, "update", "workflow", workflow_id, {"fields": sorted(fields)})
        return WorkflowResponse.from_record(record)

    def delete_workflow(self, user: UserContext, workflow_id: int) -> None:
        if not self._repo.delete_workflow(workflow_id, user.id):
            raise WorkflowNotFoundError(workflow_id)
        self._repo.create_audit_log(user.id, "delete", "workflow", workflow_id)

    def list_executions(self, user: UserContext, workflow_id: int) -> list[ExecutionResponse]:
        self._get_record(user, workflow_id)
        return [ExecutionResponse.from_record(r) for r in self._repo.list_executions(workflow_id, user.id)]

    # Sharing

    def create_share(self, user: UserContext, workflow_id: int, request: ShareCreateRequest) -> ShareResponse:
        """Create a share link for an owned workflow."""
        self._get_record(user, workflow_id)
        share = self._repo.create_share(
            workflow_id, user.id, request.permission, request.is_public, request.expires_at
        )
        self._repo.create_audit_log(
            user.id, "share", "workflow", workflow_id, {"share_id": share.id, "permission": share.permission}
        )
        return ShareResponse.from_record(share)

    def get_shared(self, token: str) -> SharedWorkflowResponse:
        """Resolve a public share link. ``view`` links expose a read-only subset."""
        share = self._repo.get_share_by_token(token)
        if share is None:
            raise ShareNotFoundError("Share not found or expired")
        if share.expires_at and share.expires_at < datetime.now(timezone.utc):
            raise ShareNotFoundError("Share link has expired")
        if not share.is_public:
            raise ShareAccessError("This share requires authentication")
        record = self._repo.get_workflow_by_id(share.workflow_id)
        if record is None:
            raise ShareNotFoundError("Shared workflow no longer exists")
        workflow = WorkflowResponse.from_record(record)
        if share.permission == "view":
            return SharedWorkflowResponse(
                workflow=SharedWorkflowView.model_validate(workflow.model_dump()),
                permission="view",
            )
        return SharedWorkflowResponse(workflow=workflow, permission=share.permission)

    def delete_share(self, user: UserContext, share_id: int) -> None:
        if not self._repo.delete_share(share_id, user.id):
            raise ShareNotFoundError(f"Share {share_id} not found")

    # Execution

    def start_execution(self, user: UserContext, workflow_id: int, input: str) -> int:
        """Persist a running execution record and return its id."""
        self._get_record(user, workflow_id)
        execution = self._repo.create_execution(workflow_id, user.id, input)
        self._repo.create_audit_log(user.id, "execute", "workflow", workflow_id, {"execution_id": execution.id})
        return execution.id

    async def run_execution(
        self,
        user: UserContext,
        workflow_id: int,
        execution_id: int,
        input: str,
        on_event=None,
    ) -> WorkflowExecutionResult:
        """Run a stored workflow and persist the outcome on ``execution_id``."""
        with log_context(user_id=user.id, workflow_id=workflow_id, execution_id=execution_id):
            try:
                record = self._get_record(user, workflow_id)
                try:
                    steps = load_steps(record.steps)
                except ValueError as e:
                    result = _failed_result(str(e))
                else:
                    result = await self._executor.execute(steps, input, on_event=on_event)
            except WorkflowNotFoundError as e:
                result = _failed_result(str(e))
            except Exception as e:
                logger.exception("Workflow %s execution %s crashed", workflow_id, execution_id)
                result = _failed_result(str(e) or type(e).__name__)

            self._persist(user, workflow_id, execution_id, result)
        return result

    async def run_steps(self, steps: list[WorkflowStep], input: str) -> WorkflowExecutionResult:
        """Run ad-hoc steps. Nothing is persisted."""
        return await self._executor.execute(steps, input)

    async def execute_stream(
        self,
        user: UserContext,
        workflow_id: int,
        input: str,
    ) -> AsyncIterator[WorkflowStreamEvent]:
        """Run a stored workflow, yielding step events and a final ``done`` event."""
        try:
            execution_id = self.start_execution(user, workflow_id, input)
        except WorkflowNotFoundError as e:
            yield WorkflowStreamEvent(event_type=WorkflowEventType.ERROR.value, payload={"error": str(e)})
            return

        queue: asyncio.Queue[WorkflowStreamEvent] = asyncio.Queue()

        def on_event(event_type: WorkflowEventType, payload: dict[str, Any]) -> None:
            queue.put_nowait(WorkflowStreamEvent(event_type=event_type.value, payload=payload))

        terminal = (WorkflowEventType.DONE.value, WorkflowEventType.ERROR.value)

        async def run() -> None:
            try:
                result = await self.run_execution(user, workflow_id, execution_id, input, on_event=on_event)
            except Exception as e:
                # Persisting the outcome failed; the consumer still needs a terminal event
                logger.exception("Streamed execution %s of workflow %s failed", execution_id, workflow_id)
                queue.put_nowait(WorkflowStreamEvent(
                    event_type=WorkflowEventType.ERROR.value,
                    payload={"execution_id": execution_id, "error": str(e) or type(e).__name__},
                ))
                return
            payload = {"execution_id": execution_id, **result.model_dump(mode="json")}
            queue.put_nowait(WorkflowStreamEvent(event_type=WorkflowEventType.DONE.value, payload=payload))

        task = asyncio.create_task(run())
        try:
            while True:
                event = await queue.get()
                yield event
                if event.event_type in terminal:
                    break
        finally:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    # Internals

    def _get_record(self, user: UserContext, workflow_id: int) -> WorkflowRecord:
        record = self._repo.get_workflow(workflow_id, user.id)
        if record is None:
            raise WorkflowNotFoundError(workflow_id)
        return record

    def _check_workflow_quota(self, user: UserContext, adding: int) -> None:
        if user.is_admin:
            return
        count = self._repo.count_workflows(user.id)
        check = check_feature_limit(user.tier, "max_workflows", count + adding - 1)
        if not check.allowed:
            raise QuotaExceededError(
                f"Workflow limit reached for the {user.tier} plan ({check.limit})",
                int(check.limit),
            )

    def _create(self, user: UserContext, request: WorkflowCreateRequest, action: str) -> WorkflowResponse:
        record = self._repo.create_workflow(
            user.id,
            title=request.title,
            description=request.description,
            steps=dump_steps(request.steps),
            tags=request.tags,
            is_public=request.is_public,
        )
        self._repo.create_audit_log(user.id, action, "workflow", record.id, {"title": record.title})
        return WorkflowResponse.from_record(record)

    def _persist(
        self,
        user: UserContext,
        workflow_id: int,
        execution_id: int,
        result: WorkflowExecutionResult,
    ) -> None:
        self._repo.update_execution(
            execution_id,
            status=result.status,
            output=result.serialized_output(),
            error=result.error,
            completed_at=datetime.now(timezone.utc),
        )
        usage_status = StepStatus.SUCCESS if result.status == ExecutionStatus.COMPLETED else StepStatus.FAILED
        self._repo.record_workflow_usage(workflow_id, user.id, result.total_duration, usage_status.value)
        self._repo.increment_usage_count(user.id, EXECUTION_USAGE)
        logger.info(
            "Execution %s of workflow %s finished: %s in %d ms",
            execution_id,
            workflow_id,
            result.status.value,
            result.total_duration,
        )
