"""Step and workflow executors.

StepExecutor turns one step into exactly one StepResult and never raises.
WorkflowExecutor runs steps in order, chains outputs and stops at the first failure.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from src.application.workflow.config_parser import parse_step_config
from src.application.workflow.handlers import (
    ApiCallStepHandler,
    PromptStepHandler,
    StepHandler,
    TransformStepHandler,
)
from src.domain.entities.workflow import (
    ExecutionStatus,
    StepResult,
    StepStatus,
    StepType,
    WorkflowExecutionResult,
    WorkflowStep,
    step_output_variable,
)
from src.domain.entities.workflow_events import WorkflowEventType
from src.domain.ports.llm import LLMPort

logger = logging.getLogger(__name__)

# (event_type, payload) - used to stream progress
EventCallback = Callable[[WorkflowEventType, dict[str, Any]], Awaitable[None] | None]


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class StepExecutor:
    """Dispatch a step to its handler by type."""

    def __init__(self, handlers: Sequence[StepHandler]) -> None:
        self._handlers: dict[StepType, StepHandler] = {h.step_type: h for h in handlers}

    @classmethod
    def create(cls, llm: LLMPort, api_call_timeout: float | None = None, http_client=None) -> "StepExecutor":
        """Executor with the three built-in handlers."""
        return cls(
            [
                PromptStepHandler(llm),
                ApiCallStepHandler(client=http_client, timeout=api_call_timeout),
                TransformStepHandler(),
            ]
        )

    async def execute(self, step: WorkflowStep, input: str, variables: Mapping[str, str]) -> StepResult:
        """Run one step. Failures become a failed StepResult."""
        start = time.perf_counter()
        try:
            handler = self._resolve(step.type)
            config = handler.resolve_config(parse_step_config(step.config))
            output = await handler.execute(config, input, variables)
        except Exception as e:
            message = str(e) or type(e).__name__ or "Unknown error"
            logger.debug("Step %s (%s) failed: %s", step.id, step.type, message)
            return StepResult(
                step_id=step.id,
                step_name=step.name,
                status=StepStatus.FAILED,
                error=message,
                duration=_elapsed_ms(start),
            )
        return StepResult(
            step_id=step.id,
            step_name=step.name,
            status=StepStatus.SUCCESS,
            output=output,
            duration=_elapsed_ms(start),
        )

    def _resolve(self, step_type: str) -> StepHandler:
        try:
            return self._handlers[StepType(step_type)]
        except (ValueError, KeyError):
            raise ValueError(f"Unknown step type: {step_type}") from None


class WorkflowExecutor:
    """Sequential, fail-fast workflow runner."""

    def __init__(self, step_executor: StepExecutor) -> None:
        self._step_executor = step_executor

    async def execute(
        self,
        steps: Sequence[WorkflowStep],
        initial_input: str = "",
        on_event: EventCallback | None = None,
    ) -> WorkflowExecutionResult:
        """Run all steps in order.

        Args:
            steps: Step definitions, executed in array order
            initial_input: Input of the first step
            on_event: Optional progress callback (sync or async)

        Returns:
            Completed result with the last output, or failed result with the
            partial trace up to and including the failing step

        """
        start = time.perf_counter()
        current_input = initial_input
        variables: dict[str, str] = {}
        results: list[StepResult] = []

        for index, step in enumerate(steps):
            await self._emit(on_event, WorkflowEventType.STEP_STARTED, {
                "index": index,
                "step_id": step.id,
                "step_name": step.name,
                "type": step.type,
            })
            result = await self._step_executor.execute(step, current_input, variables)
            results.append(result)

            if result.status == StepStatus.FAILED:
                await self._emit(on_event, WorkflowEventType.STEP_FAILED, result.model_dump(mode="json"))
                logger.info("Workflow failed at step %s after %d step(s)", step.id, len(results))
                return WorkflowExecutionResult(
                    status=ExecutionStatus.FAILED,
                    output="",
                    error=f'Step "{step.name}" failed: {result.error}',
                    step_results=results,
                    total_duration=_elapsed_ms(start),
                )

            await self._emit(on_event, WorkflowEventType.STEP_COMPLETED, result.model_dump(mode="json"))
            current_input = result.output
            variables[step_output_variable(step.id)] = result.output

        total = _elapsed_ms(start)
        logger.debug("Workflow completed: %d step(s) in %d ms", len(results), total)
        return WorkflowExecutionResult(
            status=ExecutionStatus.COMPLETED,
            output=current_input,
            step_results=results,
            total_duration=total,
        )

    @staticmethod
    async def _emit(on_event: EventCallback | None, event_type: WorkflowEventType, payload: dict[str, Any]) -> None:
        if on_event is None:
            return
        maybe = on_event(event_type, payload)
        if maybe is not None:
            await maybe
