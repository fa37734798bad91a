"""Dependency Injection Container - centralized service management."""

from functools import cached_property
from typing import TYPE_CHECKING

from src.domain.ports.config import AppConfig
from src.domain.ports.image import ImageGenerationPort
from src.domain.ports.llm import LLMPort
from src.domain.ports.repository import WorkflowRepository
from src.infrastructure.config import load_config

if TYPE_CHECKING:
    from src.application.image.use_case import ImageGenerationUseCase
    from src.application.optimization.use_case import OptimizePromptUseCase
    from src.application.workflow.executor import WorkflowExecutor
    from src.application.workflow.use_case import WorkflowUseCase
    from src.infrastructure.ratelimit import RateLimitGate, RateLimitSweeper


class Container:
    """Dependency Injection Container with lazy initialization.

    All dependencies are created on first access and cached.
    Tests either pass a config override or replace attributes directly
    (``container.llm = stub``) before first use.

    Usage:
        container = Container()
        use_case = container.workflow_use_case
    """

    def __init__(self, config: AppConfig | None = None):
        """Initialize container with optional config override."""
        self._config_override = config

    @cached_property
    def config(self) -> AppConfig:
        """Application configuration."""
        if self._config_override:
            return self._config_override
        return load_config()

    @cached_property
    def llm(self) -> LLMPort:
        """OpenAI-compatible LLM adapter."""
        from src.infrastructure.llm.openai_compatible import OpenAICompatibleAdapter

        return OpenAICompatibleAdapter(self.config.llm)

    @cached_property
    def images(self) -> ImageGenerationPort:
        """OpenAI-compatible image adapter (shares the llm credentials unless overridden)."""
        from src.infrastructure.llm.openai_images import OpenAIImageAdapter

        return OpenAIImageAdapter(self.config.image, self.config.llm)

    @cached_property
    def repository(self) -> WorkflowRepository:
        """File-based workflow/execution/usage store."""
        from src.infrastructure.persistence.workflow_store import JsonWorkflowStore

        return JsonWorkflowStore(output_dir=self.config.persistence.output_dir)

    @cached_property
    def rate_limit_gate(self) -> "RateLimitGate":
        """Per-user rate gate (process-wide counters)."""
        from src.infrastructure.ratelimit import RateLimitGate

        gate = RateLimitGate(enabled=self.config.rate_limit.enabled)
        if self.config.rate_limit.preset:
            gate.apply_preset(self.config.rate_limit.preset)
        return gate

    @cached_property
    def rate_limit_sweeper(self) -> "RateLimitSweeper":
        """Background task dropping expired gate records."""
        from src.infrastructure.ratelimit import RateLimitSweeper

        return RateLimitSweeper(
            self.rate_limit_gate.store,
            interval_seconds=self.config.rate_limit.sweep_interval_seconds,
        )

    @cached_property
    def workflow_executor(self) -> "WorkflowExecutor":
        """Workflow executor wired with the built-in step handlers."""
        from src.application.workflow.executor import StepExecutor, WorkflowExecutor

        step_executor = StepExecutor.create(self.llm, api_call_timeout=self.config.workflow.api_call_timeout)
        return WorkflowExecutor(step_executor)

    @cached_property
    def workflow_use_case(self) -> "WorkflowUseCase":
        """Workflow CRUD and execution."""
        from src.application.workflow.use_case import WorkflowUseCase

        return WorkflowUseCase(repository=self.repository, executor=self.workflow_executor)

    @cached_property
    def optimize_use_case(self) -> "OptimizePromptUseCase":
        """Prompt optimization."""
        from src.application.optimization.use_case import OptimizePromptUseCase

        return OptimizePromptUseCase(llm=self.llm, repository=self.repository)

    @cached_property
    def image_use_case(self) -> "ImageGenerationUseCase":
        """Image generation with history."""
        from src.application.image.use_case import ImageGenerationUseCase

        return ImageGenerationUseCase(
            images=self.images, repository=self.repository, default_model=self.config.image.model
        )

    def reset(self) -> None:
        """Reset all cached instances (useful for testing)."""
        # Clear cached_property values
        for attr in list(self.__dict__.keys()):
            if not attr.startswith("_"):
                delattr(self, attr)


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """Get or create global container instance."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Reset global container (for testing)."""
    global _container
    if _container:
        _container.reset()
    _container = None
