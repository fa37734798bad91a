"""Base step handler interface."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Generic, TypeVar

from pydantic import BaseModel

from src.application.workflow.config_parser import (
    ParsedConfig,
    RawText,
    StructuredConfig,
    validate_config,
)
from src.domain.entities.workflow import StepType

ConfigT = TypeVar("ConfigT", bound=BaseModel)


class StepHandler(ABC, Generic[ConfigT]):
    """Base class for workflow step handlers."""

    config_model: type[ConfigT]

    @property
    @abstractmethod
    def step_type(self) -> StepType:
        """Return the step kind this handler runs."""
        ...

    def resolve_config(self, parsed: ParsedConfig) -> ConfigT:
        """Turn parsed config into the typed model for this kind."""
        if isinstance(parsed, StructuredConfig):
            return validate_config(self.config_model, parsed.data, self.step_type.value)
        return self.from_raw_text(parsed)

    @abstractmethod
    def from_raw_text(self, raw: RawText) -> ConfigT:
        """Fallback interpretation when config is not a JSON object."""
        ...

    @abstractmethod
    async def execute(self, config: ConfigT, input: str, variables: Mapping[str, str]) -> str:
        """Run the step.

        Args:
            config: Typed step config
            input: Output of the previous step (or the workflow input)
            variables: Accumulated step_<id>_output variables

        Returns:
            Step output text

        """
        ...
