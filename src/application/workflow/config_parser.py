"""Step config parsing: structured JSON object or raw text."""

import json
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)


class StepConfigError(Exception):
    """Step config cannot be interpreted for its step kind."""


@dataclass(frozen=True)
class StructuredConfig:
    """Config text that decoded to a JSON object."""

    data: dict[str, Any]


@dataclass(frozen=True)
class RawText:
    """Config text that is not a JSON object (plain prompt text, scalar JSON)."""

    text: str


ParsedConfig = StructuredConfig | RawText


def parse_step_config(raw: str | None) -> ParsedConfig:
    """Decode step config text. Never raises."""
    if not raw:
        return StructuredConfig({})
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return RawText(raw)
    if isinstance(data, dict):
        return StructuredConfig(data)
    return RawText(raw)


def validate_config(model: type[T], data: dict[str, Any], step_type: str) -> T:
    """Validate decoded config against the step kind's model."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
        )
        raise StepConfigError(f"Invalid {step_type} config: {problems}") from e
