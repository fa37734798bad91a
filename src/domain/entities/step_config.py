"""Typed configuration payloads for each step kind.

Field aliases keep the camelCase keys used by stored workflow definitions.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]


class _StepConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PromptStepConfig(_StepConfig):
    """Config for ``prompt`` steps."""

    prompt: str = ""
    system_prompt: str | None = Field(None, alias="systemPrompt")
    model: str | None = None  # Reserved for multi-model routing; not sent to the LLM
    temperature: float | None = None


class ApiCallStepConfig(_StepConfig):
    """Config for ``api_call`` steps."""

    url: str
    method: HttpMethod = "GET"
    headers: dict[str, str] | None = None
    body: str | None = None  # Sent only for POST and PUT


class TransformStepConfig(_StepConfig):
    """Config for ``transform`` steps.

    ``operation`` is free text: unknown operations pass the input through.
    """

    operation: str | None = None  # "extract" | "replace" | "format" | "json_path"
    pattern: str | None = None
    replacement: str | None = None
    json_path: str | None = Field(None, alias="jsonPath")
