"""Prompt optimization DTOs."""

from typing import Literal

from pydantic import BaseModel, Field

TargetModel = Literal["gpt", "claude", "general"]
Intensity = Literal["light", "medium", "deep"]


class OptimizePromptRequest(BaseModel):
    """Request to rewrite a prompt."""

    content: str = Field(..., min_length=1, max_length=50_000)
    target_model: TargetModel = "general"
    intensity: Intensity = "medium"


class OptimizePromptResponse(BaseModel):
    """Original and rewritten prompt with detected improvements."""

    original: str
    optimized: str
    improvements: list[str] = Field(default_factory=list)
