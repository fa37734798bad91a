"""Prompt optimization."""

from src.application.optimization.dto import OptimizePromptRequest, OptimizePromptResponse
from src.application.optimization.use_case import OptimizePromptUseCase

__all__ = ["OptimizePromptRequest", "OptimizePromptResponse", "OptimizePromptUseCase"]
