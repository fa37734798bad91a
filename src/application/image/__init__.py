"""Image generation."""

from src.application.image.dto import ImageGenerateRequest, ImageGenerateResponse
from src.application.image.use_case import ImageGenerationUseCase

__all__ = ["ImageGenerateRequest", "ImageGenerateResponse", "ImageGenerationUseCase"]
