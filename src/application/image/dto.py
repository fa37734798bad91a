"""Image generation DTOs."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.ports.image import ImageQuality, ImageSize, ImageStyle
from src.domain.ports.repository import ImageGenerationRecord


class ImageParameters(BaseModel):
    size: ImageSize | None = None
    n: int = Field(1, ge=1, le=10)
    quality: ImageQuality | None = None
    style: ImageStyle | None = None


class ImageGenerateRequest(BaseModel):
    """Request to generate ``parameters.n`` images for one prompt."""

    prompt: str = Field(..., min_length=1, max_length=2000)
    model: str | None = None  # Defaults to the configured image model
    parameters: ImageParameters = Field(default_factory=ImageParameters)


class GeneratedImage(BaseModel):
    url: str


class ImageGenerateResponse(BaseModel):
    id: int
    images: list[GeneratedImage]


class ImageGenerationResponse(BaseModel):
    """History entry."""

    id: int
    prompt: str
    model: str
    parameters: dict
    status: str
    image_urls: list[str]
    error_message: str | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: ImageGenerationRecord) -> "ImageGenerationResponse":
        return cls.model_validate(record.model_dump())
