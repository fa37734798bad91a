"""Image generation use case - proxy to the image provider with a persisted history."""

import logging

from src.application.image.dto import (
    GeneratedImage,
    ImageGenerateRequest,
    ImageGenerateResponse,
    ImageGenerationResponse,
)
from src.domain.entities.user import UserContext
from src.domain.ports.image import ImageGenerationPort
from src.domain.ports.repository import WorkflowRepository
from src.shared.logging import log_context

logger = logging.getLogger(__name__)


class ImageGenerationUseCase:
    """Generates images one at a time and records the outcome per request."""

    def __init__(self, images: ImageGenerationPort, repository: WorkflowRepository, default_model: str) -> None:
        self._images = images
        self._repo = repository
        self._default_model = default_model

    async def generate(self, user: UserContext, request: ImageGenerateRequest) -> ImageGenerateResponse:
        """Generate ``parameters.n`` images. The record ends as success or failed."""
        model = request.model or self._default_model
        params = request.parameters
        record = self._repo.create_image_generation(
            user.id, request.prompt, model, params.model_dump(exclude_none=True)
        )
        try:
            with log_context(user_id=user.id, image_generation_id=record.id):
                urls = [
                    await self._images.generate(
                        request.prompt, model, size=params.size, quality=params.quality, style=params.style
                    )
                    for _ in range(params.n)
                ]
        except Exception as e:
            self._repo.update_image_generation(record.id, status="failed", error_message=str(e) or type(e).__name__)
            logger.warning("Image generation %s failed for user %s: %s", record.id, user.id, e)
            raise

        self._repo.update_image_generation(record.id, status="success", image_urls=urls)
        self._repo.create_audit_log(
            user.id,
            "create",
            "image",
            record.id,
            {"model": model, "prompt": request.prompt[:100], "image_count": len(urls)},
        )
        logger.info("Generated %d image(s) for user %s with %s", len(urls), user.id, model)
        return ImageGenerateResponse(id=record.id, images=[GeneratedImage(url=u) for u in urls])

    def history(self, user: UserContext, limit: int = 20, offset: int = 0) -> list[ImageGenerationResponse]:
        return [
            ImageGenerationResponse.from_record(r)
            for r in self._repo.list_image_generations(user.id, limit=limit, offset=offset)
        ]
