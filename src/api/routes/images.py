"""Images API - image generation proxy and history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.api.dependencies import CurrentUser, get_image_use_case, limiter, rate_limited
from src.application.image.dto import ImageGenerateRequest, ImageGenerateResponse, ImageGenerationResponse
from src.application.image.use_case import ImageGenerationUseCase
from src.domain.entities.rate_limit import RateLimitFeature
from src.domain.entities.user import UserContext

router = APIRouter(prefix="/images", tags=["images"])

UseCase = Annotated[ImageGenerationUseCase, Depends(get_image_use_case)]


@router.post("/generate")
@limiter.limit("10/minute")
async def generate_images(
    request: Request,
    body: ImageGenerateRequest,
    user: Annotated[UserContext, Depends(rate_limited(RateLimitFeature.IMAGE_GENERATION))],
    use_case: UseCase,
) -> ImageGenerateResponse:
    """Generate images for a prompt (per-tier hourly limit applies)."""
    return await use_case.generate(user, body)


@router.get("/history")
@limiter.limit("60/minute")
async def image_history(
    request: Request,
    user: CurrentUser,
    use_case: UseCase,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[ImageGenerationResponse]:
    """The caller's generations, newest first."""
    return use_case.history(user, limit=limit, offset=offset)
