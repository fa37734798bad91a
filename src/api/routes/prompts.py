"""Prompts API - AI prompt optimization."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_optimize_use_case, limiter, rate_limited
from src.application.optimization.dto import OptimizePromptRequest, OptimizePromptResponse
from src.application.optimization.use_case import OptimizePromptUseCase
from src.domain.entities.rate_limit import RateLimitFeature
from src.domain.entities.user import UserContext

router = APIRouter(prefix="/prompts", tags=["prompts"])


@router.post("/optimize")
@limiter.limit("20/minute")
async def optimize_prompt(
    request: Request,
    body: OptimizePromptRequest,
    user: Annotated[UserContext, Depends(rate_limited(RateLimitFeature.OPTIMIZE))],
    use_case: Annotated[OptimizePromptUseCase, Depends(get_optimize_use_case)],
) -> OptimizePromptResponse:
    """Rewrite a prompt with the LLM (monthly plan quota applies)."""
    return await use_case.execute(user, body)
