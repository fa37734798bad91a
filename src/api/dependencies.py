"""FastAPI dependencies - caller identity, rate gate and use cases from the DI container."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Header, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.container import get_container
from src.application.image.use_case import ImageGenerationUseCase
from src.application.optimization.use_case import OptimizePromptUseCase
from src.application.workflow.use_case import WorkflowUseCase
from src.domain.entities.rate_limit import RateLimitExceededError, RateLimitFeature
from src.domain.entities.user import UserContext
from src.domain.ports.config import AppConfig
from src.infrastructure.ratelimit import RateLimitGate

limiter = Limiter(key_func=get_remote_address)

_ROLES = ("user", "admin")


def get_config() -> AppConfig:
    """Application config from the container."""
    return get_container().config


def get_workflow_use_case() -> WorkflowUseCase:
    return get_container().workflow_use_case


def get_optimize_use_case() -> OptimizePromptUseCase:
    return get_container().optimize_use_case


def get_image_use_case() -> ImageGenerationUseCase:
    return get_container().image_use_case


def get_rate_limit_gate() -> RateLimitGate:
    return get_container().rate_limit_gate


def get_current_user(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_user_tier: Annotated[str | None, Header()] = None,
) -> UserContext:
    """Caller identity set by the fronting auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user id") from None
    role = x_user_role if x_user_role in _ROLES else "user"
    return UserContext(id=user_id, role=role, tier=(x_user_tier or "free").lower())


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def require_admin(user: CurrentUser) -> UserContext:
    """Only admins pass."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


AdminUser = Annotated[UserContext, Depends(require_admin)]


def rate_limited(feature: RateLimitFeature) -> Callable[..., UserContext]:
    """Dependency that counts the request against ``feature`` for the caller.

    Denials become 429 carrying the window reset time.
    """

    def dependency(
        user: CurrentUser,
        gate: Annotated[RateLimitGate, Depends(get_rate_limit_gate)],
    ) -> UserContext:
        try:
            gate.enforce_feature(feature, user.id, user.rate_limit_tier)
        except RateLimitExceededError as e:
            raise HTTPException(
                status_code=429,
                detail={"message": str(e), "reset_time": e.reset_time},
            ) from e
        return user

    return dependency
