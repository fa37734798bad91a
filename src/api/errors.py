"""Map application exceptions to HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.application.workflow.use_case import ShareAccessError, ShareNotFoundError, WorkflowNotFoundError
from src.domain.entities.rate_limit import RateLimitExceededError
from src.domain.ports.llm import LLMConfigError, LLMRequestError
from src.domain.services.subscription import QuotaExceededError

logger = logging.getLogger(__name__)


async def _not_found(request: Request, exc: WorkflowNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _share_not_found(request: Request, exc: ShareNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _share_forbidden(request: Request, exc: ShareAccessError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def _quota_exceeded(request: Request, exc: QuotaExceededError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc), "limit": exc.limit})


async def _rate_limited(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": {"message": str(exc), "reset_time": exc.reset_time}},
    )


async def _llm_not_configured(request: Request, exc: LLMConfigError) -> JSONResponse:
    return JSONResponse(status_code=412, content={"detail": "AI service is not configured. Set LLM_API_KEY."})


async def _llm_failed(request: Request, exc: LLMRequestError) -> JSONResponse:
    logger.warning("LLM request failed on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc), "upstream_status": exc.status})


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for exceptions raised by use cases."""
    app.add_exception_handler(WorkflowNotFoundError, _not_found)
    app.add_exception_handler(ShareNotFoundError, _share_not_found)
    app.add_exception_handler(ShareAccessError, _share_forbidden)
    app.add_exception_handler(QuotaExceededError, _quota_exceeded)
    app.add_exception_handler(RateLimitExceededError, _rate_limited)
    app.add_exception_handler(LLMConfigError, _llm_not_configured)
    app.add_exception_handler(LLMRequestError, _llm_failed)
