"""Application entry point."""

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.container import get_container
from src.api.dependencies import limiter
from src.api.errors import register_exception_handlers
from src.api.routes.images import router as images_router
from src.api.routes.prompts import router as prompts_router
from src.api.routes.rate_limit import router as rate_limit_router
from src.api.routes.workflows import router as workflows_router
from src.infrastructure.services.http_pool import HTTPPool
from src.shared.logging import REQUEST_ID_HEADER, log_context, setup_logging

log = structlog.get_logger()


def _apply_logging_config(container):
    """Apply logging from container config (stdout + optional file)."""
    c = container.config
    setup_logging(
        level=c.log_level,
        file_path=c.log_file or "",
        rotation_max_mb=c.log_rotation_max_mb,
        rotation_backups=c.log_rotation_backups,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: setup logging, build the rate gate, start its sweeper."""
    container = get_container()
    _apply_logging_config(container)
    log.info(
        "startup_begin",
        llm_base_url=container.config.llm.base_url,
        llm_model=container.config.llm.model,
        rate_limit_enabled=container.config.rate_limit.enabled,
        rate_limit_preset=container.config.rate_limit.preset,
    )
    container.rate_limit_sweeper.start()
    log.info("startup_complete")
    yield
    # Shutdown: close shared resources
    log.info("shutdown_begin")
    await container.rate_limit_sweeper.stop()
    await HTTPPool.reset()
    try:
        await container.llm.close()
    except Exception:  # noqa: BLE001
        log.debug("llm_close_error", exc_info=True)
    try:
        await container.images.close()
    except Exception:  # noqa: BLE001
        log.debug("image_close_error", exc_info=True)
    log.info("shutdown_complete")


# Create app
app = FastAPI(
    title="Prompt Studio API",
    version="0.1.0",
    description="Prompt workflows: templated LLM, HTTP and transform steps with per-user rate limits",
    lifespan=lifespan,
)

# Rate limiting (per IP)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

# CORS
container = get_container()
app.add_middleware(
    CORSMiddleware,
    allow_origins=container.config.security.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    """Tag log lines of a request with its id; the id is echoed back in the response."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    with log_context(request_id=request_id, method=request.method, path=request.url.path):
        response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


# Register routers
app.include_router(images_router)
app.include_router(prompts_router)
app.include_router(rate_limit_router)
app.include_router(workflows_router)


@app.get("/health")
@limiter.limit("100/minute")
async def health(request: Request) -> dict:
    """Health check with LLM availability."""
    container = get_container()
    llm_available = await container.llm.is_available()
    return {
        "status": "ok",
        "service": "prompt-studio",
        "llm_model": container.config.llm.model,
        "llm_available": llm_available,
        "rate_limit_enabled": container.rate_limit_gate.enabled,
    }
