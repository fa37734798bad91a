"""Pytest configuration and shared fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.container import Container
from src.api.dependencies import limiter
from src.domain.ports.config import AppConfig, PersistenceConfig
from src.domain.ports.llm import LLMResponse
from src.main import app


@pytest.fixture(autouse=True)
def _disable_ip_limiter():
    """Per-IP slowapi limits would leak between tests sharing 127.0.0.1."""
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def stub_llm():
    """LLM port stub returning a fixed completion."""
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(content="stub output", model="stub-model"))
    llm.is_available = AsyncMock(return_value=False)
    llm.close = AsyncMock()
    return llm


@pytest.fixture
def container(tmp_path, stub_llm, monkeypatch):
    """Isolated container: temp output dir, stub LLM, fresh rate gate."""
    config = AppConfig(persistence=PersistenceConfig(output_dir=str(tmp_path)))
    c = Container(config=config)
    c.llm = stub_llm
    monkeypatch.setattr("src.api.container._container", c)
    return c


@pytest.fixture
async def client(container):
    """HTTP client bound to the app with the isolated container."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
