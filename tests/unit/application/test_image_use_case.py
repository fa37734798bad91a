"""Tests for ImageGenerationUseCase."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.application.image.dto import ImageGenerateRequest
from src.application.image.use_case import ImageGenerationUseCase
from src.domain.entities.user import UserContext
from src.domain.ports.llm import LLMRequestError
from src.infrastructure.persistence.workflow_store import JsonWorkflowStore

USER = UserContext(id=1)


@pytest.fixture
def store(tmp_path):
    return JsonWorkflowStore(output_dir=str(tmp_path))


@pytest.fixture
def images():
    port = MagicMock()
    port.generate = AsyncMock(side_effect=["https://cdn.test/1.png", "https://cdn.test/2.png"])
    return port


@pytest.fixture
def use_case(images, store):
    return ImageGenerationUseCase(images=images, repository=store, default_model="dall-e-3")


@pytest.mark.asyncio
async def test_generates_n_images_and_records_success(use_case, images, store):
    request = ImageGenerateRequest(prompt="fox", parameters={"n": 2, "style": "vivid"})

    result = await use_case.generate(USER, request)

    assert [i.url for i in result.images] == ["https://cdn.test/1.png", "https://cdn.test/2.png"]
    assert images.generate.await_count == 2
    assert images.generate.await_args.args == ("fox", "dall-e-3")
    assert images.generate.await_args.kwargs["style"] == "vivid"
    [record] = store.list_image_generations(USER.id)
    assert record.status == "success"
    assert record.parameters == {"n": 2, "style": "vivid"}
    audit = store.list_audit_logs(USER.id)[0]
    assert (audit.action, audit.resource_type, audit.details["image_count"]) == ("create", "image", 2)


@pytest.mark.asyncio
async def test_failure_marks_record_failed_and_reraises(use_case, images, store):
    images.generate.side_effect = LLMRequestError("Image generation failed: 500", status=500)

    with pytest.raises(LLMRequestError):
        await use_case.generate(USER, ImageGenerateRequest(prompt="fox", model="other"))

    [entry] = use_case.history(USER)
    assert entry.status == "failed"
    assert entry.model == "other"
    assert entry.error_message == "Image generation failed: 500"
    assert store.list_audit_logs(USER.id) == []
