"""LLM Port - interface for language model providers."""

from typing import Any, Literal, Protocol

from pydantic import BaseModel

Role = Literal["system", "user", "assistant", "tool", "function"]


class LLMConfigError(Exception):
    """LLM service is not configured (e.g. missing API key)."""


class LLMRequestError(Exception):
    """LLM request failed. ``status`` is the HTTP status, None for network failures."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class TextContent(BaseModel):
    """Plain text content part."""

    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    """Image reference content part."""

    type: Literal["image_url"] = "image_url"
    image_url: dict[str, str]  # {"url": ..., "detail": "auto" | "low" | "high"}


class FileContent(BaseModel):
    """File reference content part (audio, pdf, video)."""

    type: Literal["file_url"] = "file_url"
    file_url: dict[str, str]  # {"url": ..., "mime_type": ...}


ContentPart = TextContent | ImageContent | FileContent


class LLMMessage(BaseModel):
    """Single message in a conversation."""

    role: Role
    content: str | ContentPart | list[str | ContentPart]
    name: str | None = None
    tool_call_id: str | None = None


class LLMResponse(BaseModel):
    """First choice of a chat completion."""

    content: str | list[Any] | None = None  # Non-string content carries structured parts
    model: str = ""
    finish_reason: str | None = None
    tool_calls: list[dict[str, Any]] = []
    usage: dict[str, Any] | None = None

    @property
    def text(self) -> str:
        """Textual content, or empty string when the model returned none."""
        return self.content if isinstance(self.content, str) else ""


class LLMPort(Protocol):
    """Interface for chat completion providers."""

    async def generate(
        self,
        messages: list[LLMMessage],
        temperature: float | None = None,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | dict[str, Any] | None = None,
        response_format: dict[str, Any] | None = None,
        output_schema: dict[str, Any] | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a single completion (non-streaming).

        Raises:
            LLMConfigError: Provider is not configured.
            LLMRequestError: Network failure or non-2xx response.

        """
        ...

    async def is_available(self) -> bool:
        """Check if the LLM provider is reachable and configured."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
