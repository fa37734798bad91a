"""OpenAI-compatible adapter - DeepSeek, OpenAI, vLLM and friends via /chat/completions."""

import json
import logging
from typing import Any

import httpx

from src.domain.ports.config import LLMConfig
from src.domain.ports.llm import (
    ContentPart,
    LLMConfigError,
    LLMMessage,
    LLMRequestError,
    LLMResponse,
    TextContent,
)

logger = logging.getLogger(__name__)


def _content_parts(content: str | ContentPart | list[str | ContentPart]) -> list[ContentPart]:
    """Normalize message content to a list of typed parts."""
    items = content if isinstance(content, list) else [content]
    return [TextContent(text=item) if isinstance(item, str) else item for item in items]


def normalize_message(message: LLMMessage) -> dict[str, Any]:
    """Convert a message to the wire format.

    tool/function messages carry a flat string; other roles collapse a single
    text part back to a plain string for compatibility.
    """
    if message.role in ("tool", "function"):
        parts = message.content if isinstance(message.content, list) else [message.content]
        content = "\n".join(
            part if isinstance(part, str) else json.dumps(part.model_dump()) for part in parts
        )
        out: dict[str, Any] = {"role": message.role, "content": content}
        if message.name:
            out["name"] = message.name
        if message.tool_call_id:
            out["tool_call_id"] = message.tool_call_id
        return out

    parts = _content_parts(message.content)
    out = {"role": message.role}
    if message.name:
        out["name"] = message.name
    if len(parts) == 1 and isinstance(parts[0], TextContent):
        out["content"] = parts[0].text
    else:
        out["content"] = [part.model_dump() for part in parts]
    return out


def normalize_tool_choice(
    tool_choice: str | dict[str, Any] | None,
    tools: list[dict[str, Any]] | None,
) -> str | dict[str, Any] | None:
    """Resolve tool_choice shorthands to the explicit wire form."""
    if not tool_choice:
        return None
    if tool_choice in ("none", "auto"):
        return tool_choice
    if tool_choice == "required":
        if not tools:
            raise ValueError("tool_choice 'required' was provided but no tools were configured")
        if len(tools) > 1:
            raise ValueError("tool_choice 'required' needs a single tool or specify the tool name explicitly")
        return {"type": "function", "function": {"name": tools[0]["function"]["name"]}}
    if isinstance(tool_choice, dict) and "name" in tool_choice:
        return {"type": "function", "function": {"name": tool_choice["name"]}}
    return tool_choice


def normalize_response_format(
    response_format: dict[str, Any] | None,
    output_schema: dict[str, Any] | None,
) -> dict[str, Any] | None:
    """Explicit response_format wins; otherwise an output schema becomes a json_schema format."""
    if response_format:
        if response_format.get("type") == "json_schema" and not (response_format.get("json_schema") or {}).get(
            "schema"
        ):
            raise ValueError("response_format json_schema requires a defined schema object")
        return response_format
    if not output_schema:
        return None
    if not output_schema.get("name") or not output_schema.get("schema"):
        raise ValueError("output_schema requires both name and schema")
    json_schema: dict[str, Any] = {"name": output_schema["name"], "schema": output_schema["schema"]}
    if isinstance(output_schema.get("strict"), bool):
        json_schema["strict"] = output_schema["strict"]
    return {"type": "json_schema", "json_schema": json_schema}


class OpenAICompatibleAdapter:
    """Implements LLMPort via POST {base_url}/chat/completions."""

    def __init__(self, config: LLMConfig) -> None:
        """Initialize with LLM config."""
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if config.api_key:
            self._headers["Authorization"] = f"Bearer {config.api_key}"
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """True when an API key is set."""
        return bool(self._config.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create persistent async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                headers=self._headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client (call during app shutdown)."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _chat_body(
        self,
        messages: list[LLMMessage],
        temperature: float | None,
        tools: list[dict[str, Any]] | None,
        tool_choice: str | dict[str, Any] | None,
        response_format: dict[str, Any] | None,
        output_schema: dict[str, Any] | None,
        max_tokens: int | None,
    ) -> dict[str, Any]:
        """Build request body."""
        body: dict[str, Any] = {
            "model": self._config.model,
            "messages": [normalize_message(m) for m in messages],
        }
        if isinstance(temperature, (int, float)):
            body["temperature"] = temperature
        if tools:
            body["tools"] = tools
        if choice := normalize_tool_choice(tool_choice, tools):
            body["tool_choice"] = choice
        tokens = max_tokens if max_tokens is not None else self._config.max_tokens
        if tokens is not None:
            body["max_tokens"] = tokens
        if fmt := normalize_response_format(response_format, output_schema):
            body["response_format"] = fmt
        return body

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
        """Generate a single completion (non-streaming)."""
        if not self.is_configured:
            raise LLMConfigError("LLM API key is not configured, cannot call LLM")

        body = self._chat_body(messages, temperature, tools, tool_choice, response_format, output_schema, max_tokens)
        client = self._get_client()
        try:
            resp = await client.post(f"{self._base_url}/chat/completions", json=body)
        except httpx.HTTPError as e:
            raise LLMRequestError(f"LLM network request failed: {str(e) or type(e).__name__}") from e

        if not resp.is_success:
            err_text = resp.text
            logger.error("LLM API error %s: %s", resp.status_code, err_text[:500])
            raise LLMRequestError(
                f"LLM invoke failed: {resp.status_code} {resp.reason_phrase} – {err_text}",
                status=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("LLM returned non-JSON body: %s", resp.text[:500])
            raise LLMRequestError(
                f"LLM returned invalid JSON ({resp.status_code}): {resp.text[:200]}",
                status=resp.status_code,
            ) from e
        if not isinstance(data, dict):
            raise LLMRequestError("LLM returned an unexpected response shape", status=resp.status_code)
        choice = (data.get("choices") or [{}])[0]
        message = choice.get("message") or {}
        return LLMResponse(
            content=message.get("content"),
            model=data.get("model", self._config.model),
            finish_reason=choice.get("finish_reason"),
            tool_calls=message.get("tool_calls") or [],
            usage=data.get("usage"),
        )

    async def is_available(self) -> bool:
        """Check that the endpoint answers /models with our credentials."""
        if not self.is_configured:
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._base_url}/models", headers=self._headers)
                return resp.status_code == 200
        except (httpx.ConnectTimeout, httpx.ConnectError, httpx.ReadTimeout, OSError) as e:
            logger.debug("LLM availability check failed (connection): %s", e)
            return False
        except httpx.HTTPError as e:
            logger.debug("LLM availability check failed (HTTP): %s", e)
            return False
