"""OpenAI-compatible image adapter - POST {base_url}/images/generations."""

import logging
from typing import Any

import httpx

from src.domain.ports.config import ImageConfig, LLMConfig
from src.domain.ports.image import ImageQuality, ImageSize, ImageStyle
from src.domain.ports.llm import LLMConfigError, LLMRequestError

logger = logging.getLogger(__name__)


class OpenAIImageAdapter:
    """Implements ImageGenerationPort; one image per call, base64 results become data URLs."""

    def __init__(self, config: ImageConfig, llm: LLMConfig) -> None:
        self._config = config
        self._base_url = (config.base_url or llm.base_url).rstrip("/")
        self._api_key = config.api_key or llm.api_key
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._api_key}",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def generate(
        self,
        prompt: str,
        model: str,
        size: ImageSize | None = None,
        quality: ImageQuality | None = None,
        style: ImageStyle | None = None,
    ) -> str:
        """Generate one image and return its URL."""
        if not self.is_configured:
            raise LLMConfigError("Image API key is not configured")

        body: dict[str, Any] = {
            "prompt": prompt,
            "model": model,
            "n": 1,
            "size": size,
            "quality": quality,
            "style": style,
            "response_format": "b64_json",
        }
        body = {k: v for k, v in body.items() if v is not None}

        try:
            resp = await self._get_client().post(f"{self._base_url}/images/generations", json=body)
        except httpx.HTTPError as e:
            raise LLMRequestError(f"Image request failed: {str(e) or type(e).__name__}") from e

        if not resp.is_success:
            logger.error("Image API error %s: %s", resp.status_code, resp.text[:500])
            raise LLMRequestError(
                f"Image generation failed: {resp.status_code} {resp.reason_phrase} – {resp.text}",
                status=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMRequestError(
                f"Image API returned invalid JSON ({resp.status_code})",
                status=resp.status_code,
            ) from e

        items = data.get("data") if isinstance(data, dict) else None
        first = items[0] if isinstance(items, list) and items else {}
        if b64 := first.get("b64_json"):
            return f"data:image/png;base64,{b64}"
        if url := first.get("url"):
            return url
        raise LLMRequestError("No image data received from the image API", status=resp.status_code)
