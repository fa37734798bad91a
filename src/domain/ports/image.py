"""Image Port - interface for image generation providers."""

from typing import Literal, Protocol

ImageSize = Literal["256x256", "512x512", "1024x1024", "1792x1024", "1024x1792"]
ImageQuality = Literal["standard", "hd"]
ImageStyle = Literal["vivid", "natural"]


class ImageGenerationPort(Protocol):
    """Interface for image generation (OpenAI-compatible /images/generations)."""

    async def generate(
        self,
        prompt: str,
        model: str,
        size: ImageSize | None = None,
        quality: ImageQuality | None = None,
        style: ImageStyle | None = None,
    ) -> str:
        """Generate one image and return a URL (``data:`` URL for inline base64 results).

        Raises LLMConfigError when no API key is configured and LLMRequestError
        when the provider fails or returns no image.
        """
        ...

    async def close(self) -> None:
        """Release HTTP resources."""
        ...
