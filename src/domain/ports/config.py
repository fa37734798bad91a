"""Config Port - interface for configuration access."""

from typing import Protocol

from pydantic import BaseModel


class LLMConfig(BaseModel):
    """OpenAI-compatible chat completions endpoint used for prompt steps and optimization."""

    base_url: str = "https://api.deepseek.com/v1"
    api_key: str = ""
    model: str = "deepseek-chat"
    timeout: int = 120
    max_tokens: int | None = 8192  # Upper bound accepted by deepseek-chat


class ImageConfig(BaseModel):
    """Image generation endpoint. Empty base_url/api_key fall back to the llm section."""

    base_url: str = ""
    api_key: str = ""
    model: str = "dall-e-3"
    timeout: int = 120


class WorkflowConfig(BaseModel):
    """Workflow engine settings."""

    api_call_timeout: float = 30.0  # Per-request timeout for api_call steps (seconds)


class RateLimitSettings(BaseModel):
    """Per-user rate/quota gate settings. Limits themselves are managed at runtime."""

    enabled: bool = False  # Global switch; off by default, toggled by admins
    sweep_interval_seconds: int = 3600
    preset: str | None = None  # "strict" | "relaxed" | "unlimited", applied at startup


class SecurityConfig(BaseModel):
    """Security settings."""

    rate_limit_requests_per_minute: int = 100
    cors_origins: list[str] = ["http://localhost:5173"]


class PersistenceConfig(BaseModel):
    """Persistence settings."""

    output_dir: str = "output"


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Full application configuration."""

    server: ServerConfig = ServerConfig()
    llm: LLMConfig = LLMConfig()
    image: ImageConfig = ImageConfig()
    workflow: WorkflowConfig = WorkflowConfig()
    rate_limit: RateLimitSettings = RateLimitSettings()
    security: SecurityConfig = SecurityConfig()
    persistence: PersistenceConfig = PersistenceConfig()
    log_level: str = "INFO"
    # Log file: path relative to cwd or absolute. Empty = only stdout. Rotation when file exceeds max_mb.
    log_file: str = ""
    log_rotation_max_mb: int = 5
    log_rotation_backups: int = 3


class ConfigPort(Protocol):
    """Interface for configuration providers."""

    def get_config(self) -> AppConfig:
        """Get the full application configuration."""
        ...
