"""TOML configuration loader with env overrides."""

import logging
import os
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

from src.domain.ports.config import (
    AppConfig,
    ImageConfig,
    LLMConfig,
    PersistenceConfig,
    RateLimitSettings,
    SecurityConfig,
    ServerConfig,
    WorkflowConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _load_toml(path: Path) -> dict:
    """Load TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _merge_sections(base: dict, override: dict) -> dict:
    """Section-level merge: keys of a table in ``override`` replace those in ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _set_number(config: dict, section: str, key: str, env: str, cast: Callable[[str], Any]) -> None:
    raw = os.getenv(env)
    if not raw:
        return
    try:
        config.setdefault(section, {})[key] = cast(raw)
    except ValueError:
        logger.warning("Invalid %s env value: %r, ignoring", env, raw)


def _apply_env_overrides(config: dict) -> dict:
    """Apply environment variable overrides."""
    if base_url := os.getenv("LLM_BASE_URL"):
        config.setdefault("llm", {})["base_url"] = base_url.strip()
    api_key = os.getenv("LLM_API_KEY") or os.getenv("BUILT_IN_FORGE_API_KEY")
    if api_key:
        config.setdefault("llm", {})["api_key"] = api_key.strip()
    if model := os.getenv("LLM_MODEL"):
        config.setdefault("llm", {})["model"] = model.strip()
    if image_model := os.getenv("IMAGE_MODEL"):
        config.setdefault("image", {})["model"] = image_model.strip()
    _set_number(config, "server", "port", "PORT", int)
    if level := os.getenv("LOG_LEVEL"):
        config.setdefault("logging", {})["level"] = level.upper()
    if path := os.getenv("LOG_FILE"):
        config.setdefault("logging", {})["file"] = path.strip()
    if origins := os.getenv("CORS_ORIGINS"):
        config.setdefault("security", {})["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]
    _set_number(config, "security", "rate_limit_requests_per_minute", "RATE_LIMIT_PER_MINUTE", int)
    if enabled := os.getenv("RATE_LIMIT_ENABLED"):
        config.setdefault("rate_limit", {})["enabled"] = enabled.strip().lower() in _TRUE_VALUES
    _set_number(config, "workflow", "api_call_timeout", "API_CALL_TIMEOUT", float)
    if output_dir := os.getenv("OUTPUT_DIR"):
        config.setdefault("persistence", {})["output_dir"] = output_dir.strip()
    return config


def load_config(config_dir: Path | None = None) -> AppConfig:
    """Load configuration from TOML files with env overrides.

    Loads default.toml, then development.toml if exists.
    """
    if config_dir is None:
        config_dir = DEFAULT_CONFIG_DIR

    config: dict = {}

    default_path = config_dir / "default.toml"
    if default_path.exists():
        config = _load_toml(default_path)

    dev_path = config_dir / "development.toml"
    if dev_path.exists():
        config = _merge_sections(config, _load_toml(dev_path))

    config = _apply_env_overrides(config)

    logging_raw = config.get("logging") or {}
    return AppConfig(
        server=ServerConfig(**(config.get("server") or {})),
        llm=LLMConfig(**(config.get("llm") or {})),
        image=ImageConfig(**(config.get("image") or {})),
        workflow=WorkflowConfig(**(config.get("workflow") or {})),
        rate_limit=RateLimitSettings(**(config.get("rate_limit") or {})),
        security=SecurityConfig(**(config.get("security") or {})),
        persistence=PersistenceConfig(**(config.get("persistence") or {})),
        log_level=logging_raw.get("level", "INFO"),
        log_file=(logging_raw.get("file") or "").strip(),
        log_rotation_max_mb=int(logging_raw.get("log_rotation_max_mb", 5)),
        log_rotation_backups=int(logging_raw.get("log_rotation_backups", 3)),
    )
