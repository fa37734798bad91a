"""Tests for step config parsing."""

import pytest

from src.application.workflow.config_parser import (
    RawText,
    StepConfigError,
    StructuredConfig,
    parse_step_config,
    validate_config,
)
from src.domain.entities.step_config import ApiCallStepConfig, PromptStepConfig, TransformStepConfig


class TestParseStepConfig:
    """Tests for parse_step_config."""

    def test_json_object(self):
        assert parse_step_config('{"prompt": "hi"}') == StructuredConfig({"prompt": "hi"})

    def test_empty_is_empty_object(self):
        assert parse_step_config("") == StructuredConfig({})
        assert parse_step_config(None) == StructuredConfig({})

    def test_plain_text(self):
        assert parse_step_config("Summarize {{input}}") == RawText("Summarize {{input}}")

    def test_json_scalar_is_raw_text(self):
        assert parse_step_config('"quoted"') == RawText('"quoted"')
        assert parse_step_config("[1, 2]") == RawText("[1, 2]")


class TestValidateConfig:
    """Tests for validate_config and the typed models."""

    def test_camel_case_aliases(self):
        prompt = validate_config(PromptStepConfig, {"prompt": "p", "systemPrompt": "s"}, "prompt")
        assert prompt.system_prompt == "s"
        transform = validate_config(TransformStepConfig, {"operation": "json_path", "jsonPath": "a.b"}, "transform")
        assert transform.json_path == "a.b"

    def test_snake_case_accepted(self):
        prompt = validate_config(PromptStepConfig, {"system_prompt": "s"}, "prompt")
        assert prompt.system_prompt == "s"

    def test_api_call_defaults(self):
        config = validate_config(ApiCallStepConfig, {"url": "https://x"}, "api_call")
        assert config.method == "GET"
        assert config.headers is None

    def test_missing_url_raises(self):
        with pytest.raises(StepConfigError, match="Invalid api_call config"):
            validate_config(ApiCallStepConfig, {}, "api_call")

    def test_bad_method_raises(self):
        with pytest.raises(StepConfigError, match="method"):
            validate_config(ApiCallStepConfig, {"url": "https://x", "method": "PATCH"}, "api_call")

    def test_unknown_keys_ignored(self):
        config = validate_config(TransformStepConfig, {"operation": "format", "extra": 1}, "transform")
        assert config.operation == "format"
