"""Transform step - local text operations, no I/O."""

import json
import re
from collections.abc import Mapping
from typing import Any

from src.application.workflow.config_parser import RawText
from src.application.workflow.handlers.base import StepHandler
from src.domain.entities.step_config import TransformStepConfig
from src.domain.entities.workflow import StepType

_MISSING = object()
_WHITESPACE = re.compile(r"\s+")
# $$, $&, $1..$99, $<name>
_REPLACEMENT_TOKEN = re.compile(r"\$(\$|&|\d{1,2}|<(\w+)>)")


class TransformError(Exception):
    """Transform operation cannot be applied to its input."""


def _expand_replacement(template: str, match: re.Match[str]) -> str:
    def token(m: re.Match[str]) -> str:
        ref = m.group(1)
        if ref == "$":
            return "$"
        if ref == "&":
            return match.group(0)
        if m.group(2) is not None:
            name = m.group(2)
            if name in match.re.groupindex:
                return match.group(name) or ""
            return m.group(0)
        index = int(ref)
        if 0 < index <= match.re.groups:
            return match.group(index) or ""
        return m.group(0)

    return _REPLACEMENT_TOKEN.sub(token, template)


def _extract(text: str, pattern: str) -> str:
    return "\n".join(m.group(0) for m in re.finditer(pattern, text))


def _replace(text: str, pattern: str, replacement: str) -> str:
    return re.sub(pattern, lambda m: _expand_replacement(replacement, m), text)


def _format(text: str) -> str:
    return _WHITESPACE.sub(" ", text.strip())


def _walk(value: Any, path: str) -> Any:
    for segment in path.split("."):
        if isinstance(value, dict):
            value = value.get(segment, _MISSING)
        elif isinstance(value, list) and segment.isdigit() and int(segment) < len(value):
            value = value[int(segment)]
        else:
            return _MISSING
        if value is _MISSING:
            return _MISSING
    return value


def _json_path(text: str, path: str) -> str:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TransformError("Invalid JSON input for json_path operation") from e

    value = _walk(data, path)
    if value is _MISSING:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def apply_transform(config: TransformStepConfig, text: str) -> str:
    """Apply one transform operation. Missing fields and unknown operations pass ``text`` through."""
    op = config.operation
    if op == "extract":
        return text if not config.pattern else _extract(text, config.pattern)
    if op == "replace":
        if not config.pattern or config.replacement is None:
            return text
        return _replace(text, config.pattern, config.replacement)
    if op == "format":
        return _format(text)
    if op == "json_path":
        return text if not config.json_path else _json_path(text, config.json_path)
    return text


class TransformStepHandler(StepHandler[TransformStepConfig]):
    """Run :func:`apply_transform` on the step input."""

    config_model = TransformStepConfig

    @property
    def step_type(self) -> StepType:
        return StepType.TRANSFORM

    def from_raw_text(self, raw: RawText) -> TransformStepConfig:
        return TransformStepConfig()

    async def execute(self, config: TransformStepConfig, input: str, variables: Mapping[str, str]) -> str:
        return apply_transform(config, input)
