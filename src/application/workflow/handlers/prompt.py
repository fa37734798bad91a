"""Prompt step - renders templates and calls the LLM."""

import logging
from collections.abc import Mapping

from src.application.workflow.config_parser import RawText
from src.application.workflow.handlers.base import StepHandler
from src.domain.entities.step_config import PromptStepConfig
from src.domain.entities.workflow import StepType
from src.domain.ports.llm import LLMMessage, LLMPort
from src.domain.services.variables import find_placeholders, substitute_variables

logger = logging.getLogger(__name__)


def render_template(template: str, scope: Mapping[str, str]) -> str:
    """Substitute variables; placeholders left over are logged, not failed."""
    text = substitute_variables(template, scope)
    if unresolved := find_placeholders(text):
        logger.debug("Prompt step has unresolved placeholders: %s", ", ".join(unresolved))
    return text


class PromptStepHandler(StepHandler[PromptStepConfig]):
    """Render prompt/system prompt with variables and return the completion text."""

    config_model = PromptStepConfig

    def __init__(self, llm: LLMPort) -> None:
        self._llm = llm

    @property
    def step_type(self) -> StepType:
        return StepType.PROMPT

    def from_raw_text(self, raw: RawText) -> PromptStepConfig:
        # Plain text config is the prompt itself
        return PromptStepConfig(prompt=raw.text)

    async def execute(self, config: PromptStepConfig, input: str, variables: Mapping[str, str]) -> str:
        scope = {**variables, "input": input}
        messages: list[LLMMessage] = []
        if config.system_prompt:
            messages.append(LLMMessage(role="system", content=render_template(config.system_prompt, scope)))
        messages.append(LLMMessage(role="user", content=render_template(config.prompt, scope)))

        if config.model:
            logger.debug("Prompt step requested model %s; using configured default", config.model)
        response = await self._llm.generate(messages=messages, temperature=config.temperature)
        return response.text
