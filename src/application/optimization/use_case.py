"""Prompt optimization use case - monthly quota plus one LLM rewrite."""

import logging

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.application.optimization.dto import (
    Intensity,
    OptimizePromptRequest,
    OptimizePromptResponse,
    TargetModel,
)
from src.domain.entities.user import UserContext
from src.domain.ports.llm import LLMMessage, LLMPort, LLMRequestError, LLMResponse
from src.domain.ports.repository import WorkflowRepository
from src.domain.services.subscription import QuotaExceededError, check_feature_limit

logger = logging.getLogger(__name__)

OPTIMIZATION_USAGE = "optimization"

INTENSITY_GOALS: dict[str, str] = {
    "light": "Light optimization: fix grammar and formatting",
    "medium": "Medium optimization: add structure and explicit constraints",
    "deep": "Deep optimization: full rewrite with role, task, output format and examples",
}

MODEL_STYLES: dict[str, str] = {
    "gpt": "Tailor for ChatGPT/GPT-4: conversational, friendly tone",
    "claude": "Tailor for Claude: structured, detailed description",
    "general": "General optimization that works across models",
}

# (markers the optimized text gained, improvement label)
_IMPROVEMENT_MARKERS: list[tuple[tuple[str, ...], str]] = [
    (("you are",), "Added a role definition"),
    (("format", "output"), "Specified the output format"),
    (("must", "requirement", "note"), "Added constraints"),
]


def build_system_prompt(intensity: Intensity = "medium", target_model: TargetModel = "general") -> str:
    """System prompt for the optimizer model."""
    return (
        "You are an expert prompt engineer. Rewrite the user's prompt so it is "
        "clearer, more structured and more effective.\n\n"
        "Goals:\n"
        f"- {INTENSITY_GOALS[intensity]}\n"
        f"- {MODEL_STYLES[target_model]}\n\n"
        "Principles:\n"
        "1. Structure: explicit role, task description and output format\n"
        "2. Clarity: remove ambiguity, use precise wording\n"
        "3. Actionability: the prompt must be usable as-is\n\n"
        "Return only the optimized prompt without extra commentary."
    )


def analyze_improvements(original: str, optimized: str) -> list[str]:
    """Heuristic list of what the rewrite added."""
    before = original.lower()
    after = optimized.lower()
    found = []
    for markers, label in _IMPROVEMENT_MARKERS:
        if not any(m in before for m in markers) and any(m in after for m in markers):
            found.append(label)
    return found


def _is_transient(error: BaseException) -> bool:
    # Network failures carry no status; HTTP errors and config errors are final
    return isinstance(error, LLMRequestError) and error.status is None


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(_is_transient),
    reraise=True,
)
async def generate_with_retry(llm: LLMPort, messages: list[LLMMessage]) -> LLMResponse:
    """Generate with retry on network errors."""
    return await llm.generate(messages=messages)


class OptimizePromptUseCase:
    """Rewrites prompts with the LLM, enforcing the plan's monthly optimization quota."""

    def __init__(self, llm: LLMPort, repository: WorkflowRepository) -> None:
        self._llm = llm
        self._repo = repository

    async def execute(self, user: UserContext, request: OptimizePromptRequest) -> OptimizePromptResponse:
        self._check_quota(user)

        messages = [
            LLMMessage(role="system", content=build_system_prompt(request.intensity, request.target_model)),
            LLMMessage(role="user", content=f"Optimize the following prompt:\n\n{request.content}"),
        ]
        response = await generate_with_retry(self._llm, messages)
        optimized = response.content if isinstance(response.content, str) else request.content

        count = self._repo.increment_usage_count(user.id, OPTIMIZATION_USAGE)
        logger.info("Prompt optimized for user %s (%d this month)", user.id, count)
        return OptimizePromptResponse(
            original=request.content,
            optimized=optimized,
            improvements=analyze_improvements(request.content, optimized),
        )

    def _check_quota(self, user: UserContext) -> None:
        if user.is_admin:
            return
        used = self._repo.get_usage_count(user.id, OPTIMIZATION_USAGE)
        check = check_feature_limit(user.tier, "max_optimizations", used)
        if not check.allowed:
            raise QuotaExceededError(
                f"Monthly optimization limit reached ({check.limit}); upgrade your plan for more",
                int(check.limit),
            )
