"""API call step - templated HTTP request, raw response body as output."""

from collections.abc import Mapping

import httpx

from src.application.workflow.config_parser import RawText, StepConfigError
from src.application.workflow.handlers.base import StepHandler
from src.domain.entities.step_config import ApiCallStepConfig
from src.domain.entities.workflow import StepType
from src.domain.services.variables import substitute_variables
from src.infrastructure.services.http_pool import fetch_url

BODY_METHODS = ("POST", "PUT")


class ApiCallError(Exception):
    """Remote endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"API call failed: {status_code} {reason}")
        self.status_code = status_code


class ApiCallStepHandler(StepHandler[ApiCallStepConfig]):
    """Issue the configured request and return the response text.

    Uses the shared HTTP pool unless a client is injected.
    """

    config_model = ApiCallStepConfig

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float | None = None) -> None:
        self._client = client
        self._timeout = timeout

    @property
    def step_type(self) -> StepType:
        return StepType.API_CALL

    def from_raw_text(self, raw: RawText) -> ApiCallStepConfig:
        raise StepConfigError("api_call config must be a JSON object with a url")

    async def execute(self, config: ApiCallStepConfig, input: str, variables: Mapping[str, str]) -> str:
        scope = {**variables, "input": input}
        url = substitute_variables(config.url, scope)
        headers = {key: substitute_variables(value, scope) for key, value in (config.headers or {}).items()}
        body = None
        if config.body and config.method in BODY_METHODS:
            body = substitute_variables(config.body, scope)

        response = await self._send(config.method, url, headers, body)
        if not response.is_success:
            raise ApiCallError(response.status_code, response.reason_phrase)
        return response.text

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: str | None,
    ) -> httpx.Response:
        if self._client is None:
            return await fetch_url(url, method=method, headers=headers, content=body, timeout=self._timeout)
        kwargs: dict = {"headers": headers, "content": body}
        if self._timeout:
            kwargs["timeout"] = self._timeout
        return await self._client.request(method, url, **kwargs)
