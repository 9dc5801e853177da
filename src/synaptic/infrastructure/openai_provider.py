"""Provider backed by the OpenAI Chat Completions API (or a compatible server)."""

from __future__ import annotations

import logging
from typing import Any

import openai
from openai import OpenAI

from synaptic.application.config import AppSettings
from synaptic.domain.errors import ProviderError, RateLimitError
from synaptic.domain.models import Message, ProviderResponse, TokenUsage

logger = logging.getLogger(__name__)

PROVIDER_NAME = "openai"


class OpenAIProvider:
    def __init__(
        self,
        settings: AppSettings,
        *,
        model: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self._settings = settings
        self._model = settings.resolve_model(model)
        if client is None:
            client = OpenAI(
                api_key=settings.require_api_key(),
                base_url=settings.openai_base_url,
                timeout=settings.request_timeout_seconds,
                max_retries=0,
            )
        self._client = client

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def model(self) -> str:
        return self._model

    def call(self, messages: list[Message], temperature: float) -> ProviderResponse:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": message.role.value, "content": message.content} for message in messages],
                temperature=temperature,
                max_tokens=self._settings.max_output_tokens,
                response_format={"type": "json_object"},
            )
        except openai.RateLimitError as error:
            raise RateLimitError(
                f"OpenAI rate limit was hit: {error}",
                provider=PROVIDER_NAME,
                retry_after=_retry_after_seconds(error),
            ) from error
        except openai.APIStatusError as error:
            raise ProviderError(
                f"OpenAI request failed: {error}",
                provider=PROVIDER_NAME,
                status_code=error.status_code,
                retryable=error.status_code >= 500 or error.status_code == 408,
            ) from error
        except openai.APIConnectionError as error:
            raise ProviderError(
                f"OpenAI request could not reach the server: {error}",
                provider=PROVIDER_NAME,
            ) from error

        if not response.choices:
            raise ProviderError("OpenAI API returned no choices", provider=PROVIDER_NAME)
        choice = response.choices[0]
        return ProviderResponse(
            content=choice.message.content or "",
            usage=_usage(response),
            finish_reason=choice.finish_reason,
            model=getattr(response, "model", None) or self._model,
            response_id=getattr(response, "id", None),
        )


def _usage(response: Any) -> TokenUsage:
    usage = getattr(response, "usage", None)
    if usage is None:
        return TokenUsage()
    return TokenUsage(
        prompt=usage.prompt_tokens or 0,
        completion=usage.completion_tokens or 0,
        total=usage.total_tokens or 0,
    )


def _retry_after_seconds(error: openai.RateLimitError) -> float | None:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is None:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        logger.debug("Ignoring non-numeric retry-after header %r", value)
        return None
