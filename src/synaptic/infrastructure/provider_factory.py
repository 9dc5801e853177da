from __future__ import annotations

from synaptic.application.config import SUPPORTED_PROVIDERS, AppSettings
from synaptic.application.pipeline import Option
from synaptic.application.ports import Provider
from synaptic.domain.errors import ConfigurationError
from synaptic.infrastructure.google_genai_provider import GoogleGenAIProvider
from synaptic.infrastructure.mock_provider import MockProvider
from synaptic.infrastructure.openai_provider import OpenAIProvider
from synaptic.infrastructure.reliability import with_backoff, with_rate_limit, with_timeout


def build_provider(settings: AppSettings, *, model: str | None = None) -> Provider:
    if settings.llm_provider in {"google_genai", "google", "gemini_api"}:
        return GoogleGenAIProvider(settings, model=model)
    if settings.llm_provider == "openai":
        return OpenAIProvider(settings, model=model)
    if settings.llm_provider == "mock":
        return MockProvider()
    raise ConfigurationError(
        f"Unsupported LLM_PROVIDER={settings.llm_provider!r}. "
        f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}.",
        config_key="LLM_PROVIDER",
    )


def build_reliability_options(settings: AppSettings) -> list[Option]:
    """Pipeline options for the configured rate limit, retries and timeout.

    Rate limiting sits inside the retry loop so every attempt takes a slot;
    the timeout bounds each attempt.
    """

    options: list[Option] = [with_timeout(settings.request_timeout_seconds)]
    if settings.llm_rate_limit_rps is not None:
        options.append(with_rate_limit(settings.llm_rate_limit_rps, settings.llm_rate_limit_burst))
    if settings.llm_max_retries > 0:
        options.append(
            with_backoff(
                settings.llm_max_retries + 1,
                base_delay=settings.llm_retry_base_delay_seconds,
                max_delay=settings.llm_retry_max_delay_seconds,
            )
        )
    return options
