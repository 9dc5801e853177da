from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from synaptic.domain.errors import ConfigurationError

SUPPORTED_PROVIDERS = ("google_genai", "openai", "mock")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    llm_provider: str = Field(default="google_genai", validation_alias="LLM_PROVIDER")
    google_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_API_KEY", "GEMINI_API_KEY", "LLM_API_KEY"),
    )
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "LLM_API_KEY"),
    )
    llm_model: str | None = Field(default=None, validation_alias="LLM_MODEL")
    gemini_model: str = Field(default="gemini-2.5-flash-lite", validation_alias="GEMINI_MODEL")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_base_url: str | None = Field(default=None, validation_alias="OPENAI_BASE_URL")
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias="LLM_REQUEST_TIMEOUT_SECONDS",
    )
    max_output_tokens: int = Field(default=4096, gt=0, validation_alias="MAX_OUTPUT_TOKENS")
    llm_max_retries: int = Field(default=3, ge=0, validation_alias="LLM_MAX_RETRIES")
    llm_retry_base_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        validation_alias="LLM_RETRY_BASE_DELAY_SECONDS",
    )
    llm_retry_max_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        validation_alias="LLM_RETRY_MAX_DELAY_SECONDS",
    )
    llm_rate_limit_rps: float | None = Field(default=None, gt=0, validation_alias="LLM_RATE_LIMIT_RPS")
    llm_rate_limit_burst: int = Field(default=1, ge=1, validation_alias="LLM_RATE_LIMIT_BURST")
    hook_workers: int = Field(default=4, ge=1, validation_alias="HOOK_WORKERS")
    log_level: str = Field(default="WARNING", validation_alias="LOG_LEVEL")

    @field_validator("llm_provider")
    @classmethod
    def normalize_llm_provider(cls, value: str) -> str:
        return value.strip().lower().replace("-", "_")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    def require_api_key(self) -> str:
        if self.llm_provider == "openai":
            if not self.openai_api_key:
                raise ConfigurationError(
                    "OpenAI API key is not set. Add `OPENAI_API_KEY` or `LLM_API_KEY` "
                    "to the environment or .env file.",
                    config_key="OPENAI_API_KEY",
                )
            return self.openai_api_key
        if not self.google_api_key:
            raise ConfigurationError(
                "Google API key is not set. Add `GOOGLE_API_KEY`, `GEMINI_API_KEY`, or `LLM_API_KEY` "
                "to the environment or .env file.",
                config_key="GOOGLE_API_KEY",
            )
        return self.google_api_key

    def resolve_model(self, override: str | None = None) -> str:
        if override:
            return override
        if self.llm_model:
            return self.llm_model
        if self.llm_provider == "openai":
            return self.openai_model
        return self.gemini_model
