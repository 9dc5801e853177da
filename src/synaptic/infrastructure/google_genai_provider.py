from __future__ import annotations

import logging
import re
from typing import Any

from google import genai
from google.genai import types
from google.genai.errors import ClientError, ServerError

from synaptic.application.config import AppSettings
from synaptic.domain.enums import Role
from synaptic.domain.errors import ProviderError, RateLimitError
from synaptic.domain.models import Message, ProviderResponse, TokenUsage

logger = logging.getLogger(__name__)

PROVIDER_NAME = "google_genai"

_QUOTA_MARKERS = (
    "per day",
    "daily",
    "quota",
    "billing",
    "limit 'generatecontentrequestsperday",
    "limit 'generatetokensperday",
    "free_tier",
)


class GoogleGenAIProvider:
    """Provider for Gemini and Gemma models hosted on Google GenAI.

    System messages become the system instruction and ``assistant`` turns are
    sent with the ``model`` role the API expects.
    """

    def __init__(
        self,
        settings: AppSettings,
        *,
        model: str | None = None,
        client: genai.Client | None = None,
    ) -> None:
        self._settings = settings
        self._model = settings.resolve_model(model)
        self._client = client or genai.Client(
            api_key=settings.require_api_key(),
            http_options=types.HttpOptions(timeout=int(settings.request_timeout_seconds * 1000)),
        )

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def model(self) -> str:
        return self._model

    def call(self, messages: list[Message], temperature: float) -> ProviderResponse:
        system_instruction, contents = self._build_contents(messages)
        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=contents,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    response_mime_type="application/json",
                    temperature=temperature,
                    max_output_tokens=self._settings.max_output_tokens,
                ),
            )
        except ClientError as error:
            raise self._translate_client_error(error) from error
        except ServerError as error:
            raise ProviderError(
                f"Google GenAI server error: {error}",
                provider=PROVIDER_NAME,
                status_code=getattr(error, "code", None),
            ) from error

        return ProviderResponse(
            content=response.text or "",
            usage=self._usage(response),
            finish_reason=self._finish_reason(response),
            model=getattr(response, "model_version", None) or self._model,
            response_id=getattr(response, "response_id", None),
        )

    def _build_contents(self, messages: list[Message]) -> tuple[str | None, list[types.Content]]:
        system_parts: list[str] = []
        contents: list[types.Content] = []
        for message in messages:
            if message.role == Role.SYSTEM:
                system_parts.append(message.content)
                continue
            role = "model" if message.role == Role.ASSISTANT else "user"
            contents.append(types.Content(role=role, parts=[types.Part(text=message.content)]))
        system_instruction = "\n\n".join(system_parts) if system_parts else None
        return system_instruction, contents

    def _usage(self, response: Any) -> TokenUsage:
        metadata = getattr(response, "usage_metadata", None)
        if metadata is None:
            return TokenUsage()
        prompt_tokens = getattr(metadata, "prompt_token_count", None) or 0
        completion_tokens = getattr(metadata, "candidates_token_count", None) or 0
        total_tokens = getattr(metadata, "total_token_count", None) or prompt_tokens + completion_tokens
        return TokenUsage(prompt=prompt_tokens, completion=completion_tokens, total=total_tokens)

    def _finish_reason(self, response: Any) -> str | None:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        finish_reason = getattr(candidates[0], "finish_reason", None)
        if finish_reason is None:
            return None
        return str(getattr(finish_reason, "value", finish_reason)).lower()

    def _translate_client_error(self, error: ClientError) -> ProviderError:
        status_code = getattr(error, "code", None)
        message = str(error)
        lowered = message.lower()

        if status_code == 429:
            if self._is_non_transient_quota_error(error):
                logger.warning("Google GenAI quota exhausted for %s", self._model)
                return RateLimitError(
                    "Google GenAI quota appears to be exhausted for the selected model. "
                    "Retrying is unlikely to help until the quota resets.",
                    provider=PROVIDER_NAME,
                    retryable=False,
                )
            return RateLimitError(
                f"Google GenAI rate limit was hit: {message}",
                provider=PROVIDER_NAME,
                retry_after=self._extract_retry_delay_seconds(error),
            )

        if status_code == 403 and "reported as leaked" in lowered:
            return ProviderError(
                "Google API key is blocked because Google flagged it as leaked. "
                "Create a new key in Google AI Studio and update `GOOGLE_API_KEY` or `GEMINI_API_KEY`.",
                provider=PROVIDER_NAME,
                status_code=status_code,
                retryable=False,
            )

        if status_code == 403:
            return ProviderError(
                "Google GenAI request was denied. Check that the API key is valid and has access to the selected model.",
                provider=PROVIDER_NAME,
                status_code=status_code,
                retryable=False,
            )

        return ProviderError(
            f"Google GenAI request failed: {message}",
            provider=PROVIDER_NAME,
            status_code=status_code,
            retryable=status_code == 408,
        )

    def _extract_retry_delay_seconds(self, error: ClientError) -> float | None:
        details = getattr(error, "details", None)
        for retry_delay in self._find_retry_delay_values(details):
            parsed_retry_delay = self._parse_retry_delay_seconds(retry_delay)
            if parsed_retry_delay is not None:
                return parsed_retry_delay
        return None

    def _find_retry_delay_values(self, node: Any) -> list[Any]:
        found: list[Any] = []
        if isinstance(node, dict):
            for key, value in node.items():
                if key in {"retryDelay", "retry_delay"}:
                    found.append(value)
                found.extend(self._find_retry_delay_values(value))
        elif isinstance(node, list):
            for item in node:
                found.extend(self._find_retry_delay_values(item))
        return found

    def _parse_retry_delay_seconds(self, value: Any) -> float | None:
        if isinstance(value, (int, float)):
            return max(0.0, float(value))
        if isinstance(value, str):
            match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)s\s*", value)
            if match:
                return max(0.0, float(match.group(1)))
            try:
                return max(0.0, float(value))
            except ValueError:
                return None
        return None

    def _is_non_transient_quota_error(self, error: ClientError) -> bool:
        lowered_message = str(getattr(error, "message", "") or str(error)).lower()
        return any(marker in lowered_message for marker in _QUOTA_MARKERS)
