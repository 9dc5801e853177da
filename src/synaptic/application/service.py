from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from synaptic.application.hooks import HookBus
from synaptic.application.pipeline import CancellationToken, Stage
from synaptic.application.schema import to_validation_payload
from synaptic.domain.enums import HookSignal, ResponseErrorType, SynapseKind
from synaptic.domain.errors import DecodeError, ResponseValidationError, SynapseError
from synaptic.domain.models import Message, Prompt, SynapseRequest, TokenUsage
from synaptic.domain.session import Session

T = TypeVar("T", bound=BaseModel)

ResponseCheck = Callable[[T], None]

logger = logging.getLogger(__name__)


def extract_json_payload(text: str) -> Any:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        fenced_match = re.search(r"```(?:json)?\s*(\{.*\})\s*```", cleaned, flags=re.DOTALL)
        if fenced_match:
            cleaned = fenced_match.group(1).strip()

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as error:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end == -1 or end <= start:
            raise DecodeError(f"response is not valid JSON: {error}", response=text) from error
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as inner_error:
            raise DecodeError(f"response is not valid JSON: {inner_error}", response=text) from inner_error


class SynapseService(Generic[T]):
    """Runs one prompt through the pipeline and turns the raw text into ``T``.

    The session is only touched after decode and validation both succeed, so
    every failure path leaves it exactly as it was.
    """

    def __init__(
        self,
        *,
        pipeline: Stage,
        response_model: type[T],
        synapse_type: SynapseKind,
        provider_name: str,
        hooks: HookBus,
    ) -> None:
        self._pipeline = pipeline
        self._response_model = response_model
        self._synapse_type = synapse_type
        self._provider_name = provider_name
        self._hooks = hooks

    @property
    def pipeline(self) -> Stage:
        return self._pipeline

    @property
    def provider_name(self) -> str:
        return self._provider_name

    def execute(
        self,
        prompt: Prompt,
        temperature: float,
        *,
        session: Session | None = None,
        cancel: CancellationToken | None = None,
        check: ResponseCheck[T] | None = None,
    ) -> T:
        prompt.ensure_complete()
        cancel = cancel or CancellationToken()
        request = SynapseRequest(
            request_id=uuid4().hex,
            synapse_type=self._synapse_type,
            provider_name=self._provider_name,
            prompt=prompt,
            temperature=temperature,
            history=session.messages() if session is not None else [],
        )
        self._hooks.emit(
            HookSignal.REQUEST_STARTED,
            **self._event_fields(request),
            input=prompt.input,
            temperature=temperature,
        )

        try:
            processed = self._pipeline(request, cancel)
            if processed.error is not None:
                raise processed.error
        except Exception as error:
            self._hooks.emit(
                HookSignal.REQUEST_FAILED,
                **self._event_fields(request),
                error=str(error),
            )
            if isinstance(error, SynapseError) and error.request_id is None:
                error.request_id = request.request_id
            raise

        result = self._decode(processed)
        if check is not None:
            try:
                check(result)
            except ResponseValidationError as error:
                error.request_id = request.request_id
                error.response = processed.response
                self._emit_response_failed(processed, error, ResponseErrorType.VALIDATION_ERROR)
                raise

        if session is not None:
            session.append(
                Message.user(prompt.render()),
                Message.assistant(processed.response),
            )
            session.record_usage(processed.usage or TokenUsage())

        self._hooks.emit(
            HookSignal.REQUEST_COMPLETED,
            **self._event_fields(processed),
            input=prompt.input,
            output=result.model_dump_json(),
            response=processed.response,
        )
        return result

    def _decode(self, request: SynapseRequest) -> T:
        if not request.response.strip():
            error = DecodeError("no response from provider", request_id=request.request_id)
            self._emit_response_failed(request, error, ResponseErrorType.PARSE_ERROR)
            raise error

        try:
            payload = extract_json_payload(request.response)
            if not isinstance(payload, dict):
                raise DecodeError(
                    f"expected a JSON object, got {type(payload).__name__}",
                    response=request.response,
                )
        except DecodeError as error:
            error.request_id = request.request_id
            self._emit_response_failed(request, error, ResponseErrorType.PARSE_ERROR)
            raise

        try:
            return self._response_model.model_validate(to_validation_payload(self._response_model, payload))
        except ValidationError as validation_error:
            error = ResponseValidationError(
                f"invalid response: {validation_error}",
                response=request.response,
                request_id=request.request_id,
            )
            self._emit_response_failed(request, error, ResponseErrorType.VALIDATION_ERROR)
            raise error from validation_error

    def _emit_response_failed(
        self,
        request: SynapseRequest,
        error: Exception,
        error_type: ResponseErrorType,
    ) -> None:
        logger.debug("Response for %s failed with %s: %s", request.request_id, error_type.value, error)
        self._hooks.emit(
            HookSignal.RESPONSE_FAILED,
            **self._event_fields(request),
            response=request.response,
            error=str(error),
            error_type=error_type.value,
        )

    def _event_fields(self, request: SynapseRequest) -> dict[str, Any]:
        return {
            "request_id": request.request_id,
            "synapse_type": self._synapse_type.value,
            "provider": self._provider_name,
            "task": request.prompt.task,
        }
