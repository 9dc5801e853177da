from __future__ import annotations

import logging
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from synaptic.application.hooks import HookBus, default_hooks
from synaptic.application.pipeline import CancellationToken, Option, Stage, compose, terminal_stage
from synaptic.application.ports import Provider
from synaptic.application.schema import generate_schema
from synaptic.application.service import SynapseService
from synaptic.domain.enums import SynapseKind
from synaptic.domain.models import Prompt, SynapseInput
from synaptic.domain.session import Session
from synaptic.domain.temperature import resolve_temperature

InputT = TypeVar("InputT", bound=SynapseInput)
ResponseT = TypeVar("ResponseT", bound=BaseModel)

logger = logging.getLogger(__name__)


class Synapse(Generic[InputT, ResponseT]):
    """Shared merge/build/execute lifecycle for every synapse kind.

    Subclasses declare their kind, input and response models and baseline
    temperature, and implement ``_build_prompt``. ``_primary`` projects the
    full response onto the value returned by ``fire``.
    """

    kind: ClassVar[SynapseKind]
    input_model: ClassVar[type[SynapseInput]]
    response_model: ClassVar[type[BaseModel]]
    primary_field: ClassVar[str | None] = None
    baseline_temperature: ClassVar[float]

    def __init__(
        self,
        task: str,
        provider: Provider,
        *options: Option,
        defaults: InputT | None = None,
        hooks: HookBus | None = None,
        response_model: type[ResponseT] | None = None,
    ) -> None:
        if not task.strip():
            raise ValueError(f"{type(self).__name__} needs a non-empty task description")
        self._task = task
        self._provider = provider
        self._defaults = defaults
        self._hooks = hooks or default_hooks
        self._response_model: type[ResponseT] = response_model or self.response_model  # type: ignore[assignment]
        self._schema = generate_schema(self._response_model)
        self._pipeline = compose(terminal_stage(provider, self._hooks), options)
        self._service: SynapseService[ResponseT] = SynapseService(
            pipeline=self._pipeline,
            response_model=self._response_model,
            synapse_type=self.kind,
            provider_name=provider.name,
            hooks=self._hooks,
        )
        logger.debug(
            "Built %s synapse on provider %s with %d option(s)",
            self.kind.value,
            provider.name,
            len(options),
        )

    @property
    def task(self) -> str:
        return self._task

    @property
    def schema(self) -> str:
        return self._schema

    @property
    def pipeline(self) -> Stage:
        return self._pipeline

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def defaults(self) -> InputT | None:
        return self._defaults

    def fire(
        self,
        subject: Any,
        *,
        session: Session | None = None,
        cancel: CancellationToken | None = None,
    ) -> Any:
        return self._primary(self.fire_with_details(subject, session=session, cancel=cancel))

    def fire_with_details(
        self,
        subject: Any,
        *,
        session: Session | None = None,
        cancel: CancellationToken | None = None,
    ) -> ResponseT:
        return self.fire_with_input_details(self._input_for(subject), session=session, cancel=cancel)

    def fire_with_input(
        self,
        call_input: InputT,
        *,
        session: Session | None = None,
        cancel: CancellationToken | None = None,
    ) -> Any:
        return self._primary(self.fire_with_input_details(call_input, session=session, cancel=cancel))

    def fire_with_input_details(
        self,
        call_input: InputT,
        *,
        session: Session | None = None,
        cancel: CancellationToken | None = None,
    ) -> ResponseT:
        merged = self.merge_input(call_input)
        prompt = self._build_prompt(merged)
        temperature = self.resolve_temperature(call_input)
        return self._service.execute(
            prompt,
            temperature,
            session=session,
            cancel=cancel,
            check=lambda result: self._check(merged, result),
        )

    def merge_input(self, call_input: InputT) -> InputT:
        if self._defaults is None:
            return call_input
        return self._defaults.overlay(call_input)

    def resolve_temperature(self, call_input: InputT) -> float:
        default_value = self._defaults.temperature if self._defaults is not None else None  # type: ignore[attr-defined]
        return resolve_temperature(
            call_input.temperature,  # type: ignore[attr-defined]
            default_value,
            self.baseline_temperature,
        )

    def build_prompt(self, call_input: InputT) -> Prompt:
        """Return the prompt a call with ``call_input`` would send, without sending it."""

        return self._build_prompt(self.merge_input(call_input))

    def _input_for(self, subject: Any) -> InputT:
        return self.input_model(**{self.input_model.subject_field: subject})  # type: ignore[return-value]

    def _build_prompt(self, merged: InputT) -> Prompt:
        raise NotImplementedError

    def _primary(self, response: ResponseT) -> Any:
        if self.primary_field is None:
            return response
        return getattr(response, self.primary_field)

    def _check(self, merged: InputT, response: ResponseT) -> None:
        return None
