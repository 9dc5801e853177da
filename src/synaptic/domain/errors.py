"""Exception hierarchy shared by synapses, the pipeline and providers."""

from __future__ import annotations


class SynapseError(Exception):
    """Base exception for everything raised by a synapse call."""

    def __init__(self, message: str, *, retryable: bool = False, request_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.request_id = request_id


class ConfigurationError(SynapseError):
    def __init__(self, message: str, *, config_key: str | None = None) -> None:
        super().__init__(message, retryable=False)
        self.config_key = config_key


class SchemaGenerationError(SynapseError):
    """The result type could not be reflected into a schema."""


class PromptValidationError(SynapseError):
    """A prompt was built without its required Task or Schema."""


class ProviderError(SynapseError):
    """Failure reported by, or while talking to, a provider backend."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        status_code: int | None = None,
        retryable: bool = True,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, retryable=retryable, request_id=request_id)
        self.provider = provider
        self.status_code = status_code


class RateLimitError(ProviderError):
    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        retry_after: float | None = None,
        retryable: bool = True,
        request_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            provider=provider,
            status_code=429,
            retryable=retryable,
            request_id=request_id,
        )
        self.retry_after = retry_after


class ResponseError(SynapseError):
    """The provider answered, but the answer is unusable for the result type."""

    def __init__(self, message: str, *, response: str = "", request_id: str | None = None) -> None:
        super().__init__(message, retryable=False, request_id=request_id)
        self.response = response


class DecodeError(ResponseError):
    pass


class ResponseValidationError(ResponseError):
    pass


class CallCancelledError(SynapseError):
    def __init__(self, message: str = "call was cancelled", *, request_id: str | None = None) -> None:
        super().__init__(message, retryable=False, request_id=request_id)


class PipelineTimeoutError(SynapseError):
    def __init__(self, timeout_seconds: float, *, request_id: str | None = None) -> None:
        super().__init__(
            f"pipeline did not finish within {timeout_seconds:g}s",
            retryable=True,
            request_id=request_id,
        )
        self.timeout_seconds = timeout_seconds


class CircuitOpenError(SynapseError):
    def __init__(self, name: str, *, request_id: str | None = None) -> None:
        super().__init__(
            f"circuit breaker {name!r} is open; request rejected",
            retryable=False,
            request_id=request_id,
        )
        self.name = name


class SessionIndexError(SynapseError, IndexError):
    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"index {index} out of bounds (len={length})")
        self.index = index
        self.length = length
