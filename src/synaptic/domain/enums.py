from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class SynapseKind(StrEnum):
    BINARY = "binary"
    CLASSIFICATION = "classification"
    RANKING = "ranking"
    SENTIMENT = "sentiment"
    EXTRACTION = "extraction"
    TRANSFORM = "transform"
    ANALYZE = "analyze"
    CONVERT = "convert"


class SentimentLabel(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    MIXED = "mixed"


class HookSignal(StrEnum):
    REQUEST_STARTED = "llm.request.started"
    REQUEST_COMPLETED = "llm.request.completed"
    REQUEST_FAILED = "llm.request.failed"
    PROVIDER_CALL_STARTED = "llm.provider.call.started"
    PROVIDER_CALL_COMPLETED = "llm.provider.call.completed"
    PROVIDER_CALL_FAILED = "llm.provider.call.failed"
    RESPONSE_FAILED = "llm.response.failed"


class ResponseErrorType(StrEnum):
    PARSE_ERROR = "parse_error"
    VALIDATION_ERROR = "validation_error"
