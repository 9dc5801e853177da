from __future__ import annotations

from typing import Any, ClassVar, Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from synaptic.domain.enums import Role, SentimentLabel, SynapseKind
from synaptic.domain.errors import PromptValidationError

DataT = TypeVar("DataT")


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class Message(StrictModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)


class TokenUsage(StrictModel):
    prompt: int = Field(default=0, ge=0)
    completion: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)


class ProviderResponse(StrictModel):
    content: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    finish_reason: str | None = None
    model: str | None = None
    response_id: str | None = None


class Prompt(StrictModel):
    task: str = ""
    input: str = ""
    context: str = ""
    categories: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)
    aspects: list[str] = Field(default_factory=list)
    examples: dict[str, list[str]] = Field(default_factory=dict)
    response_schema: str = ""
    constraints: list[str] = Field(default_factory=list)

    def ensure_complete(self) -> None:
        missing = [
            name
            for name, value in (("task", self.task), ("schema", self.response_schema))
            if not value.strip()
        ]
        if missing:
            raise PromptValidationError(f"prompt missing required field(s): {', '.join(missing)}")

    def render(self) -> str:
        sections: list[str] = []
        if self.task:
            sections.append(f"Task: {self.task}")
        if self.input:
            sections.append(f"Input: {self.input}")
        if self.context:
            sections.append(f"Context: {self.context}")

        for title, values in (
            ("Categories", self.categories),
            ("Items", self.items),
            ("Aspects", self.aspects),
        ):
            if values:
                numbered = "\n".join(f"  {index}. {value}" for index, value in enumerate(values, start=1))
                sections.append(f"{title}:\n{numbered}")

        example_lines: list[str] = []
        for label, examples in self.examples.items():
            if not examples:
                continue
            example_lines.append(f"  {label}:")
            example_lines.extend(f"    - {example}" for example in examples)
        if example_lines:
            sections.append("Examples:\n" + "\n".join(example_lines))

        if self.response_schema:
            sections.append(f"Return JSON:\n{self.response_schema}")
        if self.constraints:
            sections.append("Constraints:\n" + "\n".join(f"- {constraint}" for constraint in self.constraints))
        return "\n\n".join(sections)


class SynapseRequest(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    request_id: str
    synapse_type: SynapseKind
    provider_name: str
    prompt: Prompt
    temperature: float
    history: list[Message] = Field(default_factory=list)
    response: str = ""
    usage: TokenUsage | None = None
    finish_reason: str | None = None
    error: Exception | None = None

    def provider_messages(self) -> list[Message]:
        return [*self.history, Message.user(self.prompt.render())]


# --- Rich inputs -------------------------------------------------------------


def _is_unset(name: str, value: Any) -> bool:
    if value is None:
        return True
    if name == "temperature":
        return False
    return isinstance(value, (str, int, float)) and not isinstance(value, bool) and not value


class SynapseInput(StrictModel):
    subject_field: ClassVar[str] = "subject"

    def overlay(self, override: Self) -> Self:
        """Apply a per-call input on top of these defaults.

        Lists are appended, dict entries are merged (list values appended per
        key), and scalars only replace the default when they are set. The
        subject field is replaced outright.
        """

        merged = self.model_copy(deep=True)
        for name in type(self).model_fields:
            value = getattr(override, name)
            current = getattr(merged, name)
            if name == self.subject_field:
                if not _is_unset(name, value) and value != []:
                    setattr(merged, name, value)
                continue
            if isinstance(value, list):
                setattr(merged, name, [*(current or []), *value])
            elif isinstance(value, dict):
                combined = dict(current or {})
                for key, item in value.items():
                    existing = combined.get(key)
                    if isinstance(existing, list) and isinstance(item, list):
                        combined[key] = [*existing, *item]
                    else:
                        combined[key] = item
                setattr(merged, name, combined)
            elif not _is_unset(name, value):
                setattr(merged, name, value)
        return merged


class BinaryInput(SynapseInput):
    subject: str = ""
    context: str = ""
    criteria: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    temperature: float | None = None


class ClassificationInput(SynapseInput):
    subject: str = ""
    context: str = ""
    examples: dict[str, list[str]] = Field(default_factory=dict)
    constraints: list[str] = Field(default_factory=list)
    temperature: float | None = None


class RankingInput(SynapseInput):
    subject_field: ClassVar[str] = "items"

    items: list[str] = Field(default_factory=list)
    context: str = ""
    examples: list[str] = Field(default_factory=list)
    top_n: int | None = Field(default=None, ge=0)
    temperature: float | None = None


class SentimentInput(SynapseInput):
    subject_field: ClassVar[str] = "text"

    text: str = ""
    context: str = ""
    aspects: list[str] = Field(default_factory=list)
    temperature: float | None = None


class ExtractionInput(SynapseInput):
    subject_field: ClassVar[str] = "text"

    text: str = ""
    context: str = ""
    examples: list[str] = Field(default_factory=list)
    temperature: float | None = None


class TransformInput(SynapseInput):
    subject_field: ClassVar[str] = "text"

    text: str = ""
    context: str = ""
    style: str = ""
    examples: dict[str, str] = Field(default_factory=dict)
    max_length: int | None = Field(default=None, ge=0)
    temperature: float | None = None


class AnalyzeInput(SynapseInput, Generic[DataT]):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)
    subject_field: ClassVar[str] = "data"

    data: DataT | None = None
    context: str = ""
    focus: str = ""
    temperature: float | None = None


class ConvertInput(SynapseInput, Generic[DataT]):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)
    subject_field: ClassVar[str] = "data"

    data: DataT | None = None
    context: str = ""
    rules: str = ""
    temperature: float | None = None


# --- Responses ---------------------------------------------------------------


class BinaryResponse(StrictModel):
    decision: bool = Field(description="true or false")
    confidence: float = Field(ge=0, le=1)
    reasoning: list[str] = Field(min_length=1)


class ClassificationResponse(StrictModel):
    primary: str = Field(min_length=1)
    secondary: str = ""
    confidence: float = Field(ge=0, le=1)
    reasoning: list[str] = Field(min_length=1)


class RankingResponse(StrictModel):
    ranked: list[str] = Field(min_length=1)
    confidence: float = Field(ge=0, le=1)
    reasoning: list[str]


class SentimentScores(StrictModel):
    positive: float = Field(ge=0, le=1)
    negative: float = Field(ge=0, le=1)
    neutral: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def check_distribution(self) -> "SentimentScores":
        total = self.positive + self.negative + self.neutral
        if total < 0.95 or total > 1.05:
            raise ValueError(f"sentiment scores must sum to ~1.0, got {total:.3f}")
        return self


_SENTIMENT_ALIASES = {
    "pos": SentimentLabel.POSITIVE,
    "neg": SentimentLabel.NEGATIVE,
    "neu": SentimentLabel.NEUTRAL,
    "mix": SentimentLabel.MIXED,
}


class SentimentResponse(StrictModel):
    overall: str = Field(min_length=1, description="positive, negative, neutral, or mixed")
    confidence: float = Field(ge=0, le=1)
    scores: SentimentScores
    aspects: dict[str, str] = Field(default_factory=dict)
    emotions: list[str] = Field(default_factory=list)
    reasoning: list[str] = Field(min_length=1)

    @field_validator("overall", mode="before")
    @classmethod
    def normalize_overall(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        lowered = value.strip().lower()
        return str(_SENTIMENT_ALIASES.get(lowered, lowered))


class TransformResponse(StrictModel):
    output: str = Field(min_length=1)
    confidence: float = Field(ge=0, le=1)
    changes: list[str]
    reasoning: list[str]


class AnalyzeResponse(StrictModel):
    analysis: str = Field(min_length=1)
    confidence: float = Field(ge=0, le=1)
    findings: list[str]
    reasoning: list[str]
