"""Request/event models — the contract between the relay and its clients."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class GenerationRequest(BaseModel):
    """Incoming request body. One per user submission."""

    model_config = ConfigDict(frozen=True)

    prompt: str

    @field_validator("prompt")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt is required")
        return v


class ModelPart(BaseModel):
    """One increment of the upstream model stream."""

    text: str = ""
    is_reasoning: bool = False


# ---------------------------------------------------------------------------
# Protocol events, one SSE frame each
# ---------------------------------------------------------------------------


class ThoughtsStart(BaseModel):
    type: Literal["thoughts_start"] = "thoughts_start"
    message: str = "AI is thinking..."


class Thoughts(BaseModel):
    type: Literal["thoughts"] = "thoughts"
    content: str


class AnswerStart(BaseModel):
    type: Literal["answer_start"] = "answer_start"
    message: str = "Generating code..."


class Progress(BaseModel):
    type: Literal["progress"] = "progress"
    message: str = "Generating code..."
    progress: float = Field(ge=0, le=100)


class Complete(BaseModel):
    """Terminal success event. `code` is the sanitized HTML document."""

    type: Literal["complete"] = "complete"
    success: bool = True
    code: str
    thoughts: str = ""


class Error(BaseModel):
    """Terminal failure event."""

    type: Literal["error"] = "error"
    error: str
    details: str | None = None


ProtocolEvent = Annotated[
    Union[ThoughtsStart, Thoughts, AnswerStart, Progress, Complete, Error],
    Field(discriminator="type"),
]

TERMINAL_EVENTS = (Complete, Error)

_event_adapter: TypeAdapter[ProtocolEvent] = TypeAdapter(ProtocolEvent)


def parse_event(data: Any) -> ProtocolEvent:
    """Validate a decoded JSON object into one of the protocol events.

    Raises pydantic.ValidationError for unknown types or missing fields.
    """
    return _event_adapter.validate_python(data)


def is_terminal(event: BaseModel) -> bool:
    return isinstance(event, TERMINAL_EVENTS)
