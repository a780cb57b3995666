"""Session state machine — drives the client-visible generation state from events.

idle → thinking → answering → done, with an absorbing error state reachable
from any non-idle phase. The presentation layer only reads GenerationSession;
it never mutates it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import singledispatchmethod
from typing import Literal

from geniesite.client.reassembler import MalformedFrame
from geniesite.errors import GenerationInProgressError
from geniesite.schemas import (
    AnswerStart,
    Complete,
    Error,
    Progress,
    Thoughts,
    ThoughtsStart,
)

logger = logging.getLogger(__name__)

GREETING = "Hello! I'm here to help you build amazing websites. Just describe what you want!"
CLEARED_GREETING = "Chat cleared! What website would you like to create?"
PROGRESS_PLACEHOLDER = "Starting code generation..."
SUCCESS_MESSAGE = "Website generated successfully!"
TRANSPORT_FAILURE_MESSAGE = "Failed to generate website. Please try again."
INCOMPLETE_STREAM_ERROR = "Stream ended before the generation finished"


class Phase(str, Enum):
    IDLE = "idle"
    THINKING = "thinking"
    ANSWERING = "answering"
    DONE = "done"
    ERROR = "error"


@dataclass
class ChatMessage:
    id: int
    role: Literal["user", "ai"]
    content: str
    is_thought: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class GenerationSession:
    """Everything the presentation layer shows for the current conversation."""

    phase: Phase = Phase.IDLE
    is_typing: bool = False
    is_generating: bool = False
    transcript: str = ""
    progress: float = 0
    code: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    thoughts_message_id: int | None = None
    progress_message_id: int | None = None
    terminal_seen: bool = False
    _next_id: int = 1

    def add_message(self, role: Literal["user", "ai"], content: str, is_thought: bool = False) -> int:
        message = ChatMessage(id=self._next_id, role=role, content=content, is_thought=is_thought)
        self._next_id += 1
        self.messages.append(message)
        return message.id

    def update_message(self, message_id: int, content: str) -> None:
        for message in self.messages:
            if message.id == message_id:
                message.content = content
                return

    def get_message(self, message_id: int | None) -> ChatMessage | None:
        return next((m for m in self.messages if m.id == message_id), None)


class SessionStateMachine:
    """Applies protocol events to a GenerationSession, one at a time, in arrival order."""

    def __init__(self, session: GenerationSession | None = None) -> None:
        self.session = session or GenerationSession()
        if not self.session.messages:
            self.session.add_message("ai", GREETING)

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    def begin(self, prompt: str) -> str:
        """Start a new generation. Returns the stripped prompt.

        Raises GenerationInProgressError while a generation is streaming and
        ValueError for an empty prompt.
        """
        s = self.session
        if s.is_generating:
            raise GenerationInProgressError("A website is already being generated")
        prompt = prompt.strip()
        if not prompt:
            raise ValueError("Prompt is required")

        s.add_message("user", prompt)
        s.phase = Phase.IDLE
        s.is_generating = True
        s.is_typing = True
        s.transcript = ""
        s.progress = 0
        s.code = ""
        s.thoughts_message_id = None
        s.progress_message_id = None
        s.terminal_seen = False
        return prompt

    def end_of_stream(self) -> None:
        """The transport closed. A missing terminal event counts as an error."""
        s = self.session
        s.is_typing = False
        s.is_generating = False
        if not s.terminal_seen:
            logger.warning("Stream closed without a terminal event")
            self._fail(INCOMPLETE_STREAM_ERROR)
            s.terminal_seen = True

    def transport_failed(self, exc: BaseException) -> None:
        """Reading the stream failed; reset so the user can retry."""
        logger.error(f"Transport error: {exc}")
        s = self.session
        s.is_typing = False
        s.is_generating = False
        s.terminal_seen = True
        s.add_message("ai", TRANSPORT_FAILURE_MESSAGE)
        s.progress = 0
        s.phase = Phase.ERROR

    def clear(self) -> None:
        """Forget the conversation and the last generated site."""
        self.session = GenerationSession()
        self.session.add_message("ai", CLEARED_GREETING)

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    def feed(self, item) -> None:
        """Apply one reassembled item, event or malformed-frame notice."""
        s = self.session
        if isinstance(item, MalformedFrame):
            logger.warning(f"Skipping malformed frame: {item.reason}")
            return
        if s.terminal_seen:
            logger.warning(f"Ignoring {item.type!r} after the terminal event")
            return
        if s.phase is Phase.ERROR:
            logger.warning(f"Ignoring {item.type!r} in error state")
            return
        self.apply(item)

    @singledispatchmethod
    def apply(self, event) -> None:
        raise TypeError(f"Unknown event: {event!r}")

    @apply.register
    def _(self, event: ThoughtsStart) -> None:
        self.session.is_typing = False
        self.session.phase = Phase.THINKING

    @apply.register
    def _(self, event: Thoughts) -> None:
        s = self.session
        s.is_typing = False
        s.phase = Phase.THINKING
        s.transcript += event.content
        if s.thoughts_message_id is None:
            s.thoughts_message_id = s.add_message("ai", s.transcript, is_thought=True)
        else:
            s.update_message(s.thoughts_message_id, s.transcript)

    @apply.register
    def _(self, event: AnswerStart) -> None:
        s = self.session
        s.is_typing = False
        if s.progress_message_id is None:
            s.progress_message_id = s.add_message("ai", PROGRESS_PLACEHOLDER)
        s.phase = Phase.ANSWERING

    @apply.register
    def _(self, event: Progress) -> None:
        s = self.session
        if s.progress_message_id is not None:
            s.update_message(s.progress_message_id, f"{event.message} ({round(event.progress)}%)")
        s.progress = event.progress

    @apply.register
    def _(self, event: Complete) -> None:
        s = self.session
        s.code = event.code
        if s.progress_message_id is not None:
            s.update_message(s.progress_message_id, SUCCESS_MESSAGE)
        s.progress = 100
        s.phase = Phase.DONE
        s.terminal_seen = True

    @apply.register
    def _(self, event: Error) -> None:
        self._fail(event.error)
        self.session.terminal_seen = True

    def _fail(self, summary: str) -> None:
        s = self.session
        s.add_message("ai", f"Error: {summary}")
        s.progress = 0
        s.phase = Phase.ERROR
