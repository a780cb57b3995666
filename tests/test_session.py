"""Tests for the client session state machine."""

import pytest

from geniesite.client.reassembler import MalformedFrame
from geniesite.client.session import (
    CLEARED_GREETING,
    INCOMPLETE_STREAM_ERROR,
    PROGRESS_PLACEHOLDER,
    SUCCESS_MESSAGE,
    TRANSPORT_FAILURE_MESSAGE,
    Phase,
    SessionStateMachine,
)
from geniesite.errors import GenerationInProgressError
from geniesite.schemas import AnswerStart, Complete, Error, Progress, Thoughts, ThoughtsStart


@pytest.fixture
def machine() -> SessionStateMachine:
    machine = SessionStateMachine()
    machine.begin("Create a landing page")
    return machine


def feed_all(machine, *events) -> None:
    for event in events:
        machine.feed(event)


class TestBegin:
    def test_initial_state(self):
        session = SessionStateMachine().session
        assert session.phase is Phase.IDLE
        assert len(session.messages) == 1
        assert session.messages[0].role == "ai"

    def test_begin_records_prompt_and_sets_flags(self, machine):
        session = machine.session
        assert session.messages[-1].role == "user"
        assert session.messages[-1].content == "Create a landing page"
        assert session.is_generating and session.is_typing
        assert session.progress == 0

    def test_second_generation_is_refused_while_streaming(self, machine):
        with pytest.raises(GenerationInProgressError):
            machine.begin("Another site")

    def test_empty_prompt_is_refused(self):
        with pytest.raises(ValueError):
            SessionStateMachine().begin("   ")

    def test_begin_after_completion_resets_request_state(self, machine):
        feed_all(machine, Thoughts(content="x "), AnswerStart(), Complete(code="<html></html>"))
        machine.end_of_stream()

        machine.begin("Next site")
        session = machine.session
        assert session.code == ""
        assert session.transcript == ""
        assert session.thoughts_message_id is None
        assert session.phase is Phase.IDLE


class TestTransitions:
    def test_thoughts_start_clears_typing(self, machine):
        machine.feed(ThoughtsStart())
        assert not machine.session.is_typing
        assert machine.session.phase is Phase.THINKING

    def test_thoughts_grow_one_message_in_place(self, machine):
        before = len(machine.session.messages)
        feed_all(machine, ThoughtsStart(), Thoughts(content="one "), Thoughts(content="two "))

        session = machine.session
        assert len(session.messages) == before + 1
        message = session.get_message(session.thoughts_message_id)
        assert message.is_thought
        assert message.content == "one two "
        assert session.transcript == "one two "

    def test_answer_start_creates_progress_message(self, machine):
        machine.feed(AnswerStart())
        session = machine.session
        assert session.phase is Phase.ANSWERING
        assert session.get_message(session.progress_message_id).content == PROGRESS_PLACEHOLDER

    def test_progress_updates_message_and_value(self, machine):
        feed_all(machine, AnswerStart(), Progress(progress=41.6))
        session = machine.session
        assert session.progress == 41.6
        assert session.get_message(session.progress_message_id).content == "Generating code... (42%)"

    def test_progress_is_not_forced_monotonic(self, machine):
        feed_all(machine, AnswerStart(), Progress(progress=30), Progress(progress=10))
        assert machine.session.progress == 10

    def test_complete(self, machine):
        feed_all(
            machine,
            ThoughtsStart(),
            Thoughts(content="plan "),
            AnswerStart(),
            Progress(progress=95),
            Complete(code="<!DOCTYPE html><html></html>", thoughts="plan"),
        )
        machine.end_of_stream()

        session = machine.session
        assert session.phase is Phase.DONE
        assert session.progress == 100
        assert session.code == "<!DOCTYPE html><html></html>"
        assert session.get_message(session.progress_message_id).content == SUCCESS_MESSAGE
        assert not session.is_generating

    def test_error(self, machine):
        feed_all(machine, AnswerStart(), Progress(progress=20), Error(error="Stream processing failed"))
        session = machine.session
        assert session.phase is Phase.ERROR
        assert session.progress == 0
        assert session.messages[-1].content == "Error: Stream processing failed"

    def test_error_state_absorbs_later_events(self, machine):
        feed_all(machine, Error(error="boom"), Progress(progress=50), Complete(code="<html></html>"))
        session = machine.session
        assert session.phase is Phase.ERROR
        assert session.progress == 0
        assert session.code == ""

    def test_malformed_frame_does_not_change_state(self, machine):
        machine.feed(ThoughtsStart())
        machine.feed(MalformedFrame(raw="{", reason="Expecting value"))
        assert machine.session.phase is Phase.THINKING


class TestEndOfStream:
    def test_missing_terminal_event_is_an_implicit_error(self, machine):
        feed_all(machine, AnswerStart(), Progress(progress=60))
        machine.end_of_stream()

        session = machine.session
        assert session.phase is Phase.ERROR
        assert session.progress == 0
        assert session.messages[-1].content == f"Error: {INCOMPLETE_STREAM_ERROR}"
        assert not session.is_generating and not session.is_typing

    def test_transport_failure_allows_retry(self, machine):
        machine.transport_failed(ConnectionError("reset"))
        session = machine.session
        assert session.messages[-1].content == TRANSPORT_FAILURE_MESSAGE
        assert session.phase is Phase.ERROR

        machine.begin("Try again")
        assert machine.session.is_generating

    def test_clear(self, machine):
        feed_all(machine, AnswerStart(), Complete(code="<html></html>"))
        machine.end_of_stream()
        machine.clear()

        session = machine.session
        assert session.code == ""
        assert session.progress == 0
        assert [m.content for m in session.messages] == [CLEARED_GREETING]
