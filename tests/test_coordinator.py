"""Tests for the coordinator module."""

from __future__ import annotations

import itertools
import time
from typing import TYPE_CHECKING, Callable
from unittest.mock import MagicMock

import pytest

from secretary.coordinator import PipelineCoordinator, Press, Release
from secretary.desktop import GenericDesktop
from secretary.errors import PermissionDenied
from secretary.focus import NullFocusInspector
from secretary.models import (
    ChatMessage,
    ExecutionResult,
    MessageRole,
    SessionState,
    TextArgument,
    ToolCall,
)
from secretary.session import RecordingSession
from secretary.tools import ToolExecutor

if TYPE_CHECKING:
    from conftest import (
        FakeContextSource,
        FakeExecutor,
        FakeRecorder,
        FakeRouter,
        FakeTranscriber,
    )


def run_inline(work: Callable[[], None]) -> None:
    work()


@pytest.fixture
def session(
    recorder: "FakeRecorder",
    transcriber: "FakeTranscriber",
    router: "FakeRouter",
    executor: "FakeExecutor",
    context_source: "FakeContextSource",
) -> RecordingSession:
    # Each press/release pair spans one second.
    ticks = itertools.count(0.0, 1.0)
    return RecordingSession(
        recorder=recorder,
        transcriber=transcriber,
        router=router,
        executor=executor,
        context_source=context_source,
        min_duration_s=0.4,
        clock=lambda: next(ticks),
    )


@pytest.fixture
def too_short() -> list[float]:
    return []


@pytest.fixture
def notices() -> list[str]:
    return []


@pytest.fixture
def coordinator(
    session: RecordingSession,
    executor: "FakeExecutor",
    too_short: list[float],
    notices: list[str],
) -> PipelineCoordinator:
    return PipelineCoordinator(
        session=session,
        executor=executor,
        spawn=run_inline,
        on_too_short=too_short.append,
        on_notice=notices.append,
    )


def talk(coordinator: PipelineCoordinator) -> None:
    coordinator.press()
    coordinator.release()
    coordinator.process_pending()


class TestPipelineCoordinator:
    """Tests for event handling on the coordinator."""

    def test_full_utterance(
        self,
        coordinator: PipelineCoordinator,
        router: "FakeRouter",
        executor: "FakeExecutor",
    ) -> None:
        """Test press/release runs the pipeline and returns to idle."""
        router.call = ToolCall("type", TextArgument("hello world"))

        talk(coordinator)

        roles = [m.role for m in coordinator.chat_log.messages]
        assert roles == [MessageRole.USER, MessageRole.TOOL]
        assert executor.calls == [router.call]
        assert coordinator.state == SessionState.IDLE

    def test_malformed_reply_returns_to_idle(
        self, coordinator: PipelineCoordinator, router: "FakeRouter"
    ) -> None:
        router.call = None

        talk(coordinator)

        messages = coordinator.chat_log.messages
        assert [m.role for m in messages] == [MessageRole.USER, MessageRole.SYSTEM]
        assert coordinator.state == SessionState.IDLE

    def test_action_failure_adds_one_system_entry(
        self,
        coordinator: PipelineCoordinator,
        router: "FakeRouter",
        executor: "FakeExecutor",
    ) -> None:
        router.call = ToolCall("switch_to", TextArgument("zzz"))
        executor.result = ExecutionResult("switch_to", error="Tool 'switch_to' failed: nope")

        talk(coordinator)

        system = [m for m in coordinator.chat_log.messages if m.role == MessageRole.SYSTEM]
        assert len(system) == 1
        assert coordinator.state == SessionState.IDLE

    def test_too_short_tap_is_silent(
        self,
        recorder: "FakeRecorder",
        transcriber: "FakeTranscriber",
        router: "FakeRouter",
        executor: "FakeExecutor",
        context_source: "FakeContextSource",
        too_short: list[float],
    ) -> None:
        """Test a tap signals the callback and adds nothing to the log."""
        readings = iter([1.0, 1.1])
        session = RecordingSession(
            recorder=recorder,
            transcriber=transcriber,
            router=router,
            executor=executor,
            context_source=context_source,
            clock=lambda: next(readings),
        )
        coordinator = PipelineCoordinator(
            session=session,
            executor=executor,
            spawn=run_inline,
            on_too_short=too_short.append,
        )

        talk(coordinator)

        assert too_short == [pytest.approx(0.1)]
        assert len(coordinator.chat_log) == 0
        assert transcriber.calls == []
        assert coordinator.state == SessionState.IDLE

    def test_release_without_press_is_ignored(
        self, coordinator: PipelineCoordinator, transcriber: "FakeTranscriber"
    ) -> None:
        coordinator.release()
        coordinator.process_pending()
        assert transcriber.calls == []
        assert coordinator.state == SessionState.IDLE

    def test_double_press_records_once(
        self, coordinator: PipelineCoordinator, recorder: "FakeRecorder"
    ) -> None:
        coordinator.press()
        coordinator.press()
        coordinator.process_pending()
        assert recorder.start_calls == 1
        assert coordinator.state == SessionState.RECORDING

    def test_permission_denied_adds_system_entry(
        self, coordinator: PipelineCoordinator, recorder: "FakeRecorder"
    ) -> None:
        recorder.start_error = PermissionDenied("Microphone unavailable")

        coordinator.press()
        coordinator.process_pending()

        messages = coordinator.chat_log.messages
        assert len(messages) == 1
        assert messages[0].role == MessageRole.SYSTEM
        assert messages[0].content == "Error: Microphone unavailable"
        assert coordinator.state == SessionState.IDLE

    def test_notice_goes_to_callback(
        self,
        coordinator: PipelineCoordinator,
        router: "FakeRouter",
        executor: "FakeExecutor",
        notices: list[str],
    ) -> None:
        router.call = ToolCall("type", TextArgument("hi"))
        executor.result = ExecutionResult("type", notice="Content copied to clipboard")

        talk(coordinator)

        assert notices == ["Content copied to clipboard"]
        assert all(m.content != "Content copied to clipboard" for m in coordinator.chat_log.messages)

    def test_handler_exception_is_logged_not_raised(
        self, coordinator: PipelineCoordinator, recorder: "FakeRecorder"
    ) -> None:
        """Test an unexpected error in a handler does not kill the loop."""
        recorder.start_error = RuntimeError("driver crashed")
        coordinator.press()
        assert coordinator.process_pending() == 1
        assert coordinator.state == SessionState.IDLE


class TestFailingCallbacks:
    """A raising front-end callback never strands the session."""

    def test_raising_message_callback_returns_to_idle(
        self,
        session: RecordingSession,
        executor: "FakeExecutor",
        router: "FakeRouter",
        recorder: "FakeRecorder",
    ) -> None:
        def closed_stdout(message: ChatMessage) -> None:
            raise OSError("stdout closed")

        coordinator = PipelineCoordinator(
            session=session, executor=executor, spawn=run_inline, on_message=closed_stdout
        )
        router.call = ToolCall("type", TextArgument("hello world"))

        talk(coordinator)

        assert coordinator.state == SessionState.IDLE
        assert len(coordinator.chat_log) == 2

        coordinator.press()
        coordinator.process_pending()
        assert recorder.start_calls == 2
        assert coordinator.state == SessionState.RECORDING

    def test_raising_notice_callback_returns_to_idle(
        self,
        session: RecordingSession,
        executor: "FakeExecutor",
        router: "FakeRouter",
    ) -> None:
        def broken(notice: str) -> None:
            raise RuntimeError("no display")

        coordinator = PipelineCoordinator(
            session=session, executor=executor, spawn=run_inline, on_notice=broken
        )
        router.call = ToolCall("type", TextArgument("hi"))
        executor.result = ExecutionResult("type", notice="Content copied to clipboard")

        talk(coordinator)

        assert coordinator.state == SessionState.IDLE

    def test_raising_state_callback_returns_to_idle(
        self,
        recorder: "FakeRecorder",
        transcriber: "FakeTranscriber",
        router: "FakeRouter",
        executor: "FakeExecutor",
        context_source: "FakeContextSource",
    ) -> None:
        def tone_failure(old: SessionState, new: SessionState) -> None:
            raise RuntimeError("audio device gone")

        ticks = itertools.count(0.0, 1.0)
        session = RecordingSession(
            recorder=recorder,
            transcriber=transcriber,
            router=router,
            executor=executor,
            context_source=context_source,
            clock=lambda: next(ticks),
            on_state_change=tone_failure,
        )
        coordinator = PipelineCoordinator(session=session, executor=executor, spawn=run_inline)
        router.call = ToolCall("type", TextArgument("hello world"))

        talk(coordinator)

        assert coordinator.state == SessionState.IDLE
        assert len(coordinator.chat_log) == 2


class TestPasteLastTranscript:
    """Tests for re-typing the latest transcript."""

    def test_retypes_last_user_message(
        self, coordinator: PipelineCoordinator, executor: "FakeExecutor"
    ) -> None:
        coordinator.chat_log.append(ChatMessage(role=MessageRole.USER, content="first"))
        coordinator.chat_log.append(ChatMessage(role=MessageRole.USER, content="second"))
        coordinator.chat_log.append(ChatMessage(role=MessageRole.SYSTEM, content="note"))

        coordinator.paste_last_transcript()
        coordinator.process_pending()

        assert executor.calls == [ToolCall("type", TextArgument("second"))]

    def test_no_transcript_is_noop(
        self, coordinator: PipelineCoordinator, executor: "FakeExecutor"
    ) -> None:
        coordinator.paste_last_transcript()
        coordinator.process_pending()
        assert executor.calls == []

    def test_ignored_while_recording(
        self, coordinator: PipelineCoordinator, executor: "FakeExecutor"
    ) -> None:
        coordinator.chat_log.append(ChatMessage(role=MessageRole.USER, content="first"))
        coordinator.post(Press())
        coordinator.paste_last_transcript()
        coordinator.process_pending()
        assert executor.calls == []

    def test_failure_adds_system_entry(
        self, coordinator: PipelineCoordinator, executor: "FakeExecutor"
    ) -> None:
        coordinator.chat_log.append(ChatMessage(role=MessageRole.USER, content="first"))
        executor.result = ExecutionResult("type", error="Tool 'type' failed: no keyboard")

        coordinator.paste_last_transcript()
        coordinator.process_pending()

        assert coordinator.chat_log.messages[-1].content == "Tool 'type' failed: no keyboard"


class TestCoordinatorThread:
    """Tests for the background event loop."""

    def test_start_and_stop(
        self, coordinator: PipelineCoordinator, router: "FakeRouter"
    ) -> None:
        router.call = ToolCall("type", TextArgument("hello world"))
        coordinator.start()
        assert coordinator.is_running

        coordinator.post(Press())
        coordinator.post(Release())
        deadline = time.monotonic() + 2.0
        while len(coordinator.chat_log) < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        coordinator.stop()

        assert not coordinator.is_running
        assert len(coordinator.chat_log) == 2

    def test_stop_aborts_recording(
        self, coordinator: PipelineCoordinator, recorder: "FakeRecorder"
    ) -> None:
        coordinator.start()
        coordinator.post(Press())
        coordinator.stop()
        assert recorder.stop_calls == 1
        assert coordinator.state == SessionState.IDLE


class TestHandlerCrash:
    """A crashing tool handler is contained at the executor boundary."""

    def test_one_system_entry_then_next_run(
        self,
        recorder: "FakeRecorder",
        transcriber: "FakeTranscriber",
        router: "FakeRouter",
        context_source: "FakeContextSource",
    ) -> None:
        paste = MagicMock()
        paste.output.side_effect = [RuntimeError("event tap lost"), None]
        executor = ToolExecutor(
            desktop=GenericDesktop(),
            focus_inspector=NullFocusInspector(),
            paste_output=paste,
            clipboard_output=MagicMock(),
            search_base_url="https://www.google.com/search?q=",
        )
        ticks = itertools.count(0.0, 1.0)
        session = RecordingSession(
            recorder=recorder,
            transcriber=transcriber,
            router=router,
            executor=executor,
            context_source=context_source,
            clock=lambda: next(ticks),
        )
        coordinator = PipelineCoordinator(session=session, executor=executor, spawn=run_inline)
        router.call = ToolCall("type", TextArgument("hello world"))

        talk(coordinator)

        system = [m for m in coordinator.chat_log.messages if m.role == MessageRole.SYSTEM]
        assert [m.content for m in system] == ["Tool 'type' failed: event tap lost"]
        assert coordinator.state == SessionState.IDLE

        talk(coordinator)

        assert paste.output.call_count == 2
        assert len(coordinator.chat_log) == 5
        assert coordinator.state == SessionState.IDLE
