"""Single-threaded coordinator between hotkey events and the recording session."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Union

from secretary.errors import PermissionDenied, TooShortRecording
from secretary.models import ChatLog, ChatMessage, MessageRole, PipelineResult, TextArgument, ToolCall

if TYPE_CHECKING:
    from secretary.models import AudioClip, SessionState
    from secretary.session import Executor, RecordingSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Press:
    pass


@dataclass(frozen=True)
class Release:
    pass


@dataclass(frozen=True)
class PasteLastTranscript:
    pass


@dataclass(frozen=True)
class PipelineFinished:
    result: PipelineResult


@dataclass(frozen=True)
class Shutdown:
    pass


Event = Union[Press, Release, PasteLastTranscript, PipelineFinished, Shutdown]
Spawn = Callable[[Callable[[], None]], None]
MessageCallback = Callable[[ChatMessage], None]
TooShortCallback = Callable[[float], None]
NoticeCallback = Callable[[str], None]


def spawn_daemon(work: Callable[[], None]) -> None:
    threading.Thread(target=work, name="secretary-pipeline", daemon=True).start()


class PipelineCoordinator:
    """
    Owns the session and the chat log, and is their only writer.

    Hotkey adapters (keyboard listener, HTTP endpoints) only enqueue events.
    Every event is handled on the coordinator thread; the background
    pipeline run reports back with a ``PipelineFinished`` event instead of
    touching shared state itself.
    """

    def __init__(
        self,
        session: "RecordingSession",
        executor: "Executor",
        chat_log: ChatLog | None = None,
        spawn: Spawn = spawn_daemon,
        on_message: MessageCallback | None = None,
        on_too_short: TooShortCallback | None = None,
        on_notice: NoticeCallback | None = None,
    ) -> None:
        self._session = session
        self._executor = executor
        self._chat_log = chat_log if chat_log is not None else ChatLog()
        self._spawn = spawn
        self._on_message = on_message
        self._on_too_short = on_too_short
        self._on_notice = on_notice

        self._events: queue.Queue[Event] = queue.Queue()
        self._thread: threading.Thread | None = None

    @property
    def chat_log(self) -> ChatLog:
        return self._chat_log

    @property
    def state(self) -> "SessionState":
        return self._session.state

    @property
    def levels(self) -> list[float]:
        return self._session.levels

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def post(self, event: Event) -> None:
        self._events.put(event)

    def press(self) -> None:
        self.post(Press())

    def release(self) -> None:
        self.post(Release())

    def paste_last_transcript(self) -> None:
        self.post(PasteLastTranscript())

    def start(self) -> None:
        if self.is_running:
            return
        self._thread = threading.Thread(target=self.run, name="secretary-coordinator", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self.post(Shutdown())
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def run(self) -> None:
        """Handle events until a Shutdown arrives."""
        while True:
            event = self._events.get()
            if isinstance(event, Shutdown):
                break
            self._safe_dispatch(event)
        self._session.abort()

    def process_pending(self) -> int:
        """Handle every queued event without blocking. Returns how many ran."""
        handled = 0
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return handled
            if isinstance(event, Shutdown):
                continue
            self._safe_dispatch(event)
            handled += 1

    def _safe_dispatch(self, event: Event) -> None:
        try:
            self.dispatch(event)
        except Exception as e:
            logger.exception("Error handling %s: %s", type(event).__name__, e)

    def dispatch(self, event: Event) -> None:
        if isinstance(event, Press):
            self._handle_press()
        elif isinstance(event, Release):
            self._handle_release()
        elif isinstance(event, PipelineFinished):
            self._handle_finished(event.result)
        elif isinstance(event, PasteLastTranscript):
            self._handle_paste_last()

    def _handle_press(self) -> None:
        try:
            started = self._session.start()
        except PermissionDenied as e:
            logger.error("Cannot start recording: %s", e.message)
            self._append(ChatMessage(role=MessageRole.SYSTEM, content=e.user_message))
            return
        if not started:
            logger.debug("Press ignored in state %s", self._session.state.value)

    def _handle_release(self) -> None:
        try:
            clip = self._session.stop()
        except TooShortRecording as e:
            if self._on_too_short:
                self._on_too_short(e.duration_s)
            return
        if clip is None:
            logger.debug("Release ignored in state %s", self._session.state.value)
            return
        self._spawn(lambda: self._run_pipeline(clip))

    def _run_pipeline(self, clip: "AudioClip") -> None:
        result = self._session.process(clip)
        self.post(PipelineFinished(result))

    def _handle_finished(self, result: PipelineResult) -> None:
        try:
            for message in result.messages:
                self._append(message)
            if result.notice:
                self._notify(result.notice)
        finally:
            self._session.finish()

    def _handle_paste_last(self) -> None:
        if not self._session.is_idle:
            return
        last = self._chat_log.last_user_message()
        if last is None:
            return
        result = self._executor.execute(ToolCall("type", TextArgument(last.content)))
        if not result.ok:
            self._append(ChatMessage(role=MessageRole.SYSTEM, content=result.error or ""))
        elif result.notice:
            self._notify(result.notice)

    def _append(self, message: ChatMessage) -> None:
        self._chat_log.append(message)
        if self._on_message:
            try:
                self._on_message(message)
            except Exception as e:
                logger.exception("Message callback failed: %s", e)

    def _notify(self, notice: str) -> None:
        logger.info(notice)
        if self._on_notice:
            try:
                self._on_notice(notice)
            except Exception as e:
                logger.exception("Notice callback failed: %s", e)
