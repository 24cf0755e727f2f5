"""Recording-session state machine and the per-utterance pipeline."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Protocol

from secretary.errors import NOT_UNDERSTOOD_MESSAGE, SecretaryError, TooShortRecording
from secretary.models import ChatMessage, MessageRole, Outcome, PipelineResult, SessionState

if TYPE_CHECKING:
    from secretary.models import AudioClip, ExecutionResult, RoutingContext, ToolCall
    from secretary.transcribe import TranscriptionService

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]


class Recorder(Protocol):
    @property
    def levels(self) -> list[float]: ...

    def start(self) -> None: ...

    def stop(self) -> "AudioClip": ...


class Router(Protocol):
    def route(self, transcript: str, context: "RoutingContext") -> "ToolCall | None": ...


class Executor(Protocol):
    def execute(self, call: "ToolCall") -> "ExecutionResult": ...


class ContextSource(Protocol):
    def snapshot(self) -> "RoutingContext": ...


class RecordingSession:
    """
    Idle -> Recording -> Processing -> Done -> Idle.

    ``start``, ``stop`` and ``finish`` are state transitions and must be
    called from the coordinating thread. ``process`` touches no session
    state and is meant to run in the background worker.
    """

    def __init__(
        self,
        recorder: Recorder,
        transcriber: "TranscriptionService",
        router: Router,
        executor: Executor,
        context_source: ContextSource,
        min_duration_s: float = 0.4,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: StateCallback | None = None,
    ) -> None:
        self._recorder = recorder
        self._transcriber = transcriber
        self._router = router
        self._executor = executor
        self._context_source = context_source
        self._min_duration_s = min_duration_s
        self._clock = clock
        self._on_state_change = on_state_change

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._started_at = 0.0
        self._duration_s = 0.0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state == SessionState.IDLE

    @property
    def duration_s(self) -> float:
        """Elapsed time of the last completed capture."""
        return self._duration_s

    @property
    def levels(self) -> list[float]:
        if self._state != SessionState.RECORDING:
            return []
        return self._recorder.levels

    def start(self) -> bool:
        """Begin capture. Returns False (and does nothing) unless idle."""
        with self._lock:
            if self._state != SessionState.IDLE:
                return False
            self._recorder.start()
            self._started_at = self._clock()
            self._duration_s = 0.0
            self._transition(SessionState.RECORDING)
            return True

    def stop(self) -> "AudioClip | None":
        """
        End capture.

        Returns:
            The clip to process (state is now Processing), or None when the
            session was not recording.

        Raises:
            TooShortRecording: The capture was discarded; state is back to Idle.
        """
        with self._lock:
            if self._state != SessionState.RECORDING:
                return None
            clip = self._recorder.stop()
            self._duration_s = self._clock() - self._started_at
            clip.duration_s = self._duration_s

            if self._duration_s < self._min_duration_s:
                logger.info(
                    "Recording too short: %.2fs (threshold %.2fs)",
                    self._duration_s,
                    self._min_duration_s,
                )
                self._transition(SessionState.DONE)
                self._transition(SessionState.IDLE)
                raise TooShortRecording(self._duration_s, self._min_duration_s)

            self._transition(SessionState.PROCESSING)
            return clip

    def finish(self) -> None:
        """Mark the pipeline run observed and return to Idle."""
        with self._lock:
            if self._state != SessionState.PROCESSING:
                return
            self._transition(SessionState.DONE)
            self._transition(SessionState.IDLE)

    def abort(self) -> None:
        """Drop an in-progress capture without processing it."""
        with self._lock:
            if self._state != SessionState.RECORDING:
                return
            try:
                self._recorder.stop()
            except Exception as e:
                logger.warning("Error stopping recorder: %s", e)
            self._transition(SessionState.DONE)
            self._transition(SessionState.IDLE)

    def process(self, clip: "AudioClip") -> PipelineResult:
        """Transcribe, route and execute one utterance, strictly in that order."""
        messages: list[ChatMessage] = []
        try:
            return self._run_pipeline(clip, messages)
        except SecretaryError as e:
            logger.error("Pipeline stopped: %s", e.message)
            messages.append(ChatMessage(role=MessageRole.SYSTEM, content=e.user_message))
        except Exception as e:
            logger.exception("Processing error: %s", e)
            messages.append(ChatMessage(role=MessageRole.SYSTEM, content=f"Error: {e}"))
        return PipelineResult(outcome=Outcome.FAILED, messages=messages)

    def _run_pipeline(self, clip: "AudioClip", messages: list[ChatMessage]) -> PipelineResult:
        t0 = time.time()
        transcript = self._transcriber.transcribe(clip)
        logger.info('Transcription: "%s"', transcript)
        messages.append(ChatMessage(role=MessageRole.USER, content=transcript))

        context = self._context_source.snapshot()
        call = self._router.route(transcript, context)
        if call is None:
            messages.append(ChatMessage(role=MessageRole.SYSTEM, content=NOT_UNDERSTOOD_MESSAGE))
            return PipelineResult(Outcome.NOT_UNDERSTOOD, messages, transcript=transcript)

        logger.info("Tool call: %s(%r)", call.tool_name, call.text)
        messages.append(ChatMessage.tool(call))

        result = self._executor.execute(call)
        logger.info("Pipeline run took %.2fs", time.time() - t0)
        if not result.ok:
            messages.append(ChatMessage(role=MessageRole.SYSTEM, content=result.error or ""))
            return PipelineResult(Outcome.FAILED, messages, transcript=transcript)

        return PipelineResult(
            Outcome.ACTION_TAKEN, messages, notice=result.notice, transcript=transcript
        )

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("Session %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            try:
                self._on_state_change(from_state, to_state)
            except Exception as e:
                logger.exception("State change callback failed: %s", e)
