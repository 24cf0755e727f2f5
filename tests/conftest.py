"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Generator

import numpy as np
import pytest

from secretary.models import (
    AudioClip,
    ExecutionResult,
    RoutingContext,
    ToolCall,
)

if TYPE_CHECKING:
    from numpy.typing import NDArray


class FakeRecorder:
    """Recorder that hands back a fixed clip."""

    def __init__(self) -> None:
        self.start_calls = 0
        self.stop_calls = 0
        self.start_error: Exception | None = None
        self.levels = [0.25, 0.5]

    def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error

    def stop(self) -> AudioClip:
        self.stop_calls += 1
        return AudioClip(data=b"RIFF....WAVE")


class FakeTranscriber:
    def __init__(self, text: str = "hello world") -> None:
        self.text = text
        self.error: Exception | None = None
        self.calls: list[AudioClip] = []

    def transcribe(self, clip: AudioClip, language: str | None = None) -> str:
        self.calls.append(clip)
        if self.error is not None:
            raise self.error
        return self.text


class FakeRouter:
    def __init__(self, call: ToolCall | None = None) -> None:
        self.call = call
        self.error: Exception | None = None
        self.calls: list[tuple[str, RoutingContext]] = []

    def route(self, transcript: str, context: RoutingContext) -> ToolCall | None:
        self.calls.append((transcript, context))
        if self.error is not None:
            raise self.error
        return self.call


class FakeExecutor:
    def __init__(self, result: ExecutionResult | None = None) -> None:
        self.result = result
        self.calls: list[ToolCall] = []

    def execute(self, call: ToolCall) -> ExecutionResult:
        self.calls.append(call)
        if self.result is not None:
            return self.result
        return ExecutionResult(call.tool_name)


class FakeContextSource:
    def __init__(self) -> None:
        self.snapshots = 0

    def snapshot(self) -> RoutingContext:
        self.snapshots += 1
        return RoutingContext(api_key="hf-test", open_apps=("Notes",))


@pytest.fixture
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def router() -> FakeRouter:
    return FakeRouter()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def context_source() -> FakeContextSource:
    return FakeContextSource()


@pytest.fixture
def sample_audio_16k() -> NDArray[np.int16]:
    """Generate 1 second of sample audio at 16kHz."""
    sample_rate = 16000
    duration = 1.0
    t = np.linspace(0, duration, int(sample_rate * duration), dtype=np.float32)
    # Generate a 440Hz sine wave
    audio = np.sin(2 * np.pi * 440 * t) * 0.5
    return (audio * 32767).astype(np.int16)


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Fixture to clean environment variables before/after tests."""
    env_vars = [
        "SECRETARY_OPENAI_API_KEY",
        "OPENAI_API_KEY",
        "SECRETARY_HF_TOKEN",
        "HF_TOKEN",
        "SECRETARY_LANGUAGES",
        "SECRETARY_AUDIO_DEVICE",
        "SECRETARY_TRANSCRIPTION_MODEL",
        "SECRETARY_ROUTER_MODEL",
        "SECRETARY_REQUEST_TIMEOUT",
        "SECRETARY_DICTIONARY_FILE",
        "SECRETARY_STYLE_FILE",
        "SECRETARY_TONES",
        "SECRETARY_PTT_KEY",
        "SECRETARY_VERBOSE",
    ]
    original_values = {var: os.environ.get(var) for var in env_vars}

    for var in env_vars:
        os.environ.pop(var, None)

    yield

    for var, value in original_values.items():
        if value is not None:
            os.environ[var] = value
        else:
            os.environ.pop(var, None)
