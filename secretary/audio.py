"""Microphone capture, device listing and feedback tones."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import sounddevice as sd

from secretary.errors import PermissionDenied
from secretary.models import AudioClip
from secretary.pcm import LevelMeter, block_rms, encode_wav, rms_to_level

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from secretary.config import AudioConfig, ToneConfig

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 16_000
FADE_DURATION_SECONDS = 0.008
INT16_MAX = 32767.0
AUDIO_CLIP_MIN = -1.0
AUDIO_CLIP_MAX = 1.0
FIRST_CHANNEL_INDEX = 0
WAV_MIME_TYPE = "audio/wav"


@dataclass
class AudioDevice:
    index: int
    name: str
    is_default: bool = False

    def __str__(self) -> str:
        marker = " (DEFAULT)" if self.is_default else ""
        return f"[{self.index}] {self.name}{marker}"


def list_input_devices() -> list[AudioDevice]:
    devices = sd.query_devices()
    default_input = sd.default.device[FIRST_CHANNEL_INDEX]

    input_devices = []
    for i, dev in enumerate(devices):
        if dev["max_input_channels"] > 0:  # type: ignore[index]
            input_devices.append(
                AudioDevice(
                    index=i,
                    name=dev["name"],  # type: ignore[index]
                    is_default=(i == default_input),
                )
            )
    return input_devices


def get_device_name(device_id: int | None) -> str:
    if device_id is not None:
        info = sd.query_devices(device_id)
    else:
        default_id = sd.default.device[FIRST_CHANNEL_INDEX]
        info = sd.query_devices(default_id)
    return info["name"]  # type: ignore[index,return-value]


def play_tone(
    config: "ToneConfig",
    frequency_hz: int,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> None:
    if not config.enabled:
        return

    n_samples = int(sample_rate * config.duration_s)
    t = np.arange(n_samples, dtype=np.float32) / sample_rate
    tone = np.sin(2.0 * np.pi * frequency_hz * t) * config.volume

    fade_samples = max(1, int(FADE_DURATION_SECONDS * sample_rate))
    if fade_samples * 2 < n_samples:
        window = np.ones(n_samples, dtype=np.float32)
        window[:fade_samples] = np.linspace(0, 1, fade_samples, dtype=np.float32)
        window[-fade_samples:] = np.linspace(1, 0, fade_samples, dtype=np.float32)
        tone *= window

    try:
        sd.play(tone.astype(np.float32), sample_rate, blocking=False)
    except sd.PortAudioError as e:
        logger.warning("Could not play tone: %s", e)


class AudioCapture:
    """Microphone recorder that buffers everything between start() and stop()."""

    def __init__(self, audio_config: "AudioConfig") -> None:
        self._audio_config = audio_config

        self._stream: sd.InputStream | None = None
        self._recording = False
        self._recording_started_at = 0.0
        self._blocks: list["NDArray[np.float32]"] = []
        self._lock = threading.Lock()
        self._meter = LevelMeter(audio_config.level_history)

    @property
    def levels(self) -> list[float]:
        return self._meter.snapshot()

    def start(self) -> None:
        with self._lock:
            if self._recording:
                return
            self._blocks = []
            self._meter.clear()

        try:
            self._start_stream()
        except sd.PortAudioError as e:
            logger.error("Could not open input stream: %s", e)
            raise PermissionDenied(
                "Microphone unavailable. Grant microphone access in System Settings."
            ) from e

        with self._lock:
            self._recording = True
            self._recording_started_at = time.monotonic()

    def stop(self) -> AudioClip:
        with self._lock:
            was_recording = self._recording
            self._recording = False
            duration = time.monotonic() - self._recording_started_at if was_recording else 0.0
            blocks, self._blocks = self._blocks, []

        self._stop_stream()
        self._meter.clear()
        return self._build_clip(blocks, duration)

    def _start_stream(self) -> None:
        self._stream = sd.InputStream(
            samplerate=self._audio_config.sample_rate,
            channels=self._audio_config.channels,
            dtype="float32",
            blocksize=self._audio_config.block_size,
            device=self._audio_config.device_id,
            callback=self._audio_callback,
        )
        self._stream.start()

    def _stop_stream(self) -> None:
        if self._stream:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.warning("Error stopping audio stream: %s", e)
            finally:
                self._stream = None

    def _audio_callback(
        self,
        indata: "NDArray[np.float32]",
        frames: int,
        time_info: dict,
        status: sd.CallbackFlags,
    ) -> None:
        if status:
            logger.warning("Audio callback status: %s", status)

        audio = indata[:, FIRST_CHANNEL_INDEX].astype(np.float32, copy=True)
        self._process_audio_block(audio)

    def _process_audio_block(self, audio: "NDArray[np.float32]") -> None:
        with self._lock:
            if not self._recording:
                return
            self._blocks.append(audio)

        rms = block_rms(audio)
        self._meter.push(rms_to_level(rms, self._audio_config.level_floor_db))

    def _build_clip(
        self, blocks: list["NDArray[np.float32]"], duration: float
    ) -> AudioClip:
        if blocks:
            samples = np.concatenate(blocks).astype(np.float32)
        else:
            samples = np.zeros((0,), dtype=np.float32)
        samples = np.clip(samples, AUDIO_CLIP_MIN, AUDIO_CLIP_MAX)
        samples_i16 = (samples * INT16_MAX).astype(np.int16)

        return AudioClip(
            data=encode_wav(samples_i16, self._audio_config.sample_rate),
            mime_type=WAV_MIME_TYPE,
            filename="recording.wav",
            duration_s=duration,
        )
