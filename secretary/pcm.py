"""Level metering and WAV encoding for captured PCM samples."""

from __future__ import annotations

import io
import threading
from collections import deque
from typing import TYPE_CHECKING

import numpy as np
from scipy.io.wavfile import write as wav_write

if TYPE_CHECKING:
    from numpy.typing import NDArray

RMS_EPSILON = 1e-12


def block_rms(audio: "NDArray[np.float32]") -> float:
    return float(np.sqrt(np.mean(audio * audio) + RMS_EPSILON))


def rms_to_level(rms: float, floor_db: float) -> float:
    """Map an RMS amplitude to 0..1, with ``floor_db`` as silence and 0 dB as full scale."""
    power_db = 20.0 * np.log10(max(rms, RMS_EPSILON))
    if power_db < floor_db:
        return 0.0
    if power_db >= 0.0:
        return 1.0
    return float((power_db - floor_db) / (0.0 - floor_db))


def encode_wav(audio: "NDArray[np.int16]", sample_rate: int) -> bytes:
    buffer = io.BytesIO()
    wav_write(buffer, sample_rate, audio)
    return buffer.getvalue()


class LevelMeter:
    """Bounded history of recent input levels for UI feedback."""

    def __init__(self, capacity: int = 30) -> None:
        self._levels: deque[float] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def push(self, level: float) -> None:
        with self._lock:
            self._levels.append(level)

    def snapshot(self) -> list[float]:
        with self._lock:
            return list(self._levels)

    def clear(self) -> None:
        with self._lock:
            self._levels.clear()
