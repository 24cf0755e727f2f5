"""Tests for the pcm module."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import numpy as np
import pytest
from scipy.io.wavfile import read as wav_read

from secretary.pcm import LevelMeter, block_rms, encode_wav, rms_to_level

if TYPE_CHECKING:
    from numpy.typing import NDArray


class TestRmsToLevel:
    """Tests for the dB level mapping."""

    def test_full_scale(self) -> None:
        assert rms_to_level(1.0, -60.0) == 1.0

    def test_below_floor_is_silent(self) -> None:
        assert rms_to_level(1e-4, -60.0) == 0.0  # -80 dB
        assert rms_to_level(0.0, -60.0) == 0.0

    def test_midpoint(self) -> None:
        # 10 ** (-30 / 20) is -30 dB, halfway to the -60 dB floor
        assert rms_to_level(10 ** (-30 / 20), -60.0) == pytest.approx(0.5)

    def test_block_rms(self) -> None:
        audio = np.full(100, 0.5, dtype=np.float32)
        assert block_rms(audio) == pytest.approx(0.5)


class TestEncodeWav:
    def test_round_trip_header(self, sample_audio_16k: "NDArray[np.int16]") -> None:
        """Test the encoded bytes are a readable 16 kHz mono WAV."""
        data = encode_wav(sample_audio_16k, 16000)
        assert data[:4] == b"RIFF"
        sample_rate, decoded = wav_read(io.BytesIO(data))
        assert sample_rate == 16000
        assert decoded.dtype == np.int16
        assert len(decoded) == len(sample_audio_16k)


class TestLevelMeter:
    """Tests for the bounded level history."""

    def test_keeps_most_recent(self) -> None:
        meter = LevelMeter(capacity=3)
        for level in (0.1, 0.2, 0.3, 0.4):
            meter.push(level)
        assert meter.snapshot() == [0.2, 0.3, 0.4]

    def test_clear(self) -> None:
        meter = LevelMeter()
        meter.push(0.5)
        meter.clear()
        assert meter.snapshot() == []
