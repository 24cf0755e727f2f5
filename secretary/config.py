"""Configuration for the Secretary application."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

MIN_RECORDING_DURATION_S = 0.4

TRANSCRIPTION_URL = "https://api.openai.com/v1/audio/transcriptions"
ROUTER_URL = "https://router.huggingface.co/v1/chat/completions"
SEARCH_URL = "https://www.google.com/search?q="

_TRUE_VALUES = ("1", "true", "yes")


@dataclass
class AudioConfig:
    sample_rate: int = 16_000
    channels: int = 1
    block_ms: int = 50
    device_id: int | None = None
    level_history: int = 30
    level_floor_db: float = -60.0

    @property
    def block_size(self) -> int:
        return int(self.sample_rate * (self.block_ms / 1000.0))


@dataclass
class ToneConfig:
    enabled: bool = True
    start_hz: int = 880
    stop_hz: int = 440
    duration_s: float = 0.04
    volume: float = 0.15


@dataclass
class TranscriptionConfig:
    api_key: str = ""
    url: str = TRANSCRIPTION_URL
    model: str = "whisper-1"
    languages: list[str] = field(default_factory=list)
    timeout_s: float | None = None

    @property
    def language_hint(self) -> str | None:
        """Single configured language is passed as a hint; otherwise auto-detect."""
        if len(self.languages) == 1:
            return self.languages[0]
        return None


@dataclass
class RouterConfig:
    api_key: str = ""
    url: str = ROUTER_URL
    model: str = "Qwen/Qwen3-235B-A22B-Instruct-2507:cerebras"
    max_tokens: int = 500
    timeout_s: float | None = None
    dictionary_file: Path | None = None
    style_file: Path | None = None


@dataclass
class TypingConfig:
    restore_delay_s: float = 0.1
    search_url: str = SEARCH_URL


@dataclass
class KeybindConfig:
    """Names of `pynput.keyboard.Key` members, resolved when the listener starts."""

    ptt_key: str = "alt_r"
    quit_key: str = "esc"
    quit_modifier: str = "cmd"


@dataclass
class Config:
    audio: AudioConfig = field(default_factory=AudioConfig)
    tones: ToneConfig = field(default_factory=ToneConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    router: RouterConfig = field(default_factory=RouterConfig)
    typing: TypingConfig = field(default_factory=TypingConfig)
    keybinds: KeybindConfig = field(default_factory=KeybindConfig)
    min_recording_s: float = MIN_RECORDING_DURATION_S
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        config = cls()

        if key := os.environ.get("SECRETARY_OPENAI_API_KEY", os.environ.get("OPENAI_API_KEY")):
            config.transcription.api_key = key.strip()

        if token := os.environ.get("SECRETARY_HF_TOKEN", os.environ.get("HF_TOKEN")):
            config.router.api_key = token.strip()

        if device := os.environ.get("SECRETARY_AUDIO_DEVICE"):
            try:
                config.audio.device_id = int(device)
            except ValueError:
                pass  # Keep default device

        if langs := os.environ.get("SECRETARY_LANGUAGES"):
            if langs.strip().lower() == "auto":
                config.transcription.languages = []
            else:
                config.transcription.languages = [
                    code.strip().lower() for code in langs.split(",") if code.strip()
                ]

        if model := os.environ.get("SECRETARY_TRANSCRIPTION_MODEL"):
            config.transcription.model = model

        if model := os.environ.get("SECRETARY_ROUTER_MODEL"):
            config.router.model = model

        if timeout := os.environ.get("SECRETARY_REQUEST_TIMEOUT"):
            try:
                value = float(timeout)
            except ValueError:
                value = None
            if value is not None and value > 0:
                config.transcription.timeout_s = value
                config.router.timeout_s = value

        if path := os.environ.get("SECRETARY_DICTIONARY_FILE"):
            config.router.dictionary_file = Path(path).expanduser()

        if path := os.environ.get("SECRETARY_STYLE_FILE"):
            config.router.style_file = Path(path).expanduser()

        if tones := os.environ.get("SECRETARY_TONES"):
            config.tones.enabled = tones.lower() in _TRUE_VALUES

        if key := os.environ.get("SECRETARY_PTT_KEY"):
            config.keybinds.ptt_key = key.strip().lower()

        if verbose := os.environ.get("SECRETARY_VERBOSE"):
            config.verbose = verbose.lower() in _TRUE_VALUES

        return config
