"""Speech-to-text over the OpenAI-compatible transcription endpoint."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Protocol

import requests

from secretary.errors import MissingCredential, TranscriptionFailed

if TYPE_CHECKING:
    from secretary.config import TranscriptionConfig
    from secretary.models import AudioClip

logger = logging.getLogger(__name__)


class TranscriptionService(Protocol):
    def transcribe(self, clip: "AudioClip", language: str | None = None) -> str: ...


class WhisperTranscriber:
    """Transcribes recorded audio with a single multipart POST."""

    def __init__(
        self,
        config: "TranscriptionConfig",
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()

    def transcribe(self, clip: "AudioClip", language: str | None = None) -> str:
        """
        Transcribe audio to text.

        Args:
            clip: Encoded audio and its mime type.
            language: ISO-639-1 hint; falls back to the configured hint.

        Returns:
            The transcript, stripped of surrounding whitespace.

        Raises:
            MissingCredential: No API key is configured.
            TranscriptionFailed: Network error, non-2xx status or empty text.
        """
        if not self._config.api_key:
            raise MissingCredential("OpenAI API", "SECRETARY_OPENAI_API_KEY")

        data = {"model": self._config.model}
        hint = language if language is not None else self._config.language_hint
        if hint:
            data["language"] = hint

        files = {"file": (clip.filename, clip.data, clip.mime_type)}
        headers = {"Authorization": f"Bearer {self._config.api_key}"}

        logger.info(
            "Sending %.2fs of audio for transcription (model=%s, language=%s)",
            clip.duration_s,
            self._config.model,
            hint or "auto",
        )
        t0 = time.time()
        try:
            response = self._session.post(
                self._config.url,
                headers=headers,
                data=data,
                files=files,
                timeout=self._config.timeout_s,
            )
        except requests.RequestException as e:
            raise TranscriptionFailed(f"Transcription request failed: {e}") from e
        logger.info("Transcription done in %.2fs", time.time() - t0)

        if not response.ok:
            message = response.text or f"HTTP {response.status_code}"
            raise TranscriptionFailed(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionFailed("Transcription response is not JSON") from e

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise TranscriptionFailed("No text in response")

        return text.strip()
