"""Error types raised along the command pipeline."""

from __future__ import annotations

NOT_UNDERSTOOD_MESSAGE = "Could not understand the command."
CLIPBOARD_NOTICE = "Content copied to clipboard"


class SecretaryError(Exception):
    """Base class for every failure the pipeline reports to the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        return f"Error: {self.message}"


class PermissionDenied(SecretaryError):
    """A macOS privacy permission (microphone, accessibility) is missing."""


class MissingCredential(SecretaryError):
    """An API key needed for the current step is not configured."""

    def __init__(self, service: str, variable: str) -> None:
        super().__init__(f"Please set the {service} key ({variable}).")
        self.service = service
        self.variable = variable

    @property
    def user_message(self) -> str:
        return self.message


class TransportFailure(SecretaryError):
    """Network error or non-2xx response from a remote API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TranscriptionFailed(TransportFailure):
    """The transcription request failed or produced no text."""


class MalformedResponse(SecretaryError):
    """The router reply could not be decoded into a tool call."""


class UnknownTool(SecretaryError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ActionFailure(SecretaryError):
    """A tool handler could not perform its side effect."""


class TooShortRecording(SecretaryError):
    def __init__(self, duration_s: float, threshold_s: float) -> None:
        super().__init__(
            f"Recording too short: {duration_s:.2f}s (threshold {threshold_s:.2f}s)"
        )
        self.duration_s = duration_s
        self.threshold_s = threshold_s
