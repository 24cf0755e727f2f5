"""Core data models shared by the session, router and executor."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from secretary.types import MessageDict


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    DONE = "done"


class FocusState(str, Enum):
    FOCUSED_TEXT_INPUT = "focused_text_input"
    NO_FOCUSED_TEXT_INPUT = "no_focused_text_input"
    UNKNOWN = "unknown"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class Outcome(str, Enum):
    """Terminal outcome of one pipeline run."""

    ACTION_TAKEN = "action_taken"
    NOT_UNDERSTOOD = "not_understood"
    FAILED = "failed"


@dataclass(frozen=True)
class TextArgument:
    value: str


@dataclass(frozen=True)
class NoArgument:
    pass


ToolArgument = Union[TextArgument, NoArgument]
NO_ARGUMENT = NoArgument()


@dataclass(frozen=True)
class ToolCall:
    tool_name: str
    tool_arguments: ToolArgument = NO_ARGUMENT

    @property
    def text(self) -> str | None:
        if isinstance(self.tool_arguments, TextArgument):
            return self.tool_arguments.value
        return None

    def describe(self) -> tuple[str, str]:
        """Return ``(name, rendered_args)`` for display."""
        return self.tool_name, self.text or ""


@dataclass(frozen=True)
class ToolPayload:
    name: str
    arguments: str


@dataclass(frozen=True)
class ChatMessage:
    role: MessageRole
    content: str
    tool_payload: ToolPayload | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def tool(cls, call: ToolCall) -> "ChatMessage":
        name, args = call.describe()
        return cls(
            role=MessageRole.TOOL,
            content=args or name,
            tool_payload=ToolPayload(name=name, arguments=args),
        )

    def to_dict(self) -> "MessageDict":
        data: MessageDict = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "tool_payload": None,
        }
        if self.tool_payload is not None:
            data["tool_payload"] = {
                "name": self.tool_payload.name,
                "arguments": self.tool_payload.arguments,
            }
        return data


@dataclass
class AudioClip:
    """Encoded audio ready to upload."""

    data: bytes
    mime_type: str = "audio/wav"
    filename: str = "recording.wav"
    duration_s: float = 0.0


@dataclass(frozen=True)
class DictionaryEntry:
    kind: str  # "word" or "correction"
    input: str
    output: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "DictionaryEntry | None":
        kind = str(data.get("kind", "")).lower()
        source = str(data.get("input", "")).strip()
        if kind not in ("word", "correction") or not source:
            return None
        output = data.get("output")
        if kind == "correction":
            output = str(output).strip() if output else ""
            if not output:
                return None
        return cls(kind=kind, input=source, output=output if kind == "correction" else None)


@dataclass(frozen=True)
class RoutingContext:
    """Environment snapshot handed to the router for one invocation."""

    api_key: str
    default_browser: str = "Safari"
    open_apps: tuple[str, ...] = ()
    installed_apps: tuple[str, ...] = ()
    dictionary: tuple[DictionaryEntry, ...] = ()
    style_examples: str = ""

    @property
    def open_apps_description(self) -> str:
        return ", ".join(self.open_apps) if self.open_apps else "None detected"

    @property
    def installed_apps_description(self) -> str:
        return ", ".join(self.installed_apps) if self.installed_apps else "Unknown"


@dataclass
class ExecutionResult:
    """What the executor reports back for one tool call."""

    tool_name: str
    error: str | None = None
    notice: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PipelineResult:
    outcome: Outcome
    messages: list[ChatMessage] = field(default_factory=list)
    notice: str | None = None
    transcript: str | None = None


class ChatLog:
    """Append-only message history.

    Only the coordinator appends; readers get immutable snapshots.
    """

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []
        self._lock = threading.Lock()

    def append(self, message: ChatMessage) -> None:
        with self._lock:
            self._messages.append(message)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        with self._lock:
            return tuple(self._messages)

    def last_user_message(self) -> ChatMessage | None:
        with self._lock:
            for message in reversed(self._messages):
                if message.role == MessageRole.USER:
                    return message
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
