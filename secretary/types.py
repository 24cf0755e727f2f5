"""Type definitions for wire payloads and API responses."""

from __future__ import annotations

from typing import Literal, TypedDict


class CompletionMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


class CompletionRequest(TypedDict):
    model: str
    messages: list[CompletionMessage]
    max_tokens: int


class ToolPayloadDict(TypedDict):
    name: str
    arguments: str


class MessageDict(TypedDict):
    id: str
    role: Literal["user", "assistant", "system", "tool"]
    content: str
    timestamp: str
    tool_payload: ToolPayloadDict | None


class HealthCheck(TypedDict):
    """Health check response."""

    status: Literal["healthy", "unhealthy"]
    coordinator_running: bool


class StateResponse(TypedDict):
    state: Literal["idle", "recording", "processing", "done"]
    levels: list[float]
