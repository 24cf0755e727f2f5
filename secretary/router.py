"""Turns a transcript into one tool call via a chat-completion request."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

import requests

from secretary.errors import MalformedResponse, MissingCredential, TransportFailure
from secretary.models import NO_ARGUMENT, TextArgument, ToolArgument, ToolCall

if TYPE_CHECKING:
    from secretary.config import RouterConfig
    from secretary.models import DictionaryEntry, RoutingContext
    from secretary.types import CompletionRequest

logger = logging.getLogger(__name__)

DEFAULT_BEHAVIOUR = (
    "You are a scribe for macOS. The user has provided vocal guidance. "
    "You have to do one of two things:\n"
    "1. By default, what they want is to type what they've said, using the 'type' tool. "
    "When using this tool, just type what the user said; you may only change the "
    "capitalization and fix obvious grammar errors or typos, errors that the user tells "
    "you to fix while dictating, or match guidance like the dictionary provided below.\n"
    "2. Only when their text unambiguously asks to perform a command that exactly matches "
    "one of the tools 'open_app', 'switch_to', 'deep_research' or 'spotify', execute it "
    "instead. If unclear, revert to point 1 and use 'type'. Even when the user asks a "
    "question, if it is not a specific call to one of the tools below, use 'type' and "
    "type their question.\n"
    "In no case should you answer what they say yourself or ask for clarification.\n"
    'Output ONLY valid JSON with keys: "tool_name", "tool_arguments".'
)

DICTIONARY_HEADER = (
    "Dictionary - When encountering the terms below, either use the correct spelling "
    "as mentioned, or use the specified replacement:"
)
STYLE_HEADER = "Writing style examples - Match this style when transcribing:"


def tool_catalog(context: "RoutingContext") -> str:
    return "\n".join(
        [
            "Tools available:",
            "- type(text: String): Type text into active window.",
            "- open_app(name_or_url: String): Open app or URL. If mentioning a url or "
            f'website, open the default browser "{context.default_browser}". Otherwise, '
            "only use this command if the app mentioned is one of the installed apps: "
            f"<installed_apps>{context.installed_apps_description}</installed_apps>.",
            "- switch_to(app_name: String): Switch focus to app. Currently open apps: "
            f"{context.open_apps_description}.",
            "- deep_research(topic: String): Research a topic.",
            '- spotify(action: String): Control Spotify playback. Actions: "play", '
            '"pause", "next" (next track).',
        ]
    )


def dictionary_section(entries: "tuple[DictionaryEntry, ...] | list[DictionaryEntry]") -> str:
    lines = []
    for entry in entries:
        if entry.kind == "word":
            lines.append(f'- Keep word as-is: "{entry.input}"')
        elif entry.output:
            lines.append(f'- Replace "{entry.input}" with "{entry.output}"')
    if not lines:
        return ""
    return "\n".join([DICTIONARY_HEADER, *lines])


def build_system_prompt(context: "RoutingContext") -> str:
    sections = [DEFAULT_BEHAVIOUR, tool_catalog(context)]

    if dictionary := dictionary_section(context.dictionary):
        sections.append(dictionary)

    if style := context.style_examples.strip():
        sections.append(f"{STYLE_HEADER}\n{style}")

    return "\n\n".join(sections)


def strip_code_fences(content: str) -> str:
    """Remove markdown fence markers the model sometimes wraps JSON in."""
    return content.replace("```json", "").replace("```", "").strip()


def decode_arguments(raw: Any) -> ToolArgument:
    """A bare string or a single-entry string mapping becomes text; anything else is no argument."""
    if isinstance(raw, str):
        return TextArgument(raw)
    if isinstance(raw, dict) and len(raw) == 1:
        (value,) = raw.values()
        if isinstance(value, str):
            return TextArgument(value)
    return NO_ARGUMENT


def decode_tool_call(content: str) -> ToolCall:
    """
    Decode the model's reply into a ToolCall.

    Raises:
        MalformedResponse: The outer object is not ``{"tool_name": str, ...}``.
    """
    cleaned = strip_code_fences(content)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Router reply is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedResponse("Router reply is not a JSON object")

    tool_name = payload.get("tool_name")
    if not isinstance(tool_name, str) or not tool_name:
        raise MalformedResponse("Router reply has no tool_name")

    return ToolCall(tool_name=tool_name, tool_arguments=decode_arguments(payload.get("tool_arguments")))


def parse_tool_call(content: str) -> ToolCall | None:
    """Like :func:`decode_tool_call`, but a malformed reply means "no tool call"."""
    try:
        return decode_tool_call(content)
    except MalformedResponse as e:
        logger.warning("%s; content=%r", e.message, content)
        return None


class CommandRouter:
    """Asks a chat-completion model which tool the transcript calls for."""

    def __init__(
        self,
        config: "RouterConfig",
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()

    def build_request(self, transcript: str, context: "RoutingContext") -> "CompletionRequest":
        return {
            "model": self._config.model,
            "messages": [
                {"role": "system", "content": build_system_prompt(context)},
                {"role": "user", "content": transcript},
            ],
            "max_tokens": self._config.max_tokens,
        }

    def route(self, transcript: str, context: "RoutingContext") -> ToolCall | None:
        """
        Route one transcript.

        Returns:
            The decoded tool call, or None when the model produced nothing usable.

        Raises:
            MissingCredential: No router token configured.
            TransportFailure: Network error or non-2xx response.
        """
        api_key = context.api_key or self._config.api_key
        if not api_key:
            raise MissingCredential("Hugging Face", "SECRETARY_HF_TOKEN")

        body = self.build_request(transcript, context)
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        logger.info("Requesting tool call (model=%s)", self._config.model)
        t0 = time.time()
        try:
            response = self._session.post(
                self._config.url,
                headers=headers,
                json=body,
                timeout=self._config.timeout_s,
            )
        except requests.RequestException as e:
            raise TransportFailure(f"Routing request failed: {e}") from e
        logger.info("Routing done in %.2fs", time.time() - t0)

        if not response.ok:
            message = response.text or f"HTTP {response.status_code}"
            raise TransportFailure(message, status_code=response.status_code)

        content = self._extract_content(response)
        if content is None:
            return None
        return parse_tool_call(content)

    def _extract_content(self, response: requests.Response) -> str | None:
        try:
            payload = response.json()
            content = payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.warning("Unexpected completion payload: %.200s", response.text)
            return None
        if not isinstance(content, str):
            return None
        return content
