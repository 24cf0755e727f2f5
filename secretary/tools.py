"""Executes routed tool calls against the desktop."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Callable
from urllib.parse import quote

from secretary.errors import CLIPBOARD_NOTICE, ActionFailure, SecretaryError, UnknownTool
from secretary.models import ExecutionResult, FocusState, TextArgument

if TYPE_CHECKING:
    from secretary.desktop import Desktop
    from secretary.focus import FocusInspector
    from secretary.models import ToolArgument, ToolCall
    from secretary.output import OutputHandler

logger = logging.getLogger(__name__)

SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
BARE_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9-]+\.[a-zA-Z]{2,}")

SPOTIFY_COMMANDS = {
    "play": 'tell application "Spotify" to play',
    "pause": 'tell application "Spotify" to pause',
    "next": 'tell application "Spotify" to next track',
}

Handler = Callable[["ToolArgument"], "str | None"]


def looks_like_url(target: str) -> bool:
    target = target.strip()
    if SCHEME_RE.match(target):
        return True
    if target.lower().startswith("www."):
        return True
    return BARE_DOMAIN_RE.match(target) is not None


def normalize_url(target: str) -> str:
    target = target.strip()
    if SCHEME_RE.match(target):
        return target
    return f"https://{target}"


def search_url(base: str, topic: str) -> str:
    return base + quote(topic, safe="")


def _require_text(argument: "ToolArgument", tool_name: str) -> str:
    if isinstance(argument, TextArgument):
        return argument.value
    raise ActionFailure(f"'{tool_name}' needs a text argument")


class ToolExecutor:
    """Fixed dispatch table from tool name to side effect.

    :meth:`execute` is the only catch boundary: whatever a handler raises
    comes back as a failed :class:`ExecutionResult`, never as an exception.
    """

    def __init__(
        self,
        desktop: "Desktop",
        focus_inspector: "FocusInspector",
        paste_output: "OutputHandler",
        clipboard_output: "OutputHandler",
        search_base_url: str,
    ) -> None:
        self._desktop = desktop
        self._focus = focus_inspector
        self._paste = paste_output
        self._clipboard = clipboard_output
        self._search_base_url = search_base_url
        self._handlers: dict[str, Handler] = {
            "type": self._type,
            "open_app": self._open_app,
            "switch_to": self._switch_to,
            "deep_research": self._deep_research,
            "spotify": self._spotify,
        }

    @property
    def tool_names(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def execute(self, call: "ToolCall") -> ExecutionResult:
        logger.info("Executing %s(%r)", call.tool_name, call.text)
        try:
            handler = self._handlers.get(call.tool_name)
            if handler is None:
                raise UnknownTool(call.tool_name)
            notice = handler(call.tool_arguments)
        except SecretaryError as e:
            logger.error("Tool %s failed: %s", call.tool_name, e.message)
            return ExecutionResult(
                call.tool_name, error=f"Tool '{call.tool_name}' failed: {e.message}"
            )
        except Exception as e:
            logger.exception("Tool %s raised", call.tool_name)
            reason = str(e) or type(e).__name__
            return ExecutionResult(
                call.tool_name, error=f"Tool '{call.tool_name}' failed: {reason}"
            )
        return ExecutionResult(call.tool_name, notice=notice)

    def _type(self, argument: "ToolArgument") -> str | None:
        text = _require_text(argument, "type")
        focus = self._focus.focus_state()
        logger.info("Focus state: %s", focus.value)

        if focus == FocusState.NO_FOCUSED_TEXT_INPUT:
            self._clipboard.output(text)
            return CLIPBOARD_NOTICE

        self._paste.output(text)
        return None

    def _open_app(self, argument: "ToolArgument") -> None:
        target = _require_text(argument, "open_app").strip()
        if not target:
            raise ActionFailure("No app or URL given")

        if looks_like_url(target):
            url = normalize_url(target)
            if not self._desktop.open_url(url):
                raise ActionFailure(f"Invalid URL: {target}")
            return None

        if self._desktop.open_bundle(target):
            return None

        if self._desktop.launch_by_name(target) != 0:
            raise ActionFailure(f"Could not open app: {target}")
        return None

    def _switch_to(self, argument: "ToolArgument") -> None:
        name = _require_text(argument, "switch_to").strip()
        needle = name.lower()
        if needle:
            for app in self._desktop.running_applications():
                if needle in app.name.lower():
                    logger.info("Activating %s", app.name)
                    app.activate()
                    return None
        raise ActionFailure(f"No running app found: {name}")

    def _deep_research(self, argument: "ToolArgument") -> None:
        topic = _require_text(argument, "deep_research")
        url = search_url(self._search_base_url, topic)
        if not self._desktop.open_url(url):
            logger.debug("Search URL was rejected: %s", url)
        return None

    def _spotify(self, argument: "ToolArgument") -> None:
        action = _require_text(argument, "spotify").strip()
        command = SPOTIFY_COMMANDS.get(action.lower())
        if command is None:
            raise ActionFailure(
                f"Unknown Spotify action: {action}. Use play, pause, or next."
            )
        if self._desktop.run_applescript(command) != 0:
            raise ActionFailure("Failed to control Spotify")
        return None
