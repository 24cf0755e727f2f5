"""Output handlers that deliver text to the focused app or the clipboard."""

from __future__ import annotations

import logging
import sys
import threading
from abc import ABC, abstractmethod
from typing import Any

import pyperclip

logger = logging.getLogger(__name__)


class OutputHandler(ABC):
    """Abstract base class for output handlers."""

    @abstractmethod
    def output(self, text: str) -> None:
        """Deliver the text."""
        ...


class ClipboardOutput(OutputHandler):
    """Outputs text to the system clipboard."""

    def output(self, text: str) -> None:
        """Copy text to clipboard."""
        pyperclip.copy(text)


class PasteOutput(OutputHandler):
    """Pastes text into the focused control, then puts the old clipboard back.

    The restore runs on a timer after ``restore_delay_s``. A second paste
    landing inside that window can see the restored contents; that race is
    accepted.

    The pynput controller is created on first use, since importing pynput
    needs a display connection on X11.
    """

    def __init__(
        self,
        restore_delay_s: float = 0.1,
        controller: Any = None,
        modifier: Any = None,
    ) -> None:
        self._restore_delay_s = restore_delay_s
        self._controller = controller
        self._modifier = modifier
        self._restore_timer: threading.Timer | None = None

    def _keyboard(self) -> tuple[Any, Any]:
        if self._controller is None or self._modifier is None:
            from pynput.keyboard import Controller, Key

            if self._controller is None:
                self._controller = Controller()
            if self._modifier is None:
                self._modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
        return self._controller, self._modifier

    def output(self, text: str) -> None:
        """Paste text into the focused window via the clipboard."""
        controller, modifier = self._keyboard()
        previous = pyperclip.paste()
        pyperclip.copy(text)

        try:
            with controller.pressed(modifier):
                controller.press("v")
                controller.release("v")
        except Exception as e:
            logger.error("Failed to synthesize paste: %s", e)
            raise
        finally:
            if previous:
                self._restore_timer = threading.Timer(
                    self._restore_delay_s, self._restore, args=(previous,)
                )
                self._restore_timer.daemon = True
                self._restore_timer.start()

    def wait_for_restore(self, timeout: float | None = None) -> None:
        if self._restore_timer is not None:
            self._restore_timer.join(timeout)

    def _restore(self, previous: str) -> None:
        try:
            pyperclip.copy(previous)
        except pyperclip.PyperclipException as e:
            logger.warning("Could not restore clipboard: %s", e)
