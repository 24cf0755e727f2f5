"""Detect whether the foreground app has an editable text control focused.

The probe is a heuristic built on the macOS Accessibility API:

1. read the system-wide focused UI element (unreadable -> ``UNKNOWN``);
2. a text-editing role means ``FOCUSED_TEXT_INPUT``;
3. otherwise a settable ``AXValue`` also means ``FOCUSED_TEXT_INPUT``;
4. anything else is ``NO_FOCUSED_TEXT_INPUT``.

Callers treat ``UNKNOWN`` like a focused text input so that dictation keeps
working when introspection is unavailable.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol

from secretary.models import FocusState

logger = logging.getLogger(__name__)

AX_SUCCESS = 0
AX_FOCUSED_UI_ELEMENT = "AXFocusedUIElement"
AX_ROLE = "AXRole"
AX_VALUE = "AXValue"

TEXT_ROLES = frozenset(
    {
        "AXTextField",
        "AXTextArea",
        "AXComboBox",
        "AXSearchField",
        "AXWebArea",
    }
)


class FocusInspector(Protocol):
    def focus_state(self) -> FocusState: ...


class AccessibilityBackend(Protocol):
    """The three AX calls the inspector needs, each returning ``(error, value)``."""

    def focused_element(self) -> tuple[int, Any]: ...

    def attribute(self, element: Any, name: str) -> tuple[int, Any]: ...

    def is_settable(self, element: Any, name: str) -> tuple[int, bool]: ...


class PyObjCAccessibility:
    """AccessibilityBackend backed by pyobjc's ApplicationServices bindings."""

    def __init__(self) -> None:
        import ApplicationServices

        self._ax = ApplicationServices
        self._system_wide = ApplicationServices.AXUIElementCreateSystemWide()

    def is_trusted(self) -> bool:
        return bool(self._ax.AXIsProcessTrusted())

    def focused_element(self) -> tuple[int, Any]:
        return self.attribute(self._system_wide, AX_FOCUSED_UI_ELEMENT)

    def attribute(self, element: Any, name: str) -> tuple[int, Any]:
        err, value = self._ax.AXUIElementCopyAttributeValue(element, name, None)
        return int(err), value

    def is_settable(self, element: Any, name: str) -> tuple[int, bool]:
        err, settable = self._ax.AXUIElementIsAttributeSettable(element, name, None)
        return int(err), bool(settable)


class AccessibilityFocusInspector:
    def __init__(self, backend: AccessibilityBackend | None = None) -> None:
        self._backend = backend or PyObjCAccessibility()

    def focus_state(self) -> FocusState:
        try:
            return self._probe()
        except Exception as e:
            logger.warning("Focus probe failed: %s", e)
            return FocusState.UNKNOWN

    def _probe(self) -> FocusState:
        err, element = self._backend.focused_element()
        if err != AX_SUCCESS or element is None:
            logger.info("No readable focused element (AX error %d)", err)
            return FocusState.UNKNOWN

        err, role = self._backend.attribute(element, AX_ROLE)
        if err != AX_SUCCESS or role is None:
            logger.info("Focused element has no readable role (AX error %d)", err)
            return FocusState.UNKNOWN

        role = str(role)
        logger.debug("Focused element role: %s", role)
        if role in TEXT_ROLES:
            return FocusState.FOCUSED_TEXT_INPUT

        err, settable = self._backend.is_settable(element, AX_VALUE)
        if err == AX_SUCCESS and settable:
            return FocusState.FOCUSED_TEXT_INPUT

        return FocusState.NO_FOCUSED_TEXT_INPUT


class NullFocusInspector:
    """Used off macOS and in tests: focus is never known."""

    def focus_state(self) -> FocusState:
        return FocusState.UNKNOWN


def create_focus_inspector() -> FocusInspector:
    if sys.platform != "darwin":
        return NullFocusInspector()
    backend = PyObjCAccessibility()
    if not backend.is_trusted():
        logger.warning("Accessibility access not granted; focus will be reported as unknown")
    return AccessibilityFocusInspector(backend)
