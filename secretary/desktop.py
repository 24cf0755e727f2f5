"""Thin wrappers around the OS calls the tools need."""

from __future__ import annotations

import logging
import subprocess
import sys
import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol

from secretary.errors import ActionFailure

logger = logging.getLogger(__name__)

APPLICATIONS_DIR = Path("/Applications")
DEFAULT_BROWSER = "Safari"
BROWSER_PROBE_URL = "http://apple.com"
ACTIVATION_POLICY_REGULAR = 0
ACTIVATE_IGNORING_OTHER_APPS = 1 << 1


@dataclass
class RunningApplication:
    name: str
    activate: Callable[[], Any]


class Desktop(Protocol):
    def open_url(self, url: str) -> bool: ...

    def open_bundle(self, identifier: str) -> bool: ...

    def launch_by_name(self, name: str) -> int: ...

    def running_applications(self) -> list[RunningApplication]: ...

    def run_applescript(self, script: str) -> int: ...

    def default_browser_name(self) -> str: ...

    def installed_application_names(self) -> list[str]: ...


def installed_application_names(directory: Path = APPLICATIONS_DIR) -> list[str]:
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        logger.debug("Cannot list %s: %s", directory, e)
        return []
    return sorted(p.stem for p in entries if p.suffix == ".app")


def _run(command: list[str]) -> int:
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ActionFailure(f"{command[0]} is not available") from e
    if result.returncode != 0:
        logger.warning("%s exited with %d: %s", command[0], result.returncode, result.stderr.strip())
    return result.returncode


class MacDesktop:
    """NSWorkspace for lookups, ``open``/``osascript`` for launches and scripting."""

    def __init__(self) -> None:
        import AppKit

        self._appkit = AppKit
        self._workspace = AppKit.NSWorkspace.sharedWorkspace()

    def open_url(self, url: str) -> bool:
        ns_url = self._appkit.NSURL.URLWithString_(url)
        if ns_url is None:
            return False
        return bool(self._workspace.openURL_(ns_url))

    def open_bundle(self, identifier: str) -> bool:
        app_url = self._workspace.URLForApplicationWithBundleIdentifier_(identifier)
        if app_url is None:
            return False
        return bool(self._workspace.openURL_(app_url))

    def launch_by_name(self, name: str) -> int:
        return _run(["/usr/bin/open", "-a", name])

    def running_applications(self) -> list[RunningApplication]:
        apps = []
        for app in self._workspace.runningApplications():
            if app.activationPolicy() != ACTIVATION_POLICY_REGULAR:
                continue
            name = app.localizedName()
            if not name:
                continue
            apps.append(
                RunningApplication(
                    name=str(name),
                    activate=lambda app=app: app.activateWithOptions_(ACTIVATE_IGNORING_OTHER_APPS),
                )
            )
        return apps

    def run_applescript(self, script: str) -> int:
        return _run(["/usr/bin/osascript", "-e", script])

    def default_browser_name(self) -> str:
        probe = self._appkit.NSURL.URLWithString_(BROWSER_PROBE_URL)
        app_url = self._workspace.URLForApplicationToOpenURL_(probe)
        if app_url is None:
            return DEFAULT_BROWSER
        name = self._appkit.NSFileManager.defaultManager().displayNameAtPath_(app_url.path())
        return str(name).removesuffix(".app") if name else DEFAULT_BROWSER

    def installed_application_names(self) -> list[str]:
        return installed_application_names()


class GenericDesktop:
    """Fallback for platforms without NSWorkspace: URLs only."""

    def open_url(self, url: str) -> bool:
        return webbrowser.open(url)

    def open_bundle(self, identifier: str) -> bool:
        return False

    def launch_by_name(self, name: str) -> int:
        raise ActionFailure(f"Launching apps is not supported on {sys.platform}")

    def running_applications(self) -> list[RunningApplication]:
        return []

    def run_applescript(self, script: str) -> int:
        raise ActionFailure(f"AppleScript is not available on {sys.platform}")

    def default_browser_name(self) -> str:
        return DEFAULT_BROWSER

    def installed_application_names(self) -> list[str]:
        return installed_application_names()


def create_desktop() -> Desktop:
    if sys.platform == "darwin":
        return MacDesktop()
    return GenericDesktop()
