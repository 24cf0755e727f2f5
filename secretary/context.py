"""Gathers the read-only environment snapshot the router needs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from secretary.models import DictionaryEntry, RoutingContext

if TYPE_CHECKING:
    from secretary.config import RouterConfig
    from secretary.desktop import Desktop

logger = logging.getLogger(__name__)


def load_dictionary(path: Path | None) -> tuple[DictionaryEntry, ...]:
    """Read ``[{"kind": "word"|"correction", "input": ..., "output": ...}, ...]``."""
    if path is None or not path.exists():
        return ()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, OSError) as e:
        logger.warning("Ignoring dictionary file %s: %s", path, e)
        return ()
    if not isinstance(data, list):
        logger.warning("Ignoring dictionary file %s: expected a list", path)
        return ()

    entries = []
    for item in data:
        if not isinstance(item, dict):
            continue
        entry = DictionaryEntry.from_dict(item)
        if entry is not None:
            entries.append(entry)
    return tuple(entries)


def load_style_examples(path: Path | None) -> str:
    if path is None or not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8").strip()
    except (UnicodeDecodeError, OSError) as e:
        logger.warning("Ignoring style file %s: %s", path, e)
        return ""


class ContextProvider:
    def __init__(self, config: "RouterConfig", desktop: "Desktop") -> None:
        self._config = config
        self._desktop = desktop

    def snapshot(self) -> RoutingContext:
        return RoutingContext(
            api_key=self._config.api_key,
            default_browser=self._desktop.default_browser_name(),
            open_apps=tuple(sorted(app.name for app in self._desktop.running_applications())),
            installed_apps=tuple(self._desktop.installed_application_names()),
            dictionary=load_dictionary(self._config.dictionary_file),
            style_examples=load_style_examples(self._config.style_file),
        )
