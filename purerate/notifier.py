"""Desktop notifications for completed rate switches."""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivers a short notice to the user. Best-effort."""

    def notify(self, title: str, body: str) -> None: ...


class NullNotifier:
    """Notifier that drops every notice."""

    def notify(self, title: str, body: str) -> None:
        return None


def _applescript_string(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class OSAScriptNotifier:
    """Posts notifications through `osascript` (Notification Center)."""

    def __init__(self, binary: str = "osascript") -> None:
        self._binary = binary

    def notify(self, title: str, body: str) -> None:
        script = (
            f"display notification {_applescript_string(body)} "
            f"with title {_applescript_string(title)}"
        )
        try:
            subprocess.run(
                [self._binary, "-e", script],
                check=False,
                capture_output=True,
                timeout=5.0,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Failed to deliver notification: %s", e)
