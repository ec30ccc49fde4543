"""Reading recent media diagnostics from the macOS unified log."""

from __future__ import annotations

import json
import logging
import subprocess
from datetime import datetime, timedelta
from typing import Final, Protocol

logger = logging.getLogger(__name__)

LOG_BINARY: Final = "/usr/bin/log"
DEFAULT_PROCESS: Final = "Music"
MEDIA_SUBSYSTEMS: Final[tuple[str, ...]] = (
    "com.apple.Music",
    "com.apple.coremedia",
    "com.apple.coreaudio",
)
MEDIA_SUBSYSTEM_PREFIX: Final = "com.apple.audio"

# Upper bound for a single `log show` run; it normally finishes well under a second.
_QUERY_TIMEOUT_SECONDS: Final = 15.0
_START_FORMAT: Final = "%Y-%m-%d %H:%M:%S"


class LogSourceError(Exception):
    """The log backend could not be read (missing binary, access denied, ...)."""


class LogSource(Protocol):
    """Yields raw diagnostic messages from a trailing time window."""

    def fetch(self, window_seconds: float) -> list[str]: ...


def build_predicate(process: str) -> str:
    """Build the `log` predicate selecting audio/media subsystems of one process."""
    subsystems = " OR ".join(f"subsystem == '{name}'" for name in MEDIA_SUBSYSTEMS)
    return (
        f"({subsystems} OR subsystem BEGINSWITH '{MEDIA_SUBSYSTEM_PREFIX}') "
        f"AND process == '{process}'"
    )


def parse_ndjson_messages(output: str) -> list[str]:
    """Extract event messages, in order, from `log show --style ndjson` output."""
    messages: list[str] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(record, dict):
            continue
        message = record.get("eventMessage")
        if isinstance(message, str) and message:
            messages.append(message)
    return messages


class OSLogSource:
    """LogSource backed by the `log show` command line tool."""

    def __init__(self, process: str = DEFAULT_PROCESS, binary: str = LOG_BINARY) -> None:
        self._binary = binary
        self._predicate = build_predicate(process)

    @property
    def predicate(self) -> str:
        return self._predicate

    def fetch(self, window_seconds: float) -> list[str]:
        """Return messages logged within the last `window_seconds`.

        Raises:
            LogSourceError: If the log tool is missing, fails or times out.
        """
        start = datetime.now() - timedelta(seconds=window_seconds)
        cmd = [
            self._binary,
            "show",
            "--style",
            "ndjson",
            "--info",
            "--debug",
            "--start",
            start.strftime(_START_FORMAT),
            "--predicate",
            self._predicate,
        ]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=_QUERY_TIMEOUT_SECONDS,
            )
        except FileNotFoundError as e:
            raise LogSourceError(f"Log tool not found: {self._binary}") from e
        except subprocess.TimeoutExpired as e:
            raise LogSourceError("Timed out reading the system log") from e
        except OSError as e:
            raise LogSourceError(f"Failed to read the system log: {e}") from e

        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise LogSourceError(f"Failed to read the system log: {detail}")

        messages = parse_ndjson_messages(result.stdout)
        logger.debug("Fetched %d log messages", len(messages))
        return messages
