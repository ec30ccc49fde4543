"""Settings persistence for PureRate.

This module provides persistent storage for user settings. Settings are
loaded from disk once at startup and saved with debouncing.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class _UndefinedType:
    """Singleton for undefined/not-passed values."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _UndefinedType()

# Debounce delay for saving settings
SAVE_DEBOUNCE_SECONDS = 5.0

SETTINGS_FILE_NAME = "settings.json"


@dataclass
class Settings:
    """All persistent settings for PureRate."""

    enabled: bool = True
    notifications_enabled: bool = False
    target_device_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary for serialization."""
        return {
            "enabled": self.enabled,
            "notifications_enabled": self.notifications_enabled,
            "target_device_id": self.target_device_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create settings from a dictionary, ignoring values of the wrong type."""
        enabled = data.get("enabled", True)
        notifications = data.get("notifications_enabled", False)
        target = data.get("target_device_id")
        return cls(
            enabled=enabled if isinstance(enabled, bool) else True,
            notifications_enabled=notifications if isinstance(notifications, bool) else False,
            target_device_id=(
                target if isinstance(target, int) and not isinstance(target, bool) else None
            ),
        )


class SettingsManager:
    """Manages settings with debounced disk persistence.

    Changes are saved after a short period of inactivity, or immediately
    on flush().
    """

    def __init__(self, settings_file: Path) -> None:
        """Initialize the settings manager.

        Args:
            settings_file: Path to the settings file.
        """
        self._settings_file = settings_file
        self._settings = Settings()
        self._debounce_save_handle: asyncio.TimerHandle | None = None

    async def load(self) -> None:
        """Load settings from disk."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._load)

    @property
    def settings_file(self) -> Path:
        return self._settings_file

    @property
    def enabled(self) -> bool:
        """Get whether automatic rate switching is enabled."""
        return self._settings.enabled

    @property
    def notifications_enabled(self) -> bool:
        """Get whether switch notifications are enabled."""
        return self._settings.notifications_enabled

    @property
    def target_device_id(self) -> int | None:
        """Get the target device id, or None for the system default."""
        return self._settings.target_device_id

    def update(
        self,
        *,
        enabled: bool | _UndefinedType = UNDEFINED,
        notifications_enabled: bool | _UndefinedType = UNDEFINED,
        target_device_id: int | None | _UndefinedType = UNDEFINED,
    ) -> bool:
        """Update settings fields. Only changed fields trigger a save.

        Args:
            enabled: New enabled state, or UNDEFINED to keep current.
            notifications_enabled: New notification state, or UNDEFINED to keep current.
            target_device_id: New target device (None for system default),
                or UNDEFINED to keep current.

        Returns:
            True if any field changed.
        """
        changed = False
        fields = {
            "enabled": enabled,
            "notifications_enabled": notifications_enabled,
            "target_device_id": target_device_id,
        }
        for name, value in fields.items():
            if not isinstance(value, _UndefinedType):
                if getattr(self._settings, name) != value:
                    setattr(self._settings, name, value)
                    changed = True

        if changed:
            self._schedule_save()
        return changed

    async def flush(self) -> None:
        """Immediately save any pending changes to disk."""
        if self._debounce_save_handle is not None:
            self._debounce_save_handle.cancel()
            self._debounce_save_handle = None
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._save)

    def _schedule_save(self) -> None:
        """Schedule a debounced save operation."""
        # Cancel existing timer if any
        if self._debounce_save_handle is not None:
            self._debounce_save_handle.cancel()

        loop = asyncio.get_running_loop()
        self._debounce_save_handle = loop.call_later(
            SAVE_DEBOUNCE_SECONDS, self._debounced_save, loop
        )

    def _debounced_save(self, loop: asyncio.AbstractEventLoop) -> None:
        """Called by the timer to save settings in executor."""
        self._debounce_save_handle = None
        loop.run_in_executor(None, self._save)

    def _load(self) -> None:
        """Load settings from the settings file (blocking I/O)."""
        if not self._settings_file.exists():
            logger.debug("Settings file does not exist: %s", self._settings_file)
            return

        try:
            data = json.loads(self._settings_file.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load settings from %s: %s", self._settings_file, e)
            return

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed settings in %s", self._settings_file)
            return

        self._settings = Settings.from_dict(data)
        logger.info(
            "Loaded settings from %s: enabled=%s, notifications=%s, device=%s",
            self._settings_file,
            self._settings.enabled,
            self._settings.notifications_enabled,
            self._settings.target_device_id,
        )

    def _save(self) -> None:
        """Save settings to the settings file (blocking I/O)."""
        try:
            self._settings_file.parent.mkdir(parents=True, exist_ok=True)
            self._settings_file.write_text(json.dumps(self._settings.to_dict(), indent=2) + "\n")
            logger.debug("Saved settings to %s", self._settings_file)
        except OSError as e:
            logger.warning("Failed to save settings to %s: %s", self._settings_file, e)


async def get_settings_manager(config_dir: Path | str | None = None) -> SettingsManager:
    """Return a SettingsManager for `config_dir` with the saved settings loaded.

    The directory defaults to ~/.config/purerate and is created on first save.
    """
    if config_dir is None:
        config_dir = Path.home() / ".config" / "purerate"
    elif isinstance(config_dir, str):
        config_dir = Path(config_dir)
    manager = SettingsManager(config_dir / SETTINGS_FILE_NAME)
    await manager.load()
    return manager
