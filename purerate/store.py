"""Typed entry point for user-initiated state changes.

Each mutation updates the persisted settings and performs its side effect
(start/stop monitoring, retarget the engine, re-enumerate devices) as one
unit, so the behavior is identical whether it comes from the keyboard, the
command line or a test.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from purerate.engine import MonitorState, ReconciliationEngine
from purerate.monitor import MonitorLoop
from purerate.settings import SettingsManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SetEnabled:
    """Turn automatic rate switching on or off."""

    enabled: bool


@dataclass(frozen=True, slots=True)
class SetNotificationsEnabled:
    """Turn switch notifications on or off."""

    enabled: bool


@dataclass(frozen=True, slots=True)
class SetTargetDevice:
    """Pick the device to reconcile; None follows the system default."""

    device_id: int | None


@dataclass(frozen=True, slots=True)
class RefreshDevices:
    """Re-enumerate the available output devices."""


Mutation = SetEnabled | SetNotificationsEnabled | SetTargetDevice | RefreshDevices


class StateStore:
    """Applies mutations to settings, engine and monitor loop."""

    def __init__(
        self,
        settings: SettingsManager,
        engine: ReconciliationEngine,
        monitor: MonitorLoop,
    ) -> None:
        self._settings = settings
        self._engine = engine
        self._monitor = monitor

    @property
    def settings(self) -> SettingsManager:
        return self._settings

    @property
    def state(self) -> MonitorState:
        return self._engine.snapshot()

    async def start(self) -> None:
        """Bring engine and monitor in line with the persisted settings."""
        self._engine.notifications_enabled = self._settings.notifications_enabled
        await self._monitor.run_in_worker(self._engine.refresh_devices)
        await self._monitor.run_in_worker(
            self._engine.set_target_device, self._settings.target_device_id
        )
        if self._settings.enabled:
            await self._monitor.enable()

    async def apply(self, mutation: Mutation) -> None:
        """Apply a single mutation and its side effects."""
        match mutation:
            case SetEnabled(enabled=enabled):
                self._settings.update(enabled=enabled)
                if enabled:
                    await self._monitor.enable()
                else:
                    await self._monitor.disable()
            case SetNotificationsEnabled(enabled=enabled):
                self._settings.update(notifications_enabled=enabled)
                self._engine.notifications_enabled = enabled
                logger.info("Notifications %s", "enabled" if enabled else "disabled")
            case SetTargetDevice(device_id=device_id):
                self._settings.update(target_device_id=device_id)
                await self._monitor.run_in_worker(self._engine.set_target_device, device_id)
                logger.info("Target device: %s", device_id if device_id is not None else "default")
            case RefreshDevices():
                await self._monitor.run_in_worker(self._engine.refresh_devices)
            case _:
                raise TypeError(f"Unknown mutation: {mutation!r}")

    async def toggle_enabled(self) -> None:
        await self.apply(SetEnabled(not self._settings.enabled))

    async def toggle_notifications(self) -> None:
        await self.apply(SetNotificationsEnabled(not self._settings.notifications_enabled))

    async def cycle_target_device(self) -> None:
        """Move the target to the next device; wraps around through the system default."""
        choices: list[int | None] = [None]
        choices.extend(device.device_id for device in self.state.available_devices)
        current = self._settings.target_device_id
        index = choices.index(current) if current in choices else 0
        await self.apply(SetTargetDevice(choices[(index + 1) % len(choices)]))
