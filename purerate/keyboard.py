"""Keyboard input handling for the PureRate terminal view."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import readchar

from purerate.store import RefreshDevices

if TYPE_CHECKING:
    from purerate.store import StateStore
    from purerate.ui import PureRateUI

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles keyboard commands."""

    def __init__(self, store: StateStore, ui: PureRateUI | None = None) -> None:
        """Initialize the command handler."""
        self._store = store
        self._ui = ui

    def _sync_ui(self) -> None:
        if self._ui is not None:
            settings = self._store.settings
            self._ui.set_settings(
                enabled=settings.enabled,
                notifications_enabled=settings.notifications_enabled,
            )

    async def toggle_enabled(self) -> None:
        """Toggle automatic rate switching."""
        await self._store.toggle_enabled()
        self._sync_ui()

    async def toggle_notifications(self) -> None:
        """Toggle switch notifications."""
        await self._store.toggle_notifications()
        self._sync_ui()

    async def next_device(self) -> None:
        """Target the next output device."""
        await self._store.cycle_target_device()

    async def refresh_devices(self) -> None:
        """Re-enumerate output devices."""
        await self._store.apply(RefreshDevices())


async def keyboard_loop(store: StateStore, ui: PureRateUI | None) -> None:
    """Run the keyboard input loop until the user quits.

    Args:
        store: State store receiving the commands.
        ui: Optional UI instance.
    """
    handler = CommandHandler(store, ui)

    # Key dispatch table: key -> (highlight_name, async action)
    shortcuts: dict[str, tuple[str, Callable[[], Awaitable[None]]]] = {
        "e": ("enable", handler.toggle_enabled),
        "n": ("notify", handler.toggle_notifications),
        "d": ("device", handler.next_device),
        "r": ("refresh", handler.refresh_devices),
    }

    if not sys.stdin.isatty():
        logger.info("Running without interactive input")
        await asyncio.Event().wait()
        return

    loop = asyncio.get_running_loop()

    while True:
        try:
            # Run blocking readkey in executor to not block the event loop
            key = await loop.run_in_executor(None, readchar.readkey)
        except (asyncio.CancelledError, KeyboardInterrupt):
            break

        # Handle Ctrl+C
        if key == "\x03":
            break

        if key in ("q", "Q"):
            if ui:
                ui.highlight_shortcut("quit")
            break

        action = shortcuts.get(key.lower())
        if action:
            highlight_name, action_handler = action
            if ui:
                ui.highlight_shortcut(highlight_name)
            await action_handler()
