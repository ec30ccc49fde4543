"""Core application wiring for PureRate."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from dataclasses import dataclass

from purerate.coreaudio import CoreAudioUnavailableError
from purerate.devices import AudioDeviceManager, DeviceController, resolve_audio_device
from purerate.engine import MonitorState, RateChangeEvent, ReconciliationEngine
from purerate.keyboard import keyboard_loop
from purerate.log_source import DEFAULT_PROCESS, LogSource, OSLogSource
from purerate.monitor import POLL_INTERVAL_SECONDS, MonitorLoop
from purerate.notifier import Notifier, OSAScriptNotifier
from purerate.settings import get_settings_manager
from purerate.store import StateStore
from purerate.ui import PureRateUI
from purerate.utils import create_task, format_rate

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Configuration for the PureRate application."""

    audio_device: str | None = None
    process: str = DEFAULT_PROCESS
    interval: float = POLL_INTERVAL_SECONDS
    log_level: str = "INFO"
    headless: bool = False
    notifications: bool | None = None
    config_dir: str | None = None


def describe_event(event: RateChangeEvent) -> str:
    """Return a one-line description of a history event."""
    device = event.device_name or "device"
    source = f"{format_rate(event.previous_rate)} -> " if event.previous_rate is not None else ""
    if event.success:
        return f"Switched {device}: {source}{format_rate(event.target_rate)}"
    return f"Failed to switch {device} to {format_rate(event.target_rate)}"


class EventPrinter:
    """Prints history additions and error changes in headless mode."""

    def __init__(self) -> None:
        self._last_event: RateChangeEvent | None = None
        self._last_error: str | None = None

    def __call__(self, state: MonitorState) -> None:
        newest = state.history[0] if state.history else None
        if newest is not None and newest is not self._last_event:
            self._last_event = newest
            print(describe_event(newest), flush=True)  # noqa: T201
        if state.last_error != self._last_error:
            self._last_error = state.last_error
            if state.last_error:
                print(f"Error: {state.last_error}", flush=True)  # noqa: T201


class PureRateApp:
    """Main PureRate application."""

    def __init__(
        self,
        config: AppConfig,
        *,
        controller: DeviceController | None = None,
        log_source: LogSource | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        """Initialize the application.

        The collaborators default to the macOS implementations.
        """
        self._config = config
        self._controller = controller
        self._log_source = log_source
        self._notifier = notifier
        self._ui: PureRateUI | None = None

    def _print_event(self, message: str) -> None:
        """Print an event message when no live display is active."""
        if self._ui is None:
            print(message, flush=True)  # noqa: T201

    async def run(self) -> int:  # noqa: PLR0915
        """Run the application."""
        config = self._config
        interactive = sys.stdin.isatty() and not config.headless

        # With the live display up, only show WARNING and above unless DEBUG was asked for
        if interactive and config.log_level != "DEBUG":
            logging.basicConfig(level=logging.WARNING)
        else:
            logging.basicConfig(level=getattr(logging, config.log_level))

        try:
            controller = self._controller or AudioDeviceManager()
        except CoreAudioUnavailableError as e:
            logger.error("%s", e)
            return 1

        settings = await get_settings_manager(config.config_dir)
        engine = ReconciliationEngine(controller, self._notifier or OSAScriptNotifier())
        monitor = MonitorLoop(
            engine,
            self._log_source or OSLogSource(config.process),
            interval=config.interval,
        )
        store = StateStore(settings, engine, monitor)

        try:
            if config.audio_device is not None:
                devices = await monitor.run_in_worker(controller.list_output_devices)
                try:
                    device_id = resolve_audio_device(devices, config.audio_device)
                except ValueError as e:
                    logger.error("Audio device error: %s", e)
                    return 1
                settings.update(target_device_id=device_id)
            if config.notifications is not None:
                settings.update(notifications_enabled=config.notifications)

            if interactive:
                self._ui = PureRateUI()
                self._ui.set_settings(
                    enabled=settings.enabled,
                    notifications_enabled=settings.notifications_enabled,
                )
                monitor.add_listener(self._ui.set_monitor_state)
                self._ui.start()
            else:
                monitor.add_listener(EventPrinter())

            async def wait_forever() -> None:
                await asyncio.Event().wait()

            if interactive:
                main_task = create_task(keyboard_loop(store, self._ui))
            else:
                main_task = create_task(wait_forever())

            loop = asyncio.get_running_loop()

            def signal_handler() -> None:
                logger.debug("Received interrupt signal, shutting down...")
                main_task.cancel()

            # Signal handlers aren't supported on this platform (e.g., Windows)
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(signal.SIGINT, signal_handler)
                loop.add_signal_handler(signal.SIGTERM, signal_handler)

            try:
                await store.start()
                state = store.state
                self._print_event(
                    f"Watching '{config.process}' on "
                    f"{state.active_device_name or 'default output'} "
                    f"({format_rate(state.current_sample_rate)})"
                )
                if not settings.enabled:
                    self._print_event("Auto-switching is disabled")
                await main_task
            except asyncio.CancelledError:
                logger.debug("Main task cancelled")
            finally:
                with contextlib.suppress(NotImplementedError):
                    loop.remove_signal_handler(signal.SIGINT)
                    loop.remove_signal_handler(signal.SIGTERM)
                if not main_task.done():
                    main_task.cancel()
        finally:
            if self._ui is not None:
                self._ui.stop()
                self._ui = None
            await monitor.close()
            await settings.flush()
            logger.info("PureRate stopped")

        return 0
