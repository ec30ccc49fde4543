"""Reconciliation of the output device's sample rate with detected candidates.

The engine owns the observable MonitorState. It is driven from a single
worker thread (see purerate.monitor); every mutation replaces the state with
a new immutable snapshot and hands it to the registered listeners.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Final

from purerate.devices import AudioDevice, DeviceController
from purerate.notifier import Notifier, NullNotifier
from purerate.utils import format_rate_precise

logger = logging.getLogger(__name__)

HISTORY_LIMIT: Final = 30
NOTIFICATION_TITLE: Final = "PureRate"
NO_DEVICE_ERROR: Final = "No output device available"

StateListener = Callable[["MonitorState"], None]


@dataclass(frozen=True, slots=True)
class RateChangeEvent:
    """A single recorded reconciliation attempt."""

    timestamp: datetime
    previous_rate: float | None
    target_rate: float
    device_name: str | None
    success: bool


@dataclass(frozen=True, slots=True)
class MonitorState:
    """Immutable snapshot of everything the presentation layer can observe."""

    current_sample_rate: float | None = None
    active_device_name: str | None = None
    bit_depth: int | None = None
    supported_rates: tuple[float, ...] = ()
    monitoring_active: bool = False
    last_error: str | None = None
    total_switches: int = 0
    history: tuple[RateChangeEvent, ...] = ()
    available_devices: tuple[AudioDevice, ...] = ()
    target_device_id: int | None = None


class ReconciliationEngine:
    """Applies candidate rates to the target device and records the outcome.

    Candidates equal to the last observed one are discarded, so a player
    repeating the same diagnostic line every poll does not cause repeated
    hardware writes. A failed write is not retried until a different
    candidate shows up.
    """

    def __init__(
        self,
        controller: DeviceController,
        notifier: Notifier | None = None,
        *,
        history_limit: int = HISTORY_LIMIT,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the engine.

        Args:
            controller: Hardware access used for reads and writes.
            notifier: Receives switch notices when notifications are enabled.
            history_limit: Maximum number of events kept in the history.
            clock: Source of event timestamps.
        """
        self._controller = controller
        self._notifier: Notifier = notifier if notifier is not None else NullNotifier()
        self._history_limit = history_limit
        self._clock = clock
        self._state = MonitorState()
        self._last_observed_rate: float | None = None
        self._log_error: str | None = None
        self._listeners: list[StateListener] = []
        self.notifications_enabled = False

    @property
    def last_observed_rate(self) -> float | None:
        return self._last_observed_rate

    @property
    def target_device_id(self) -> int | None:
        return self._state.target_device_id

    def snapshot(self) -> MonitorState:
        """Return the current immutable state."""
        return self._state

    def add_listener(self, callback: StateListener) -> Callable[[], None]:
        """Register a state listener. Returns a function that removes it."""
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _publish(self, **changes: Any) -> None:
        if not changes:
            return
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Error in state listener")

    def _resolve_device(self) -> int | None:
        if self._state.target_device_id is not None:
            return self._state.target_device_id
        return self._controller.default_output_device()

    # --- Reconciliation ---

    def process_candidate(self, rate: float) -> bool:
        """Feed a candidate rate from the parser.

        Returns:
            True if the candidate was new and reconciliation ran.
        """
        if rate == self._last_observed_rate:
            return False
        self._last_observed_rate = rate
        self._apply(rate)
        return True

    def _apply(self, rate: float) -> None:
        device_id = self._resolve_device()
        if device_id is None:
            logger.warning("No output device to apply %.0f Hz to", rate)
            self._publish(last_error=NO_DEVICE_ERROR)
            return

        current_rate = self._controller.nominal_rate(device_id)
        name = self._controller.device_name(device_id)

        if current_rate == rate:
            logger.debug("%s already at %.0f Hz", name or "Device", rate)
            self._publish(
                active_device_name=name,
                current_sample_rate=rate,
                bit_depth=self._controller.bit_depth(device_id),
            )
            return

        if current_rate is None:
            logger.info("Switching %s to %.0f Hz", name or "device", rate)
        else:
            logger.info("Switching %s from %.0f Hz to %.0f Hz", name or "device", current_rate, rate)
        success = self._controller.set_nominal_rate(device_id, rate)

        event = RateChangeEvent(
            timestamp=self._clock(),
            previous_rate=current_rate,
            target_rate=rate,
            device_name=name,
            success=success,
        )
        history = (event, *self._state.history)[: self._history_limit]

        if not success:
            logger.error("Failed to switch sample rate to %.0f Hz", rate)
            self._publish(
                active_device_name=name,
                history=history,
                last_error=f"Failed to set {format_rate_precise(rate)}",
            )
            return

        self._log_error = None
        self._publish(
            active_device_name=name,
            current_sample_rate=rate,
            bit_depth=self._controller.bit_depth(device_id),
            total_switches=self._state.total_switches + 1,
            history=history,
            last_error=None,
        )
        if self.notifications_enabled:
            self._notify(
                f"Switched to {format_rate_precise(rate)} on {name or 'device'}"
            )

    def _notify(self, body: str) -> None:
        try:
            self._notifier.notify(NOTIFICATION_TITLE, body)
        except Exception:
            logger.warning("Notifier failed", exc_info=True)

    # --- Device state ---

    def set_target_device(self, device_id: int | None) -> None:
        """Change the target device and re-resolve its state."""
        self._publish(target_device_id=device_id)
        self.refresh_current_state()

    def refresh_devices(self) -> tuple[AudioDevice, ...]:
        """Re-enumerate the output devices."""
        devices = tuple(self._controller.list_output_devices())
        self._publish(available_devices=devices)
        return devices

    def refresh_current_state(self) -> None:
        """Re-read rate, name and capabilities of the target device."""
        device_id = self._resolve_device()
        if device_id is None:
            logger.debug("No output device to read state from")
            self._publish(
                current_sample_rate=None,
                active_device_name=None,
                bit_depth=None,
                supported_rates=(),
            )
            return
        self._publish(
            current_sample_rate=self._controller.nominal_rate(device_id),
            active_device_name=self._controller.device_name(device_id),
            bit_depth=self._controller.bit_depth(device_id),
            supported_rates=tuple(self._controller.supported_rates(device_id)),
        )

    # --- Monitoring status ---

    def set_monitoring_active(self, active: bool) -> None:
        if self._state.monitoring_active != active:
            self._publish(monitoring_active=active)

    def record_log_error(self, message: str) -> None:
        """Surface a log source failure."""
        self._log_error = message
        self._publish(last_error=message)

    def clear_log_error(self) -> None:
        """Clear the last error if it was caused by the log source."""
        if self._log_error is not None and self._state.last_error == self._log_error:
            self._publish(last_error=None)
        self._log_error = None
