"""Audio output device enumeration and sample rate control.

This module provides the DeviceController interface used by the
reconciliation engine and AudioDeviceManager, its CoreAudio-backed
implementation. Every operation is best-effort: hardware failures are
logged and degrade to None, an empty result, or False.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final, Protocol

from purerate.coreaudio import AUDIO_OBJECT_UNKNOWN, CoreAudioHAL, HALError

logger = logging.getLogger(__name__)

STANDARD_SAMPLE_RATES: Final[tuple[float, ...]] = (
    8000.0,
    11025.0,
    16000.0,
    22050.0,
    32000.0,
    44100.0,
    48000.0,
    88200.0,
    96000.0,
    176400.0,
    192000.0,
    352800.0,
    384000.0,
    705600.0,
    768000.0,
)
"""Reference rates used to expand continuous hardware ranges."""


@dataclass(frozen=True, slots=True)
class AudioDevice:
    """Represents an audio output device.

    Attributes:
        device_id: Opaque hardware handle (CoreAudio AudioDeviceID).
        name: Human-readable device name.
    """

    device_id: int
    name: str


@dataclass(frozen=True, slots=True)
class DeviceCapabilities:
    """Capability data derived from a device handle."""

    nominal_rate: float | None
    supported_rates: tuple[float, ...]
    bit_depth: int | None


class DeviceController(Protocol):
    """Queries and mutates host audio hardware state."""

    def default_output_device(self) -> int | None: ...

    def list_output_devices(self) -> list[AudioDevice]: ...

    def device_name(self, device_id: int) -> str | None: ...

    def nominal_rate(self, device_id: int) -> float | None: ...

    def set_nominal_rate(self, device_id: int, rate: float) -> bool: ...

    def supported_rates(self, device_id: int) -> list[float]: ...

    def bit_depth(self, device_id: int) -> int | None: ...


class HardwareBackend(Protocol):
    """Raw hardware access; every call may raise HALError."""

    def default_output_device(self) -> int: ...

    def device_ids(self) -> list[int]: ...

    def output_stream_ids(self, device_id: int) -> list[int]: ...

    def device_name(self, device_id: int) -> str: ...

    def nominal_sample_rate(self, device_id: int) -> float: ...

    def set_nominal_sample_rate(self, device_id: int, rate: float) -> None: ...

    def available_rate_ranges(self, device_id: int) -> list[tuple[float, float]]: ...

    def physical_bits_per_channel(self, stream_id: int) -> int: ...


def expand_rate_ranges(ranges: Iterable[tuple[float, float]]) -> list[float]:
    """Flatten hardware rate ranges into a sorted list of usable rates.

    A range whose bounds are equal is a discrete rate and is kept as-is.
    A continuous range contributes every standard rate it contains
    (inclusive on both ends).
    """
    supported: set[float] = set()
    for minimum, maximum in ranges:
        if minimum == maximum:
            supported.add(float(minimum))
            continue
        supported.update(rate for rate in STANDARD_SAMPLE_RATES if minimum <= rate <= maximum)
    return sorted(supported)


class AudioDeviceManager:
    """Best-effort DeviceController on top of a hardware backend."""

    def __init__(self, backend: HardwareBackend | None = None) -> None:
        """Initialize the device manager.

        Args:
            backend: Hardware backend to use. Defaults to the CoreAudio HAL,
                which raises CoreAudioUnavailableError off macOS.
        """
        self._backend: HardwareBackend = backend if backend is not None else CoreAudioHAL()

    def default_output_device(self) -> int | None:
        """Return the system default output device, or None if the query fails."""
        try:
            device_id = self._backend.default_output_device()
        except HALError as e:
            logger.debug("Default output device lookup failed: %s", e)
            return None
        return device_id if device_id != AUDIO_OBJECT_UNKNOWN else None

    def list_output_devices(self) -> list[AudioDevice]:
        """Return every device that has at least one output stream and a name."""
        try:
            device_ids = self._backend.device_ids()
        except HALError as e:
            logger.debug("Device enumeration failed: %s", e)
            return []

        result: list[AudioDevice] = []
        for device_id in device_ids:
            if not self._output_streams(device_id):
                continue
            name = self.device_name(device_id)
            if name is None:
                continue
            result.append(AudioDevice(device_id=device_id, name=name))
        return result

    def device_name(self, device_id: int) -> str | None:
        try:
            return self._backend.device_name(device_id)
        except HALError as e:
            logger.debug("Name lookup for device %d failed: %s", device_id, e)
            return None

    def nominal_rate(self, device_id: int) -> float | None:
        try:
            return self._backend.nominal_sample_rate(device_id)
        except HALError as e:
            logger.debug("Nominal rate read for device %d failed: %s", device_id, e)
            return None

    def set_nominal_rate(self, device_id: int, rate: float) -> bool:
        """Write a new nominal rate. Returns True iff the hardware accepted it."""
        try:
            self._backend.set_nominal_sample_rate(device_id, rate)
        except HALError as e:
            logger.warning("Device %d rejected %.0f Hz: %s", device_id, rate, e)
            return False
        return True

    def supported_rates(self, device_id: int) -> list[float]:
        try:
            ranges = self._backend.available_rate_ranges(device_id)
        except HALError as e:
            logger.debug("Rate ranges read for device %d failed: %s", device_id, e)
            return []
        return expand_rate_ranges(ranges)

    def bit_depth(self, device_id: int) -> int | None:
        """Return the physical bit depth of the device's first output stream.

        Only the first stream is consulted; devices exposing several output
        streams with different formats report the first one.
        """
        streams = self._output_streams(device_id)
        if not streams:
            return None
        try:
            return self._backend.physical_bits_per_channel(streams[0])
        except HALError as e:
            logger.debug("Physical format read for stream %d failed: %s", streams[0], e)
            return None

    def capabilities(self, device_id: int) -> DeviceCapabilities:
        return DeviceCapabilities(
            nominal_rate=self.nominal_rate(device_id),
            supported_rates=tuple(self.supported_rates(device_id)),
            bit_depth=self.bit_depth(device_id),
        )

    def _output_streams(self, device_id: int) -> list[int]:
        try:
            return self._backend.output_stream_ids(device_id)
        except HALError as e:
            logger.debug("Stream lookup for device %d failed: %s", device_id, e)
            return []


def resolve_audio_device(devices: list[AudioDevice], device: str | None) -> int | None:
    """Resolve an output device by id or name prefix.

    Args:
        devices: Output devices to search.
        device: Device id (numeric string) or name prefix to match.

    Returns:
        Device id if found, None for the system default device.

    Raises:
        ValueError: If no output device matches.
    """
    if device is None:
        return None

    if device.isnumeric():
        device_id = int(device)
        for candidate in devices:
            if candidate.device_id == device_id:
                return device_id
        raise ValueError(f"No audio output device with id {device_id}")

    for candidate in devices:
        if candidate.name.startswith(device):
            return candidate.device_id

    raise ValueError(f"No audio output device found matching '{device}'")
