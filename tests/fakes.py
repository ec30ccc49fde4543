"""Hardware-free stand-ins shared by the test modules."""

from __future__ import annotations

import threading

from purerate.coreaudio import HALError
from purerate.devices import AudioDevice
from purerate.log_source import LogSourceError


class FakeHAL:
    """HardwareBackend whose per-device answers are plain dicts.

    A missing key makes the corresponding call raise HALError, like a
    failing CoreAudio property read.
    """

    def __init__(self) -> None:
        self.default_device: int | None = None
        self.devices: list[int] | None = []
        self.streams: dict[int, list[int]] = {}
        self.names: dict[int, str] = {}
        self.rates: dict[int, float] = {}
        self.ranges: dict[int, list[tuple[float, float]]] = {}
        self.bits: dict[int, int] = {}
        self.rejected_rates: set[float] = set()

    def default_output_device(self) -> int:
        if self.default_device is None:
            raise HALError("default", -1)
        return self.default_device

    def device_ids(self) -> list[int]:
        if self.devices is None:
            raise HALError("devices", -1)
        return list(self.devices)

    def output_stream_ids(self, device_id: int) -> list[int]:
        if device_id not in self.streams:
            raise HALError("streams", -1)
        return list(self.streams[device_id])

    def device_name(self, device_id: int) -> str:
        if device_id not in self.names:
            raise HALError("name", -1)
        return self.names[device_id]

    def nominal_sample_rate(self, device_id: int) -> float:
        if device_id not in self.rates:
            raise HALError("rate", -1)
        return self.rates[device_id]

    def set_nominal_sample_rate(self, device_id: int, rate: float) -> None:
        if device_id not in self.rates or rate in self.rejected_rates:
            raise HALError("set rate", -10851)
        self.rates[device_id] = rate

    def available_rate_ranges(self, device_id: int) -> list[tuple[float, float]]:
        if device_id not in self.ranges:
            raise HALError("ranges", -1)
        return list(self.ranges[device_id])

    def physical_bits_per_channel(self, stream_id: int) -> int:
        if stream_id not in self.bits:
            raise HALError("format", -1)
        return self.bits[stream_id]


class FakeController:
    """DeviceController with one or more in-memory devices."""

    def __init__(
        self,
        *,
        rate: float | None = 44100.0,
        name: str | None = "USB DAC",
        device_id: int = 42,
        accept: bool = True,
        bit_depth: int | None = 24,
        supported: tuple[float, ...] = (44100.0, 48000.0, 88200.0, 96000.0),
    ) -> None:
        self.default_id: int | None = device_id
        self.rates: dict[int, float | None] = {device_id: rate}
        self.names: dict[int, str | None] = {device_id: name}
        self.devices: list[AudioDevice] = (
            [AudioDevice(device_id=device_id, name=name)] if name is not None else []
        )
        self.accept = accept
        self.depth = bit_depth
        self.supported = supported
        self.set_calls: list[tuple[int, float]] = []

    def add_device(self, device_id: int, name: str, rate: float) -> None:
        self.rates[device_id] = rate
        self.names[device_id] = name
        self.devices.append(AudioDevice(device_id=device_id, name=name))

    def default_output_device(self) -> int | None:
        return self.default_id

    def list_output_devices(self) -> list[AudioDevice]:
        return list(self.devices)

    def device_name(self, device_id: int) -> str | None:
        return self.names.get(device_id)

    def nominal_rate(self, device_id: int) -> float | None:
        return self.rates.get(device_id)

    def set_nominal_rate(self, device_id: int, rate: float) -> bool:
        self.set_calls.append((device_id, rate))
        if self.accept:
            self.rates[device_id] = rate
        return self.accept

    def supported_rates(self, device_id: int) -> list[float]:
        return list(self.supported)

    def bit_depth(self, device_id: int) -> int | None:
        return self.depth


class RecordingNotifier:
    def __init__(self) -> None:
        self.notices: list[tuple[str, str]] = []

    def notify(self, title: str, body: str) -> None:
        self.notices.append((title, body))


class ScriptedLogSource:
    """LogSource returning queued batches; an exception in the queue is raised."""

    def __init__(self, *batches: list[str] | Exception) -> None:
        self.batches: list[list[str] | Exception] = list(batches)
        self.windows: list[float] = []
        self.gate: threading.Event | None = None
        self.entered = threading.Event()

    def fetch(self, window_seconds: float) -> list[str]:
        self.windows.append(window_seconds)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return batch


def denied() -> LogSourceError:
    return LogSourceError("Failed to read the system log: access denied")
