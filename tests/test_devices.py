"""Tests for device enumeration and best-effort hardware access."""

import pytest

from purerate.devices import (
    AudioDevice,
    AudioDeviceManager,
    expand_rate_ranges,
    resolve_audio_device,
)


class TestExpandRateRanges:
    """Expansion of hardware rate ranges."""

    def test_continuous_range_inclusive(self):
        assert expand_rate_ranges([(44100.0, 192000.0)]) == [
            44100.0,
            48000.0,
            88200.0,
            96000.0,
            176400.0,
            192000.0,
        ]

    def test_discrete_ranges(self):
        assert expand_rate_ranges([(48000.0, 48000.0), (44100.0, 44100.0)]) == [
            44100.0,
            48000.0,
        ]

    def test_discrete_nonstandard_rate_kept(self):
        assert expand_rate_ranges([(50000.0, 50000.0)]) == [50000.0]

    def test_overlapping_ranges_deduplicated(self):
        result = expand_rate_ranges([(44100.0, 48000.0), (48000.0, 48000.0), (32000.0, 44100.0)])
        assert result == [32000.0, 44100.0, 48000.0]

    def test_empty(self):
        assert expand_rate_ranges([]) == []


@pytest.fixture
def manager(hal):
    hal.default_device = 1
    hal.devices = [1, 2, 3, 4]
    hal.streams = {1: [10, 11], 2: [20], 3: []}
    hal.names = {1: "MacBook Pro Speakers", 2: "USB DAC", 3: "Microphone"}
    hal.rates = {1: 48000.0, 2: 44100.0}
    hal.ranges = {2: [(44100.0, 96000.0)]}
    hal.bits = {10: 24, 11: 16, 20: 32}
    return AudioDeviceManager(hal)


class TestAudioDeviceManager:
    """Device controller on top of a fake HAL."""

    def test_list_filters_inputs_and_failures(self, manager):
        # 3 has no output streams, 4 fails the stream lookup
        assert manager.list_output_devices() == [
            AudioDevice(device_id=1, name="MacBook Pro Speakers"),
            AudioDevice(device_id=2, name="USB DAC"),
        ]

    def test_list_skips_unnamed_devices(self, manager, hal):
        hal.streams[4] = [40]
        assert [d.device_id for d in manager.list_output_devices()] == [1, 2]

    def test_enumeration_failure_returns_empty(self, manager, hal):
        hal.devices = None
        assert manager.list_output_devices() == []

    def test_default_device(self, manager, hal):
        assert manager.default_output_device() == 1
        hal.default_device = None
        assert manager.default_output_device() is None

    def test_unknown_default_device(self, manager, hal):
        hal.default_device = 0
        assert manager.default_output_device() is None

    def test_nominal_rate(self, manager):
        assert manager.nominal_rate(2) == 44100.0
        assert manager.nominal_rate(3) is None

    def test_device_name_failure(self, manager):
        assert manager.device_name(4) is None

    def test_set_nominal_rate(self, manager, hal):
        assert manager.set_nominal_rate(2, 96000.0) is True
        assert hal.rates[2] == 96000.0

    def test_set_nominal_rate_rejected(self, manager, hal):
        hal.rejected_rates.add(192000.0)
        assert manager.set_nominal_rate(2, 192000.0) is False
        assert hal.rates[2] == 44100.0

    def test_supported_rates(self, manager):
        assert manager.supported_rates(2) == [44100.0, 48000.0, 88200.0, 96000.0]
        assert manager.supported_rates(1) == []

    def test_bit_depth_uses_first_stream(self, manager):
        assert manager.bit_depth(1) == 24
        assert manager.bit_depth(2) == 32

    def test_bit_depth_without_streams(self, manager):
        assert manager.bit_depth(3) is None
        assert manager.bit_depth(4) is None

    def test_capabilities(self, manager):
        caps = manager.capabilities(2)
        assert caps.nominal_rate == 44100.0
        assert caps.supported_rates == (44100.0, 48000.0, 88200.0, 96000.0)
        assert caps.bit_depth == 32


class TestResolveAudioDevice:
    """Device selection by id or name prefix."""

    devices = [
        AudioDevice(device_id=73, name="MacBook Pro Speakers"),
        AudioDevice(device_id=88, name="USB DAC"),
    ]

    def test_none_means_default(self):
        assert resolve_audio_device(self.devices, None) is None

    def test_by_id(self):
        assert resolve_audio_device(self.devices, "88") == 88

    def test_unknown_id(self):
        with pytest.raises(ValueError, match="id 5"):
            resolve_audio_device(self.devices, "5")

    def test_by_prefix(self):
        assert resolve_audio_device(self.devices, "MacBook") == 73

    def test_no_match(self):
        with pytest.raises(ValueError, match="Headphones"):
            resolve_audio_device(self.devices, "Headphones")
