"""Thin ctypes binding to the CoreAudio hardware abstraction layer.

Every call returns the raw property value or raises HALError carrying the
OSStatus. Higher layers (see purerate.devices) decide how to degrade.
"""

from __future__ import annotations

import ctypes
import logging
from typing import Any, Final

logger = logging.getLogger(__name__)

_COREAUDIO_PATH: Final = "/System/Library/Frameworks/CoreAudio.framework/CoreAudio"
_COREFOUNDATION_PATH: Final = (
    "/System/Library/Frameworks/CoreFoundation.framework/CoreFoundation"
)


def fourcc(code: str) -> int:
    """Convert a four-character selector such as 'nsrt' to its UInt32 value."""
    return int.from_bytes(code.encode("ascii"), "big")


AUDIO_OBJECT_SYSTEM_OBJECT: Final = 1
AUDIO_OBJECT_UNKNOWN: Final = 0

SCOPE_GLOBAL: Final = fourcc("glob")
SCOPE_OUTPUT: Final = fourcc("outp")
ELEMENT_MAIN: Final = 0

PROP_DEVICES: Final = fourcc("dev#")
PROP_DEFAULT_OUTPUT_DEVICE: Final = fourcc("dOut")
PROP_DEVICE_NAME: Final = fourcc("lnam")
PROP_STREAMS: Final = fourcc("stm#")
PROP_NOMINAL_SAMPLE_RATE: Final = fourcc("nsrt")
PROP_AVAILABLE_NOMINAL_SAMPLE_RATES: Final = fourcc("nsr#")
PROP_PHYSICAL_FORMAT: Final = fourcc("pft ")

_CF_STRING_ENCODING_UTF8: Final = 0x08000100
_NAME_BUFFER_SIZE: Final = 512


class AudioObjectPropertyAddress(ctypes.Structure):
    _fields_ = [
        ("mSelector", ctypes.c_uint32),
        ("mScope", ctypes.c_uint32),
        ("mElement", ctypes.c_uint32),
    ]


class AudioValueRange(ctypes.Structure):
    _fields_ = [
        ("mMinimum", ctypes.c_double),
        ("mMaximum", ctypes.c_double),
    ]


class AudioStreamBasicDescription(ctypes.Structure):
    _fields_ = [
        ("mSampleRate", ctypes.c_double),
        ("mFormatID", ctypes.c_uint32),
        ("mFormatFlags", ctypes.c_uint32),
        ("mBytesPerPacket", ctypes.c_uint32),
        ("mFramesPerPacket", ctypes.c_uint32),
        ("mBytesPerFrame", ctypes.c_uint32),
        ("mChannelsPerFrame", ctypes.c_uint32),
        ("mBitsPerChannel", ctypes.c_uint32),
        ("mReserved", ctypes.c_uint32),
    ]


class HALError(Exception):
    """A CoreAudio property call returned a non-zero OSStatus."""

    def __init__(self, operation: str, status: int) -> None:
        super().__init__(f"{operation} failed with OSStatus {status}")
        self.operation = operation
        self.status = status


class CoreAudioUnavailableError(OSError):
    """The CoreAudio framework could not be loaded (not running on macOS)."""


def _address(selector: int, scope: int = SCOPE_GLOBAL) -> AudioObjectPropertyAddress:
    return AudioObjectPropertyAddress(selector, scope, ELEMENT_MAIN)


class CoreAudioHAL:
    """Raw access to the CoreAudio object property API.

    Loading the frameworks happens in the constructor so that importing this
    module stays side-effect free on every platform.
    """

    def __init__(self) -> None:
        try:
            self._ca = ctypes.CDLL(_COREAUDIO_PATH)
            self._cf = ctypes.CDLL(_COREFOUNDATION_PATH)
        except OSError as e:
            raise CoreAudioUnavailableError(f"CoreAudio is not available: {e}") from e
        logger.debug("Loaded CoreAudio framework from %s", _COREAUDIO_PATH)

        address_p = ctypes.POINTER(AudioObjectPropertyAddress)
        uint32_p = ctypes.POINTER(ctypes.c_uint32)

        self._ca.AudioObjectGetPropertyDataSize.restype = ctypes.c_int32
        self._ca.AudioObjectGetPropertyDataSize.argtypes = [
            ctypes.c_uint32,
            address_p,
            ctypes.c_uint32,
            ctypes.c_void_p,
            uint32_p,
        ]
        self._ca.AudioObjectGetPropertyData.restype = ctypes.c_int32
        self._ca.AudioObjectGetPropertyData.argtypes = [
            ctypes.c_uint32,
            address_p,
            ctypes.c_uint32,
            ctypes.c_void_p,
            uint32_p,
            ctypes.c_void_p,
        ]
        self._ca.AudioObjectSetPropertyData.restype = ctypes.c_int32
        self._ca.AudioObjectSetPropertyData.argtypes = [
            ctypes.c_uint32,
            address_p,
            ctypes.c_uint32,
            ctypes.c_void_p,
            ctypes.c_uint32,
            ctypes.c_void_p,
        ]

        self._cf.CFStringGetCString.restype = ctypes.c_bool
        self._cf.CFStringGetCString.argtypes = [
            ctypes.c_void_p,
            ctypes.c_char_p,
            ctypes.c_long,
            ctypes.c_uint32,
        ]
        self._cf.CFRelease.restype = None
        self._cf.CFRelease.argtypes = [ctypes.c_void_p]

    def _data_size(self, object_id: int, address: AudioObjectPropertyAddress) -> int:
        size = ctypes.c_uint32(0)
        status = self._ca.AudioObjectGetPropertyDataSize(
            object_id, ctypes.byref(address), 0, None, ctypes.byref(size)
        )
        if status != 0:
            raise HALError("AudioObjectGetPropertyDataSize", status)
        return size.value

    def _get(
        self, object_id: int, address: AudioObjectPropertyAddress, buffer: Any
    ) -> int:
        size = ctypes.c_uint32(ctypes.sizeof(buffer))
        status = self._ca.AudioObjectGetPropertyData(
            object_id, ctypes.byref(address), 0, None, ctypes.byref(size), ctypes.byref(buffer)
        )
        if status != 0:
            raise HALError("AudioObjectGetPropertyData", status)
        return size.value

    def _get_uint32_array(self, object_id: int, address: AudioObjectPropertyAddress) -> list[int]:
        size = self._data_size(object_id, address)
        count = size // ctypes.sizeof(ctypes.c_uint32)
        if count == 0:
            return []
        values = (ctypes.c_uint32 * count)()
        written = self._get(object_id, address, values)
        return list(values[: written // ctypes.sizeof(ctypes.c_uint32)])

    def default_output_device(self) -> int:
        device_id = ctypes.c_uint32(AUDIO_OBJECT_UNKNOWN)
        self._get(AUDIO_OBJECT_SYSTEM_OBJECT, _address(PROP_DEFAULT_OUTPUT_DEVICE), device_id)
        return device_id.value

    def device_ids(self) -> list[int]:
        return self._get_uint32_array(AUDIO_OBJECT_SYSTEM_OBJECT, _address(PROP_DEVICES))

    def output_stream_ids(self, device_id: int) -> list[int]:
        return self._get_uint32_array(device_id, _address(PROP_STREAMS, SCOPE_OUTPUT))

    def device_name(self, device_id: int) -> str:
        cf_string = ctypes.c_void_p()
        self._get(device_id, _address(PROP_DEVICE_NAME), cf_string)
        if not cf_string.value:
            raise HALError("CFString lookup", -1)
        try:
            buffer = ctypes.create_string_buffer(_NAME_BUFFER_SIZE)
            if not self._cf.CFStringGetCString(
                cf_string, buffer, _NAME_BUFFER_SIZE, _CF_STRING_ENCODING_UTF8
            ):
                raise HALError("CFStringGetCString", -1)
            return buffer.value.decode("utf-8")
        finally:
            self._cf.CFRelease(cf_string)

    def nominal_sample_rate(self, device_id: int) -> float:
        rate = ctypes.c_double(0.0)
        self._get(device_id, _address(PROP_NOMINAL_SAMPLE_RATE), rate)
        return rate.value

    def set_nominal_sample_rate(self, device_id: int, rate: float) -> None:
        value = ctypes.c_double(rate)
        status = self._ca.AudioObjectSetPropertyData(
            device_id,
            ctypes.byref(_address(PROP_NOMINAL_SAMPLE_RATE)),
            0,
            None,
            ctypes.sizeof(value),
            ctypes.byref(value),
        )
        if status != 0:
            raise HALError("AudioObjectSetPropertyData", status)

    def available_rate_ranges(self, device_id: int) -> list[tuple[float, float]]:
        address = _address(PROP_AVAILABLE_NOMINAL_SAMPLE_RATES)
        size = self._data_size(device_id, address)
        count = size // ctypes.sizeof(AudioValueRange)
        if count == 0:
            return []
        ranges = (AudioValueRange * count)()
        written = self._get(device_id, address, ranges)
        return [
            (r.mMinimum, r.mMaximum)
            for r in ranges[: written // ctypes.sizeof(AudioValueRange)]
        ]

    def physical_bits_per_channel(self, stream_id: int) -> int:
        asbd = AudioStreamBasicDescription()
        self._get(stream_id, _address(PROP_PHYSICAL_FORMAT), asbd)
        return int(asbd.mBitsPerChannel)
