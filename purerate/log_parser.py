"""Sample rate extraction from media player diagnostic messages.

Each recognized message shape is described by a RatePattern: the anchors that
must all appear in the message, how to cut the numeric value out of it, the
unit multiplier, and an optional sanity check on the parsed value.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Final

logger = logging.getLogger(__name__)

MIN_PLAUSIBLE_RATE: Final = 1000.0
"""Values at or below this are treated as misparsed fields (channel count etc.).

This is a heuristic guard, not a validation of the rate itself.
"""


def _plausible(value: float) -> bool:
    return value > MIN_PLAUSIBLE_RATE


@dataclass(frozen=True, slots=True)
class RatePattern:
    """Declarative description of one rate-revealing message shape.

    Attributes:
        name: Short label used in debug logs.
        anchors: Groups of alternatives; every group needs at least one
            member present in the message.
        start: Marker immediately preceding the value.
        end: Marker immediately following the value. When None the value is
            a token terminated by any character in `terminators`.
        terminators: Characters ending a token value.
        multiplier: Unit conversion applied to the parsed number.
        accept: Predicate the converted value must satisfy.
    """

    name: str
    anchors: tuple[tuple[str, ...], ...]
    start: str
    end: str | None = None
    terminators: str = " \n,"
    multiplier: float = 1.0
    accept: Callable[[float], bool] | None = None

    def matches(self, message: str) -> bool:
        return all(any(anchor in message for anchor in group) for group in self.anchors)

    def extract(self, message: str) -> float | None:
        """Return the converted value, or None if it cannot be read or is rejected."""
        raw = self._slice(message)
        if raw is None:
            return None
        try:
            value = float(raw) * self.multiplier
        except ValueError:
            return None
        if not math.isfinite(value):
            return None
        if self.accept is not None and not self.accept(value):
            return None
        return value

    def _slice(self, message: str) -> str | None:
        begin = message.find(self.start)
        if begin < 0:
            return None
        begin += len(self.start)

        if self.end is not None:
            stop = message.find(self.end, begin)
            if stop < 0:
                return None
            return message[begin:stop].strip()

        rest = message[begin:].lstrip()
        for index, char in enumerate(rest):
            if char in self.terminators:
                return rest[:index]
        return rest


RATE_PATTERNS: Final[tuple[RatePattern, ...]] = (
    RatePattern(
        name="audioCapabilities",
        anchors=(("audioCapabilities:",),),
        start="asbdSampleRate = ",
        end=" kHz",
        multiplier=1000.0,
    ),
    RatePattern(
        name="AudioQueue",
        anchors=(("Creating AudioQueue",), ("sampleRate:",)),
        start="sampleRate:",
    ),
    RatePattern(
        name="AppleLossless",
        anchors=(("ACAppleLosslessDecoder",), ("Input format:",)),
        start="ch, ",
        end=" Hz",
    ),
    RatePattern(
        name="FLAC/AAC",
        anchors=(("FLACDecoder", "AACDecoder"), ("sampleRate:",)),
        start="sampleRate:",
        accept=_plausible,
    ),
    RatePattern(
        name="outputSettings",
        anchors=(("outputSettings",), ("sampleRate =",)),
        start="sampleRate =",
        terminators=" \n,;",
        accept=_plausible,
    ),
)


def rate_from_message(
    message: str, patterns: Iterable[RatePattern] = RATE_PATTERNS
) -> float | None:
    """Return the rate revealed by a single message, if any.

    The first pattern whose anchors are present decides the message, even
    when its value turns out to be unreadable.
    """
    for pattern in patterns:
        if pattern.matches(message):
            value = pattern.extract(message)
            if value is not None:
                logger.debug("Pattern %s matched: %.0f Hz", pattern.name, value)
            return value
    return None


def extract_candidate_rate(
    entries: Iterable[str], patterns: Iterable[RatePattern] = RATE_PATTERNS
) -> float | None:
    """Return the candidate sample rate revealed by a batch of messages.

    Messages are scanned in order and the last one yielding a value wins.
    Returns None when nothing in the batch reveals a rate.
    """
    table = tuple(patterns)
    candidate: float | None = None
    for message in entries:
        value = rate_from_message(message, table)
        if value is not None:
            candidate = value
    return candidate
