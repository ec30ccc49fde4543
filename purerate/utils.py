"""Utility functions for PureRate."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine
from typing import TypeVar

_T = TypeVar("_T")

# Check if eager_start is supported (Python 3.12+)
_SUPPORTS_EAGER_START = sys.version_info >= (3, 12)


def create_task(
    coro: Coroutine[None, None, _T],
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    name: str | None = None,
    eager_start: bool = True,
) -> asyncio.Task[_T]:
    """Create an asyncio task with eager_start=True by default.

    Note: eager_start is only supported in Python 3.12+. On older versions,
    this parameter is ignored and tasks behave normally.

    Args:
        coro: The coroutine to run as a task.
        loop: Optional event loop to use. If None, uses the running loop.
        name: Optional name for the task (for debugging).
        eager_start: Whether to start the task eagerly (default: True).

    Returns:
        The created asyncio Task.
    """
    if loop is None:
        loop = asyncio.get_running_loop()

    if _SUPPORTS_EAGER_START and eager_start:
        return asyncio.Task(coro, loop=loop, name=name, eager_start=True)

    return loop.create_task(coro, name=name)


def format_rate(rate: float | None) -> str:
    """Format a rate in Hz as compact kHz text, e.g. '48 kHz' or '44.1 kHz'."""
    if rate is None:
        return "--"
    khz = rate / 1000.0
    if khz == round(khz):
        return f"{khz:.0f} kHz"
    return f"{khz:.1f} kHz"


def format_rate_precise(rate: float) -> str:
    """Format a rate with one decimal, e.g. '48.0 kHz'."""
    return f"{rate / 1000.0:.1f} kHz"


def rate_tier(rate: float) -> str:
    """Classify a sample rate for display."""
    if rate <= 48000:
        return "Lossless"
    if rate <= 96000:
        return "Hi-Res"
    return "Ultra Hi-Res"
