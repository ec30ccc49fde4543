"""Periodic polling of the log source on a dedicated worker thread."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Final, TypeVar

from purerate.engine import MonitorState, ReconciliationEngine
from purerate.log_parser import extract_candidate_rate
from purerate.log_source import LogSource, LogSourceError
from purerate.utils import create_task

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS: Final = 2.0
LOG_WINDOW_SECONDS: Final = 3.0

_T = TypeVar("_T")

CandidateParser = Callable[[Iterable[str]], "float | None"]


class MonitorLoop:
    """Drives poll cycles and marshals engine state back to the event loop.

    All engine work runs on a single worker thread, which makes the engine
    the only writer of MonitorState. A tick that fires while the previous
    poll is still running is skipped instead of queued.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        log_source: LogSource,
        *,
        interval: float = POLL_INTERVAL_SECONDS,
        window: float = LOG_WINDOW_SECONDS,
        parser: CandidateParser = extract_candidate_rate,
    ) -> None:
        """Initialize the monitor loop.

        Args:
            engine: Reconciliation engine fed with parsed candidates.
            log_source: Source of recent diagnostic messages.
            interval: Seconds between ticks.
            window: Trailing log window fetched on every tick, in seconds.
            parser: Maps a batch of messages to a candidate rate.
        """
        self._engine = engine
        self._log_source = log_source
        self._interval = interval
        self._window = window
        self._parser = parser
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="purerate-poll")
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._in_flight: asyncio.Future[float | None] | None = None
        self._running = False
        self._listeners: list[Callable[[MonitorState], None]] = []
        self._remove_engine_listener = engine.add_listener(self._on_engine_state)

    @property
    def running(self) -> bool:
        return self._running

    def add_listener(self, callback: Callable[[MonitorState], None]) -> Callable[[], None]:
        """Register an observer called on the event loop with every new snapshot."""
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _on_engine_state(self, state: MonitorState) -> None:
        loop = self._loop
        if loop is None:
            self._dispatch(state)
            return
        if loop.is_closed():
            return
        loop.call_soon_threadsafe(self._dispatch, state)

    def _dispatch(self, state: MonitorState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Error in monitor listener")

    async def run_in_worker(self, func: Callable[..., _T], *args: object) -> _T:
        """Run an engine operation on the worker thread and wait for it."""
        self._loop = asyncio.get_running_loop()
        return await self._loop.run_in_executor(self._executor, func, *args)

    # --- Lifecycle ---

    async def enable(self) -> None:
        """Start ticking. No-op when already running."""
        if self._running:
            return
        self._running = True
        self._loop = asyncio.get_running_loop()
        self._task = create_task(self._tick_loop(), name="purerate-monitor")
        await self.run_in_worker(self._engine.set_monitoring_active, True)
        logger.info("Monitoring started (every %.1fs)", self._interval)

    async def disable(self) -> None:
        """Stop issuing ticks. A poll already in progress is allowed to finish."""
        if not self._running:
            return
        self._running = False
        if self._task is not None:
            self._task.cancel()
            self._task = None
        await self.run_in_worker(self._engine.set_monitoring_active, False)
        logger.info("Monitoring stopped")

    async def close(self) -> None:
        """Stop monitoring and shut the worker down."""
        await self.disable()
        self._remove_engine_listener()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._executor.shutdown)

    async def _tick_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                self.tick()
        except asyncio.CancelledError:
            logger.debug("Monitor loop cancelled")

    def tick(self) -> bool:
        """Schedule one poll on the worker.

        Returns:
            False if the previous poll is still running and this tick was skipped.
        """
        if self._in_flight is not None and not self._in_flight.done():
            logger.debug("Previous poll still in progress, skipping tick")
            return False
        assert self._loop is not None
        self._in_flight = self._loop.run_in_executor(self._executor, self._safe_poll)
        return True

    async def wait_idle(self) -> None:
        """Wait until the poll in progress, if any, has finished."""
        if self._in_flight is not None:
            await asyncio.shield(self._in_flight)

    # --- Worker side ---

    def _safe_poll(self) -> float | None:
        try:
            return self.poll_once()
        except Exception as e:
            logger.exception("Unexpected error during poll")
            self._engine.record_log_error(str(e) or type(e).__name__)
            return None

    def poll_once(self) -> float | None:
        """Fetch, parse and reconcile one batch. Must run on the worker thread.

        Returns:
            The candidate rate found in this batch, if any.
        """
        if not self._running:
            return None
        try:
            entries = self._log_source.fetch(self._window)
        except LogSourceError as e:
            logger.warning("Failed to read log: %s", e)
            self._engine.record_log_error(str(e))
            return None

        self._engine.clear_log_error()
        candidate = self._parser(entries)
        if candidate is not None:
            self._engine.process_candidate(candidate)
        return candidate
