# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Polling scheduler for the forecast orchestrator.

Stopped -> Running -> Stopped. start() runs one cycle immediately on a
background thread, then one per fixed interval. stop() cancels every
in-flight request synchronously and returns without waiting for the
thread.

Overlap policy: skip. An interval tick that finds the previous cycle
still running is dropped; missed ticks are not replayed.

A failing cycle or snapshot callback is logged and the loop keeps its
schedule; only stop() ends it.
"""
import logging
import threading
import time
from enum import Enum
from typing import Callable

from riskglobe.adapters.orchestrator import ForecastOrchestrator
from riskglobe.domain.forecast import ForecastSnapshot


_log = logging.getLogger(__name__)


class SchedulerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class PollingScheduler:
    """
    Drives ForecastOrchestrator.run_cycle on a fixed interval.

    Args:
        orchestrator: Orchestrator to drive.
        interval_s: Seconds between cycle starts.
        on_snapshot: Called with each published snapshot.
    """

    def __init__(
        self,
        orchestrator: ForecastOrchestrator,
        interval_s: float,
        on_snapshot: Callable[[ForecastSnapshot], None] | None = None,
    ):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self._orchestrator = orchestrator
        self._interval_s = interval_s
        self._on_snapshot = on_snapshot
        self._lock = threading.Lock()
        self._cycle_guard = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.state = SchedulerState.STOPPED
        self.cycles_run = 0
        self.ticks_skipped = 0

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    def start(self) -> None:
        with self._lock:
            if self.state is SchedulerState.RUNNING:
                return
            self._orchestrator.activate()
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._loop,
                args=(self._stop_event,),
                name="forecast-poller",
                daemon=True,
            )
            self.state = SchedulerState.RUNNING
            self._thread.start()
        _log.debug("Forecast polling started (every %.1fs)", self._interval_s)

    def stop(self) -> None:
        with self._lock:
            if self.state is SchedulerState.STOPPED:
                return
            self._stop_event.set()
            self._orchestrator.shutdown()
            self.state = SchedulerState.STOPPED
        _log.debug("Forecast polling stopped")

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.start()
        else:
            self.stop()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the polling thread to exit. Returns True if it has."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _loop(self, stop_event: threading.Event) -> None:
        # First cycle waits for a cycle left over from a previous run to drain.
        next_tick = time.monotonic() + self._interval_s
        self._run_once(stop_event, blocking=True)
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self._run_once(stop_event, blocking=False)
            now = time.monotonic()
            next_tick += self._interval_s
            if next_tick <= now:
                missed = int((now - next_tick) // self._interval_s) + 1
                self.ticks_skipped += missed
                _log.debug("Cycle overran %d poll tick(s)", missed)
                next_tick += missed * self._interval_s

    def _run_once(self, stop_event: threading.Event, blocking: bool) -> None:
        if not self._cycle_guard.acquire(blocking=blocking):
            self.ticks_skipped += 1
            _log.debug("Skipping poll tick: previous cycle still running")
            return
        try:
            if stop_event.is_set():
                return
            try:
                snapshot = self._orchestrator.run_cycle()
            except Exception:
                _log.exception("Forecast cycle failed")
                return
            self.cycles_run += 1
            if self._on_snapshot is not None and not stop_event.is_set():
                try:
                    self._on_snapshot(snapshot)
                except Exception:
                    _log.exception("Snapshot callback failed")
        finally:
            self._cycle_guard.release()
