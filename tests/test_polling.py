# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Tests for the polling scheduler.

Lifecycle (Stopped -> Running -> Stopped), immediate first cycle,
interval firing, skip-on-overlap, failure survival and cancellation
on stop.
"""
import threading
import time
from unittest.mock import patch

import pytest

from riskglobe.adapters.orchestrator import ForecastOrchestrator
from riskglobe.adapters.polling import PollingScheduler, SchedulerState
from riskglobe.config import OverlayConfig
from riskglobe.domain.errors import AbortError
from riskglobe.domain.forecast import DisasterKind, ForecastSnapshot
from conftest import FakeSource


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestLifecycle:

    def test_initially_stopped(self):
        sched = PollingScheduler(ForecastOrchestrator(FakeSource(), horizons=[6]), 60)
        assert sched.state is SchedulerState.STOPPED
        assert not sched.running

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            PollingScheduler(ForecastOrchestrator(FakeSource(), horizons=[6]), 0)

    def test_start_runs_cycle_immediately(self):
        snapshots = []
        got = threading.Event()

        def on_snapshot(snap):
            snapshots.append(snap)
            got.set()

        sched = PollingScheduler(
            ForecastOrchestrator(FakeSource(), horizons=[6]), 60, on_snapshot,
        )
        sched.start()
        try:
            assert got.wait(5)
            assert sched.state is SchedulerState.RUNNING
            assert isinstance(snapshots[0], ForecastSnapshot)
        finally:
            sched.stop()

    def test_start_twice_is_noop(self):
        sched = PollingScheduler(ForecastOrchestrator(FakeSource(), horizons=[6]), 60)
        sched.start()
        thread = sched._thread
        sched.start()
        assert sched._thread is thread
        sched.stop()

    def test_stop_when_stopped_is_noop(self):
        source = FakeSource()
        sched = PollingScheduler(ForecastOrchestrator(source, horizons=[6]), 60)
        sched.stop()
        assert not source.closed

    def test_stop_shuts_down_orchestrator(self):
        source = FakeSource()
        sched = PollingScheduler(ForecastOrchestrator(source, horizons=[6]), 60)
        sched.start()
        sched.stop()
        assert sched.state is SchedulerState.STOPPED
        assert source.closed
        assert sched.join(5)

    def test_set_enabled_maps_to_start_stop(self):
        source = FakeSource()
        sched = PollingScheduler(ForecastOrchestrator(source, horizons=[6]), 60)
        sched.set_enabled(True)
        assert sched.running
        sched.set_enabled(False)
        assert not sched.running
        assert source.closed

    def test_restart_reopens_source(self):
        source = FakeSource()
        sched = PollingScheduler(ForecastOrchestrator(source, horizons=[6]), 60)
        sched.start()
        sched.stop()
        sched.join(5)
        sched.start()
        try:
            assert not source.closed
            assert source.reopened == 2
        finally:
            sched.stop()


class TestInterval:

    def test_cycles_repeat_on_interval(self):
        source = FakeSource()
        sched = PollingScheduler(ForecastOrchestrator(source, horizons=[6]), 0.02)
        sched.start()
        try:
            assert _wait_until(lambda: sched.cycles_run >= 3)
        finally:
            sched.stop()
        assert len(source.calls) >= 9

    def test_no_cycles_after_stop(self):
        source = FakeSource()
        sched = PollingScheduler(ForecastOrchestrator(source, horizons=[6]), 0.02)
        sched.start()
        assert _wait_until(lambda: sched.cycles_run >= 1)
        sched.stop()
        assert sched.join(5)
        calls = len(source.calls)
        time.sleep(0.1)
        assert len(source.calls) == calls

    def test_tick_skipped_while_cycle_running(self):
        source = FakeSource()
        sched = PollingScheduler(ForecastOrchestrator(source, horizons=[6]), 60)
        sched._cycle_guard.acquire()
        try:
            sched._run_once(threading.Event(), blocking=False)
        finally:
            sched._cycle_guard.release()
        assert sched.ticks_skipped == 1
        assert source.calls == []

    def test_no_callback_after_stop(self):
        entered = threading.Event()
        proceed = threading.Event()
        published = []

        class BlockingSource(FakeSource):
            def infer(self, disaster, horizon, options=None):
                entered.set()
                proceed.wait(5)
                return ()

        sched = PollingScheduler(
            ForecastOrchestrator(BlockingSource(), horizons=[6]), 60, published.append,
        )
        sched.start()
        assert entered.wait(5)
        sched.stop()
        proceed.set()
        assert sched.join(5)
        assert published == []


class TestLoopSurvivesFailures:

    def test_unexpected_cell_exception_keeps_polling(self):
        class NestedBodySource(FakeSource):
            def infer(self, disaster, horizon, options=None):
                if disaster is DisasterKind.FLOODS:
                    raise RecursionError("maximum recursion depth exceeded")
                return super().infer(disaster, horizon, options)

        published = []
        sched = PollingScheduler(
            ForecastOrchestrator(NestedBodySource(), horizons=[6]), 0.02, published.append,
        )
        sched.start()
        try:
            assert _wait_until(lambda: sched.cycles_run >= 3)
            assert sched._thread.is_alive()
        finally:
            sched.stop()
        assert len(published) >= 2

    def test_failing_cycle_keeps_polling(self, caplog):
        orch = ForecastOrchestrator(FakeSource(), horizons=[6])
        attempts = []

        def broken_cycle():
            attempts.append(1)
            raise RuntimeError("cycle exploded")

        sched = PollingScheduler(orch, 0.02)
        with patch.object(orch, "run_cycle", side_effect=broken_cycle):
            with caplog.at_level("ERROR", logger="riskglobe.adapters.polling"):
                sched.start()
                try:
                    assert _wait_until(lambda: len(attempts) >= 3)
                    assert sched._thread.is_alive()
                    assert sched.state is SchedulerState.RUNNING
                finally:
                    sched.stop()
        assert sched.join(5)
        assert sched.cycles_run == 0
        assert any("Forecast cycle failed" in r.getMessage() for r in caplog.records)

    def test_failing_callback_keeps_polling(self, caplog):
        calls = []

        def on_snapshot(snapshot):
            calls.append(snapshot)
            raise OSError("disk full")

        sched = PollingScheduler(
            ForecastOrchestrator(FakeSource(), horizons=[6]), 0.02, on_snapshot,
        )
        with caplog.at_level("ERROR", logger="riskglobe.adapters.polling"):
            sched.start()
            try:
                assert _wait_until(lambda: sched.cycles_run >= 3)
                assert sched._thread.is_alive()
            finally:
                sched.stop()
        assert sched.join(5)
        assert len(calls) >= 2
        assert any("Snapshot callback failed" in r.getMessage() for r in caplog.records)


class TestStopCancelsRequests:

    def test_stop_aborts_in_flight_http_requests(self, backend):
        backend.release.clear()
        config = OverlayConfig(api_base=backend.base_url, horizons=(6, 12), request_timeout_s=5)
        orch = ForecastOrchestrator.from_config(config)
        published = []
        sched = PollingScheduler(orch, 60, published.append)
        sched.start()
        assert backend.wait_for_requests(6)

        sched.stop()
        assert orch.source.registry.closed
        backend.release.set()
        assert sched.join(5)

        assert published == []
        assert orch.snapshot == ForecastSnapshot.empty()
        assert len(orch.source.registry) == 0
        with pytest.raises(AbortError):
            orch.source.infer("fires", 6)
        assert backend.request_count == 6
