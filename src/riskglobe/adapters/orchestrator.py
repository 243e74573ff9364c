# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Forecast orchestrator: fans one poll cycle out over the full grid.

Uses ThreadPoolExecutor from stdlib to run the (disaster x horizon)
requests concurrently. Each cell is isolated: InferenceError, AbortError
and any unexpected exception become an empty feature tuple for that
cell only. The snapshot is assembled after every cell has resolved and
published in a single reference assignment, so readers see either the
previous cycle or the new one, never a mix.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Sequence

from riskglobe.adapters.inference_client import (
    CancellationRegistry,
    ForecastRequestClient,
)
from riskglobe.config import OverlayConfig
from riskglobe.domain.errors import AbortError, InferenceError
from riskglobe.domain.forecast import (
    DisasterKind,
    Feature,
    ForecastSnapshot,
    RequestKey,
)
from riskglobe.ports.forecast_source import ForecastSource


_log = logging.getLogger(__name__)


class ForecastOrchestrator:
    """
    Runs forecast poll cycles and owns the current snapshot.

    Args:
        source: Forecast source (normally a ForecastRequestClient whose
            cancellation registry belongs to this orchestrator).
        horizons: Tracked horizons in hours, in display order.
        options: ``options`` object sent with every request.
        max_workers: Thread pool size. Default: one thread per grid cell.
    """

    def __init__(
        self,
        source: ForecastSource,
        horizons: Sequence[int] = (6, 12, 24),
        options: dict[str, Any] | None = None,
        max_workers: int | None = None,
    ):
        self._source = source
        self.horizons = tuple(int(h) for h in horizons)
        self._options = dict(options) if options is not None else {"realtime": True}
        self._max_workers = max_workers or max(1, len(DisasterKind) * len(self.horizons))
        self._cycle_lock = threading.Lock()
        self._generation = 0
        self.snapshot = ForecastSnapshot.empty()

    @classmethod
    def from_config(cls, config: OverlayConfig) -> "ForecastOrchestrator":
        """Build an orchestrator with its own request client and registry."""
        client = ForecastRequestClient(
            api_base=config.api_base,
            timeout=config.effective_timeout_s,
            registry=CancellationRegistry(),
        )
        return cls(
            client,
            horizons=config.horizons,
            options=config.options,
            max_workers=config.max_workers,
        )

    @property
    def source(self) -> ForecastSource:
        return self._source

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    def grid(self) -> list[RequestKey]:
        """Every (disaster, horizon) cell, disasters outermost."""
        return [RequestKey(kind, h) for kind in DisasterKind for h in self.horizons]

    def run_cycle(self) -> ForecastSnapshot:
        """
        Request every grid cell, wait for all of them, publish the snapshot.

        Cycles on one orchestrator never overlap; a concurrent caller
        waits for the running cycle to finish first.

        Returns:
            The snapshot of this cycle. It is published as
            ``self.snapshot`` unless shutdown() ran in the meantime.
        """
        with self._cycle_lock:
            generation = self._generation
            grid = self.grid()
            results: dict[RequestKey, tuple[Feature, ...]] = {}

            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                futures = {
                    executor.submit(
                        self._source.infer, key.disaster, key.horizon, self._options
                    ): key
                    for key in grid
                }
                for future in as_completed(futures):
                    results[futures[future]] = self._cell_result(futures[future], future)

            snapshot = ForecastSnapshot.from_cells(results, self.horizons)
            if generation == self._generation:
                self.snapshot = snapshot
            else:
                _log.debug("Discarding snapshot of a cycle interrupted by shutdown")
            return snapshot

    def _cell_result(self, key: RequestKey, future) -> tuple[Feature, ...]:
        try:
            return tuple(future.result())
        except AbortError as e:
            _log.debug("Prediction fetch for %s cancelled: %s", key.tag, e)
        except InferenceError as e:
            _log.warning(
                "Prediction fetch failed for %s %dh: %s",
                key.disaster.value, key.horizon, e,
            )
        except Exception:
            _log.exception(
                "Prediction fetch failed for %s %dh",
                key.disaster.value, key.horizon,
            )
        return ()

    def cancel(self, disaster: DisasterKind, horizon: int) -> None:
        self._source.cancel(disaster, horizon)

    def activate(self) -> None:
        """Accept new requests again after shutdown()."""
        self._source.reopen()

    def shutdown(self) -> None:
        """
        Cancel all in-flight requests and discard the snapshot.

        Never raises. Requests issued after this call fail immediately
        with AbortError until activate() is called.
        """
        self._generation += 1
        self._source.close()
        self.snapshot = ForecastSnapshot.empty()
