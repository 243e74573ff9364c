# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Port interface for forecast inference sources.

Adapters handle the actual HTTP calls and cancellation bookkeeping.
"""
from typing import Any, Protocol, runtime_checkable

from riskglobe.domain.forecast import DisasterKind, Feature


@runtime_checkable
class ForecastSource(Protocol):
    """Port for requesting disaster forecasts for one grid cell at a time."""

    def infer(
        self,
        disaster: DisasterKind,
        horizon: int,
        options: dict[str, Any] | None = None,
    ) -> tuple[Feature, ...]:
        """Return predicted features; raise InferenceError or AbortError."""
        ...

    def cancel(self, disaster: DisasterKind, horizon: int) -> None:
        """Cancel the in-flight request for one cell, if any."""
        ...

    def cancel_all(self) -> None:
        """Cancel every in-flight request."""
        ...

    def close(self) -> None:
        """Cancel everything and refuse new requests until reopen()."""
        ...

    def reopen(self) -> None:
        """Accept requests again after close()."""
        ...
