# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Forecast overlay configuration.

Environment variables (all optional):
    RISKGLOBE_API_BASE          backend origin, e.g. https://example.com
    RISKGLOBE_HORIZONS          comma-separated hours, e.g. 6,12,24
    RISKGLOBE_POLL_INTERVAL_MS  poll interval in milliseconds
    RISKGLOBE_ENABLED           0/false/no/off disables the overlay
"""
import os
from dataclasses import dataclass, field
from typing import Any, Mapping


DEFAULT_HORIZONS = (6, 12, 24)
DEFAULT_POLL_INTERVAL_MS = 5 * 60 * 1000

_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class OverlayConfig:
    """Immutable settings for the forecast overlay."""
    enabled: bool = True
    horizons: tuple[int, ...] = DEFAULT_HORIZONS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    api_base: str = ""
    request_timeout_s: float | None = None
    options: dict[str, Any] = field(default_factory=lambda: {"realtime": True})
    max_workers: int | None = None

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def effective_timeout_s(self) -> float:
        """Per-request timeout; defaults to the poll interval."""
        if self.request_timeout_s is not None:
            return self.request_timeout_s
        return self.poll_interval_s

    def validate(self) -> "OverlayConfig":
        """Raise ValueError for settings the pipeline cannot run with."""
        if not self.horizons:
            raise ValueError("At least one forecast horizon is required")
        for h in self.horizons:
            if isinstance(h, bool) or not isinstance(h, int) or h <= 0:
                raise ValueError(f"Horizon must be a positive integer number of hours, got {h!r}")
        if len(set(self.horizons)) != len(self.horizons):
            raise ValueError(f"Duplicate horizons in {self.horizons}")
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be positive, got {self.poll_interval_ms}")
        if self.request_timeout_s is not None and self.request_timeout_s <= 0:
            raise ValueError(f"request_timeout_s must be positive, got {self.request_timeout_s}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        return self

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "OverlayConfig":
        """Read settings from environment variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if "RISKGLOBE_API_BASE" in env:
            values["api_base"] = env["RISKGLOBE_API_BASE"]
        if env.get("RISKGLOBE_HORIZONS"):
            values["horizons"] = parse_horizons(env["RISKGLOBE_HORIZONS"])
        if env.get("RISKGLOBE_POLL_INTERVAL_MS"):
            values["poll_interval_ms"] = int(env["RISKGLOBE_POLL_INTERVAL_MS"])
        if "RISKGLOBE_ENABLED" in env:
            values["enabled"] = env["RISKGLOBE_ENABLED"].strip().lower() not in _FALSE_VALUES
        values.update(overrides)
        return cls(**values).validate()


def parse_horizons(text: str) -> tuple[int, ...]:
    """Parse ``"6, 12,24"`` into (6, 12, 24)."""
    try:
        return tuple(int(part) for part in text.split(",") if part.strip())
    except ValueError:
        raise ValueError(f"Invalid horizon list: {text!r}") from None
