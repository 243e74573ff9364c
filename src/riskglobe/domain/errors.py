# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Error types for forecast retrieval and geometry projection.

InferenceError and AbortError are recovered per grid cell by the
orchestrator. MalformedGeometryError never leaves the projection module.
"""


class ForecastRequestError(Exception):
    """Base class for failures of a single (disaster, horizon) request."""


class InferenceError(ForecastRequestError):
    """The inference backend answered with a non-success status or bad body."""

    def __init__(self, status: int | None, message: str):
        self.status = status
        self.message = message
        if status is None:
            super().__init__(f"Inference request failed: {message}")
        else:
            super().__init__(f"Inference request failed: {status} {message}")


class AbortError(ForecastRequestError):
    """The request was cancelled before its result could be used."""


class MalformedGeometryError(ValueError):
    """Geometry coordinates do not have the structure their type requires."""
