# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Adapters for the inference backend, polling, CelesTrak and scene export.

External dependencies (urllib, json, threads, sgp4, file I/O) are
confined to this layer. The CelesTrak adapter imports sgp4 lazily.
"""
from riskglobe.adapters.inference_client import (
    CancelHandle,
    CancellationRegistry,
    ForecastRequestClient,
)
from riskglobe.adapters.orchestrator import ForecastOrchestrator
from riskglobe.adapters.polling import PollingScheduler, SchedulerState
from riskglobe.adapters.scene_exporter import build_scene, write_scene

__all__ = [
    "CancelHandle",
    "CancellationRegistry",
    "ForecastRequestClient",
    "ForecastOrchestrator",
    "PollingScheduler",
    "SchedulerState",
    "build_scene",
    "write_scene",
]
