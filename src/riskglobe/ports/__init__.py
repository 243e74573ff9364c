# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Port interfaces for external collaborators.

Adapters implement these to talk to inference backends.
"""
from riskglobe.ports.forecast_source import ForecastSource

__all__ = ["ForecastSource"]
