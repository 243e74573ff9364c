# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Domain layer: forecast data model, geometry projection, overlay composition.

Pure functions and value objects only; numpy is the sole third-party import.
"""
