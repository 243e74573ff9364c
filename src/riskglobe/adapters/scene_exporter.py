# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Scene JSON exporter.

Serialises forecast horizon layers, satellite markers and the hover
readout into a JSON document a WebGL globe can draw directly.
External dependencies (json, file I/O) are confined to this adapter.
"""
import json
from typing import Any, Mapping, Sequence

from riskglobe.domain.forecast import (
    DEFAULT_STYLES,
    DisasterKind,
    ForecastSnapshot,
    StyleEntry,
    style_for,
)
from riskglobe.domain.overlay import Highlight, HorizonLayer, render_overlay
from riskglobe.domain.projection import RenderPrimitive
from riskglobe.domain.satellites import (
    SatellitePosition,
    marker_primitive,
    telemetry_readout,
)


def _primitive_dict(primitive: RenderPrimitive) -> dict[str, Any]:
    return {
        "kind": primitive.kind,
        "positions": [
            [round(x, 6), round(y, 6), round(z, 6)] for x, y, z in primitive.positions
        ],
        "size": round(primitive.size, 6),
        "color": primitive.color,
        "opacity": primitive.opacity,
        "altitude": round(primitive.altitude, 6),
    }


def _layer_dict(layer: HorizonLayer) -> dict[str, Any]:
    return {
        "horizon_hours": layer.horizon,
        "index": layer.index,
        "rotation_speed": layer.rotation_speed,
        "groups": [
            {
                "disaster": group.disaster.value,
                "color": group.color,
                "primitives": [_primitive_dict(p) for p in group.primitives],
            }
            for group in layer.groups
        ],
    }


def build_scene(
    snapshot: ForecastSnapshot,
    horizons: Sequence[int],
    styles: Mapping[DisasterKind, StyleEntry] = DEFAULT_STYLES,
    satellites: Sequence[SatellitePosition] = (),
    highlight: Highlight | None = None,
) -> dict[str, Any]:
    """
    Compose a JSON-ready scene.

    The highlight readout is taken from ``highlight.current`` when it
    holds a SatellitePosition.
    """
    layers = render_overlay(snapshot, styles, horizons)
    current = highlight.current if highlight is not None else None
    return {
        "horizons": [_layer_dict(layer) for layer in layers],
        "satellites": [
            dict(_primitive_dict(marker_primitive(pos, i)), name=pos.name)
            for i, pos in enumerate(satellites)
        ],
        "highlight": telemetry_readout(current) if isinstance(current, SatellitePosition) else None,
        "legend": {kind.value: style_for(kind, styles).color for kind in DisasterKind},
    }


def count_primitives(scene: Mapping[str, Any]) -> int:
    forecast = sum(
        len(group["primitives"])
        for layer in scene.get("horizons", [])
        for group in layer["groups"]
    )
    return forecast + len(scene.get("satellites", []))


def write_scene(scene: Mapping[str, Any], path: str) -> int:
    """Write a scene to ``path``. Returns the number of primitives written."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(scene, f, indent=2, ensure_ascii=False)
    return count_primitives(scene)
