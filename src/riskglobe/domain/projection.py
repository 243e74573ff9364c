# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Geographic geometry to render primitive projection.

Maps GeoJSON Point / Polygon / MultiPolygon geometries onto a unit
globe. All layers (satellite markers, point overlays, polygon outlines)
share geo_to_cartesian so they line up on screen.

Globe convention:
    radius = 1 + altitude
    phi    = 90° - lat     (polar angle measured from +Y)
    theta  = lon + 180°    (azimuth)
    x = -r sin(phi) cos(theta)
    y =  r cos(phi)
    z =  r sin(phi) sin(theta)

Simplifications:
    Polygon holes are not drawn, only the outer ring.
    MultiPolygon draws its first polygon only.
"""
import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Mapping, Sequence

import numpy as np

from riskglobe.domain.errors import MalformedGeometryError
from riskglobe.domain.forecast import StyleEntry


_log = logging.getLogger(__name__)

DEFAULT_RISK = 0.5
POINT_BASE_SIZE = 0.006
POINT_MAX_EXTRA_SIZE = 0.03
POINT_RISK_SCALE = 0.08
POINT_OPACITY = 0.95
POLYGON_OPACITY = 0.22
POLYGON_LINE_WIDTH = 1.0
POLYGON_BASE_ALTITUDE = 0.01
POLYGON_HORIZON_STEP = 0.002

Vector3 = tuple[float, float, float]


@dataclass(frozen=True)
class RenderPrimitive:
    """
    One renderable unit.

    kind is "point" (a sphere at positions[0], radius = size) or
    "line" (a line strip through positions, width = size).
    """
    kind: str
    positions: tuple[Vector3, ...]
    size: float
    color: str
    opacity: float
    altitude: float


def geo_to_cartesian(lat_deg: float, lon_deg: float, altitude: float = 0.01) -> Vector3:
    """Project a geographic position onto the globe at 1 + altitude radius."""
    radius = 1.0 + altitude
    phi = math.radians(90.0 - lat_deg)
    theta = math.radians(lon_deg + 180.0)
    return (
        -radius * math.sin(phi) * math.cos(theta),
        radius * math.cos(phi),
        radius * math.sin(phi) * math.sin(theta),
    )


def geo_to_cartesian_many(
    lats_deg: np.ndarray,
    lons_deg: np.ndarray,
    altitude: float,
) -> np.ndarray:
    """Vectorised geo_to_cartesian. Returns an (N, 3) array."""
    radius = 1.0 + altitude
    phi = np.radians(90.0 - np.asarray(lats_deg, dtype=float))
    theta = np.radians(np.asarray(lons_deg, dtype=float) + 180.0)
    sin_phi = np.sin(phi)
    return np.column_stack((
        -radius * sin_phi * np.cos(theta),
        radius * np.cos(phi),
        radius * sin_phi * np.sin(theta),
    ))


def resolve_risk(properties: Mapping[str, Any] | None) -> float:
    """
    Risk score in [0, 1] for a feature.

    Missing, non-numeric or NaN values default to 0.5; numeric values
    outside [0, 1] are clamped.
    """
    value = (properties or {}).get("risk")
    if isinstance(value, bool) or not isinstance(value, Real):
        return DEFAULT_RISK
    value = float(value)
    if math.isnan(value):
        return DEFAULT_RISK
    return min(1.0, max(0.0, value))


def point_size(risk: float) -> float:
    """Sphere radius for a point feature, growing with risk up to a cap."""
    return POINT_BASE_SIZE + min(POINT_MAX_EXTRA_SIZE, risk * POINT_RISK_SCALE)


def polygon_altitude(horizon_index: int) -> float:
    """Outline altitude; later horizons sit slightly higher."""
    return POLYGON_BASE_ALTITUDE + horizon_index * POLYGON_HORIZON_STEP


def _lon_lat(position: Any) -> tuple[float, float]:
    if not isinstance(position, Sequence) or isinstance(position, str) or len(position) < 2:
        raise MalformedGeometryError(f"Expected [lon, lat], got {position!r}")
    lon, lat = position[0], position[1]
    if not all(isinstance(v, Real) and not isinstance(v, bool) for v in (lon, lat)):
        raise MalformedGeometryError(f"Non-numeric position {position!r}")
    lon, lat = float(lon), float(lat)
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise MalformedGeometryError(f"Non-finite position {position!r}")
    return lon, lat


def _is_position(value: Any) -> bool:
    return (
        isinstance(value, Sequence)
        and not isinstance(value, str)
        and len(value) > 0
        and isinstance(value[0], Real)
    )


def _outer_ring(coordinates: Any) -> list[Any]:
    """
    Outer ring of a polygon coordinate array.

    Accepts polygon coordinates (ring list) and, one level deeper,
    multipolygon coordinates; the first ring found is returned.
    """
    if not isinstance(coordinates, Sequence) or not coordinates:
        raise MalformedGeometryError("Polygon has no rings")
    ring = coordinates[0]
    if isinstance(ring, Sequence) and ring and not _is_position(ring[0]):
        ring = ring[0]
    if not isinstance(ring, Sequence) or isinstance(ring, str) or not ring:
        raise MalformedGeometryError("Polygon outer ring is empty")
    return list(ring)


def _project_point(
    coordinates: Any,
    properties: Mapping[str, Any] | None,
    style: StyleEntry,
) -> list[RenderPrimitive]:
    lon, lat = _lon_lat(coordinates)
    altitude = 1.0 + style.alt_offset
    return [RenderPrimitive(
        kind="point",
        positions=(geo_to_cartesian(lat, lon, altitude),),
        size=point_size(resolve_risk(properties)),
        color=style.color,
        opacity=POINT_OPACITY,
        altitude=altitude,
    )]


def _project_ring(
    ring: list[Any],
    style: StyleEntry,
    horizon_index: int,
) -> list[RenderPrimitive]:
    lon_lat = np.array([_lon_lat(p) for p in ring], dtype=float)
    if len(lon_lat) > 1 and not np.array_equal(lon_lat[0], lon_lat[-1]):
        lon_lat = np.vstack((lon_lat, lon_lat[:1]))
    altitude = polygon_altitude(horizon_index)
    xyz = geo_to_cartesian_many(lon_lat[:, 1], lon_lat[:, 0], altitude)
    return [RenderPrimitive(
        kind="line",
        positions=tuple((float(x), float(y), float(z)) for x, y, z in xyz),
        size=POLYGON_LINE_WIDTH,
        color=style.color,
        opacity=POLYGON_OPACITY,
        altitude=altitude,
    )]


def project(
    geometry: Mapping[str, Any] | None,
    style: StyleEntry,
    horizon_index: int = 0,
    properties: Mapping[str, Any] | None = None,
) -> list[RenderPrimitive]:
    """
    Project one geometry into render primitives.

    Args:
        geometry: GeoJSON geometry dict (type + coordinates).
        style: Color and altitude offset of the disaster layer.
        horizon_index: Position of the horizon in the tracked list;
            raises polygon outlines by 0.002 per step.
        properties: Feature properties; ``risk`` sizes point markers.

    Returns:
        Primitives for the geometry. Unsupported types and malformed
        coordinates give an empty list.
    """
    if not isinstance(geometry, Mapping):
        return []
    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    try:
        if geom_type == "Point":
            return _project_point(coordinates, properties, style)
        if geom_type == "Polygon":
            return _project_ring(_outer_ring(coordinates), style, horizon_index)
        if geom_type == "MultiPolygon":
            if not isinstance(coordinates, Sequence) or not coordinates:
                raise MalformedGeometryError("MultiPolygon has no polygons")
            return _project_ring(_outer_ring(coordinates[0]), style, horizon_index)
    except MalformedGeometryError as e:
        _log.debug("Skipping %s geometry: %s", geom_type, e)
    return []
