# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Tracked satellite markers.

TLE catalog parsing, TEME to geodetic conversion and globe marker
primitives. Propagation itself (sgp4) lives in the CelesTrak adapter.

Frames:
    TEME is rotated into Earth-fixed coordinates by GMST (IAU 1982
    polynomial in days since J2000.0), then converted to WGS84
    geodetic latitude/longitude/height with a fixed-point iteration.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timezone

from riskglobe.domain.projection import RenderPrimitive, geo_to_cartesian


WGS84_A_KM = 6378.137
WGS84_F = 1.0 / 298.257223563
WGS84_E2 = WGS84_F * (2.0 - WGS84_F)

MARKER_ALTITUDE = 0.05
MARKER_SIZE = 0.015
MARKER_COLORS = ("#ffcc00", "#00ffff", "#ff66cc", "#33ff33", "#ff3333", "#aa66ff")

_J2000 = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@dataclass(frozen=True)
class TrackedSatellite:
    """A named satellite with its two-line element set."""
    name: str
    line1: str
    line2: str


@dataclass(frozen=True)
class SatellitePosition:
    """Geodetic position and speed of a satellite at one instant."""
    name: str
    lat_deg: float
    lon_deg: float
    alt_km: float
    speed_kmh: float


def parse_tle_catalog(text: str, limit: int | None = 6) -> list[TrackedSatellite]:
    """
    Parse three-line TLE text (name, line 1, line 2 per object).

    Blank lines are ignored. A trailing incomplete record is dropped.
    Parsing stops once ``limit`` satellites have been read.
    """
    lines = [line.rstrip() for line in text.splitlines() if line.strip()]
    satellites: list[TrackedSatellite] = []
    for i in range(0, len(lines) - 2, 3):
        if limit is not None and len(satellites) >= limit:
            break
        name, line1, line2 = lines[i].strip(), lines[i + 1], lines[i + 2]
        if not (line1.startswith("1 ") and line2.startswith("2 ")):
            continue
        satellites.append(TrackedSatellite(name=name, line1=line1, line2=line2))
    return satellites


def gmst_rad(when: datetime) -> float:
    """Greenwich Mean Sidereal Time in radians, normalised to [0, 2π)."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    days = (when - _J2000).total_seconds() / 86400.0
    centuries = days / 36525.0
    deg = (
        280.46061837
        + 360.98564736629 * days
        + 0.000387933 * centuries**2
        - centuries**3 / 38710000.0
    )
    return math.radians(deg % 360.0)


def teme_to_geodetic(
    position_km: tuple[float, float, float],
    when: datetime,
) -> tuple[float, float, float]:
    """
    Convert a TEME position to geodetic coordinates.

    Returns:
        (lat_deg, lon_deg, height_km); longitude in (-180, 180].
    """
    theta = gmst_rad(when)
    x, y, z = position_km
    x_ef = math.cos(theta) * x + math.sin(theta) * y
    y_ef = -math.sin(theta) * x + math.cos(theta) * y

    lon = math.atan2(y_ef, x_ef)
    p = math.hypot(x_ef, y_ef)
    lat = math.atan2(z, p * (1.0 - WGS84_E2))
    n = WGS84_A_KM
    for _ in range(10):
        sin_lat = math.sin(lat)
        n = WGS84_A_KM / math.sqrt(1.0 - WGS84_E2 * sin_lat**2)
        lat = math.atan2(z + n * WGS84_E2 * sin_lat, p)

    cos_lat = math.cos(lat)
    if abs(cos_lat) > 1e-10:
        height = p / cos_lat - n
    else:
        height = abs(z) - WGS84_A_KM * (1.0 - WGS84_F)
    return math.degrees(lat), math.degrees(lon), height


def speed_kmh(velocity_km_s: tuple[float, float, float]) -> float:
    return math.sqrt(sum(v * v for v in velocity_km_s)) * 3600.0


def marker_color(index: int) -> str:
    return MARKER_COLORS[index % len(MARKER_COLORS)]


def marker_primitive(position: SatellitePosition, index: int) -> RenderPrimitive:
    """Fixed-altitude marker sphere for a satellite."""
    return RenderPrimitive(
        kind="point",
        positions=(geo_to_cartesian(position.lat_deg, position.lon_deg, MARKER_ALTITUDE),),
        size=MARKER_SIZE,
        color=marker_color(index),
        opacity=1.0,
        altitude=MARKER_ALTITUDE,
    )


def telemetry_readout(position: SatellitePosition) -> dict[str, object]:
    """Hover readout for a highlighted satellite."""
    return {
        "name": position.name,
        "lat_deg": round(position.lat_deg, 2),
        "lon_deg": round(position.lon_deg, 2),
        "alt_km": round(position.alt_km, 2),
        "speed_kmh": round(position.speed_kmh),
    }
