# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
CelesTrak adapter: fetches TLEs of tracked satellites and propagates them.

External dependencies (urllib, sgp4) are confined to this layer.

Data source:
    CelesTrak active satellites, three-line TLE text:
    https://celestrak.org/NORAD/elements/active.txt

SGP4 propagation:
    The sgp4 library returns TEME position (km) and velocity (km/s);
    riskglobe.domain.satellites turns those into geodetic coordinates.
"""
import logging
import urllib.error
import urllib.request
from datetime import datetime, timezone

from riskglobe.domain.satellites import (
    SatellitePosition,
    TrackedSatellite,
    parse_tle_catalog,
    speed_kmh,
    teme_to_geodetic,
)


_log = logging.getLogger(__name__)

ACTIVE_TLE_URL = "https://celestrak.org/NORAD/elements/active.txt"
DEFAULT_SATELLITE_LIMIT = 6


def _require_sgp4():
    """Import sgp4 lazily; raise clear error if not installed."""
    try:
        from sgp4.api import Satrec, jday
    except ImportError:
        raise ImportError(
            "sgp4 is required for satellite markers. "
            "Install with: pip install riskglobe[live]"
        ) from None
    return Satrec, jday


def _as_utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def propagate(satellite: TrackedSatellite, when: datetime) -> SatellitePosition:
    """
    Propagate a TLE to ``when`` and convert to a geodetic position.

    Raises:
        ValueError: SGP4 reported an error (decayed orbit, bad elements).
    """
    Satrec, jday = _require_sgp4()
    when = _as_utc(when)
    satrec = Satrec.twoline2rv(satellite.line1, satellite.line2)
    jd, fr = jday(when.year, when.month, when.day, when.hour, when.minute,
                  when.second + when.microsecond / 1e6)
    error_code, position_km, velocity_km_s = satrec.sgp4(jd, fr)
    if error_code != 0:
        raise ValueError(f"SGP4 propagation error {error_code} for {satellite.name}")
    lat, lon, height = teme_to_geodetic(tuple(position_km), when)
    return SatellitePosition(
        name=satellite.name,
        lat_deg=lat,
        lon_deg=lon,
        alt_km=height,
        speed_kmh=speed_kmh(tuple(velocity_km_s)),
    )


class CelesTrakTleSource:
    """
    Fetches three-line TLE text from CelesTrak.

    Rate limiting: CelesTrak updates at most every 2 hours.
    """

    def __init__(self, url: str = ACTIVE_TLE_URL, timeout: int = 30):
        self._url = url
        self._timeout = timeout

    def fetch(self, limit: int | None = DEFAULT_SATELLITE_LIMIT) -> list[TrackedSatellite]:
        return parse_tle_catalog(self._fetch_text(), limit=limit)

    def _fetch_text(self) -> str:
        req = urllib.request.Request(self._url, headers={"User-Agent": "riskglobe/0.1"})
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                return response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            raise ConnectionError(f"CelesTrak API error {e.code}: {e.reason}") from e
        except urllib.error.URLError as e:
            raise ConnectionError(f"CelesTrak connection failed: {e.reason}") from e


class SatelliteTracker:
    """Current positions of a fixed set of tracked satellites."""

    def __init__(self, satellites: list[TrackedSatellite]):
        self.satellites = list(satellites)

    def positions(self, when: datetime | None = None) -> list[SatellitePosition]:
        """Propagate every satellite; ones that fail are skipped."""
        when = when or datetime.now(tz=timezone.utc)
        positions = []
        for sat in self.satellites:
            try:
                positions.append(propagate(sat, when))
            except ValueError as e:
                _log.warning("Skipping %s: %s", sat.name, e)
        return positions
