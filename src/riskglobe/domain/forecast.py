# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Forecast data model.

Disaster kinds, request keys, GeoJSON features as returned by the
inference backend, the per-cycle forecast snapshot and the static
per-kind style table. No external dependencies.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping


class DisasterKind(Enum):
    """Hazard categories tracked by the forecast overlay."""
    FIRES = "fires"
    FLOODS = "floods"
    LANDSLIDES = "landslides"


@dataclass(frozen=True)
class RequestKey:
    """Identity of one grid cell: a disaster kind at one horizon (hours)."""
    disaster: DisasterKind
    horizon: int

    @property
    def tag(self) -> str:
        """Registry key, e.g. ``fires-6``."""
        return f"{self.disaster.value}-{self.horizon}"


@dataclass(frozen=True)
class Feature:
    """
    One GeoJSON geometry with its properties.

    Fields are not reassignable, but the dict payloads are; compares by
    value and is unhashable.
    """
    geometry: dict[str, Any]
    properties: dict[str, Any] = field(default_factory=dict)

    __hash__ = None

    @classmethod
    def from_geojson(cls, obj: Any) -> "Feature | None":
        """Build a Feature from a GeoJSON feature dict, or None if it has no geometry."""
        if not isinstance(obj, Mapping):
            return None
        geometry = obj.get("geometry")
        if not isinstance(geometry, Mapping):
            return None
        properties = obj.get("properties")
        if not isinstance(properties, Mapping):
            properties = {}
        return cls(geometry=dict(geometry), properties=dict(properties))


def features_from_payload(payload: Any) -> tuple[Feature, ...]:
    """
    Extract features from an inference response body.

    Accepts ``{"geojson": FeatureCollection}`` or a bare FeatureCollection.
    Anything without a ``features`` list yields an empty tuple.
    """
    if isinstance(payload, Mapping) and payload.get("geojson"):
        payload = payload["geojson"]
    if not isinstance(payload, Mapping):
        return ()
    raw = payload.get("features")
    if not isinstance(raw, list):
        return ()
    features = (Feature.from_geojson(item) for item in raw)
    return tuple(f for f in features if f is not None)


@dataclass(frozen=True)
class ForecastSnapshot:
    """
    Complete forecast results of one poll cycle.

    Maps each DisasterKind to a mapping of horizon (hours) to the
    features predicted for that cell. Snapshots are never mutated;
    a new cycle produces a new snapshot. Compares by value; unhashable.
    """
    cells: dict[DisasterKind, dict[int, tuple[Feature, ...]]]

    __hash__ = None

    @classmethod
    def empty(cls) -> "ForecastSnapshot":
        return cls(cells={kind: {} for kind in DisasterKind})

    @classmethod
    def from_cells(
        cls,
        results: Mapping[RequestKey, Iterable[Feature]],
        horizons: Iterable[int],
    ) -> "ForecastSnapshot":
        """
        Assemble a snapshot with an entry for every (kind, horizon) pair.

        Pairs missing from ``results`` get an empty feature tuple.
        """
        horizons = list(horizons)
        cells: dict[DisasterKind, dict[int, tuple[Feature, ...]]] = {}
        for kind in DisasterKind:
            cells[kind] = {
                h: tuple(results.get(RequestKey(kind, h), ()))
                for h in horizons
            }
        return cls(cells=cells)

    def features(self, disaster: DisasterKind, horizon: int) -> tuple[Feature, ...]:
        return self.cells.get(disaster, {}).get(horizon, ())

    def keys(self) -> list[RequestKey]:
        return [
            RequestKey(kind, h)
            for kind, by_horizon in self.cells.items()
            for h in by_horizon
        ]

    def feature_count(self) -> int:
        return sum(
            len(features)
            for by_horizon in self.cells.values()
            for features in by_horizon.values()
        )

    def to_dict(self) -> dict[str, dict[int, list[dict[str, Any]]]]:
        """Plain nested dict keyed by disaster name then horizon."""
        return {
            kind.value: {
                h: [
                    {"type": "Feature", "geometry": f.geometry, "properties": f.properties}
                    for f in features
                ]
                for h, features in by_horizon.items()
            }
            for kind, by_horizon in self.cells.items()
        }


@dataclass(frozen=True)
class StyleEntry:
    """Visual encoding of one disaster kind."""
    color: str
    alt_offset: float


DEFAULT_STYLES: dict[DisasterKind, StyleEntry] = {
    DisasterKind.FIRES: StyleEntry(color="#ff6600", alt_offset=0.02),
    DisasterKind.FLOODS: StyleEntry(color="#0066ff", alt_offset=0.025),
    DisasterKind.LANDSLIDES: StyleEntry(color="#ffcc00", alt_offset=0.018),
}

FALLBACK_STYLE = StyleEntry(color="#ffffff", alt_offset=0.02)


def style_for(
    disaster: DisasterKind,
    styles: Mapping[DisasterKind, StyleEntry] = DEFAULT_STYLES,
) -> StyleEntry:
    return styles.get(disaster, FALLBACK_STYLE)
