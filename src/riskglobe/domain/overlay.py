# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Forecast overlay composition.

Turns the latest ForecastSnapshot into render primitives grouped by
horizon and then by disaster kind. Each horizon layer spins at its own
rate so the stacked forecasts stay visually apart. No request logic
lives here; the overlay only reads published snapshots.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from riskglobe.domain.forecast import (
    DEFAULT_STYLES,
    DisasterKind,
    ForecastSnapshot,
    StyleEntry,
    style_for,
)
from riskglobe.domain.projection import RenderPrimitive, project


# Radians per 60 Hz frame, cycled over horizon layers.
ROTATION_SPEEDS = (0.0012, -0.0008, 0.0005)


@dataclass(frozen=True)
class DisasterGroup:
    """Primitives of one disaster kind within a horizon layer."""
    disaster: DisasterKind
    color: str
    primitives: tuple[RenderPrimitive, ...]


@dataclass(frozen=True)
class HorizonLayer:
    """All disaster groups for one forecast horizon."""
    horizon: int
    index: int
    rotation_speed: float
    groups: tuple[DisasterGroup, ...]

    def primitive_count(self) -> int:
        return sum(len(g.primitives) for g in self.groups)


def rotation_speed(horizon_index: int) -> float:
    return ROTATION_SPEEDS[horizon_index % len(ROTATION_SPEEDS)]


def render_overlay(
    snapshot: ForecastSnapshot,
    styles: Mapping[DisasterKind, StyleEntry] = DEFAULT_STYLES,
    horizons: Sequence[int] = (6, 12, 24),
) -> list[HorizonLayer]:
    """
    Build horizon layers from a forecast snapshot.

    Args:
        snapshot: Most recently published forecast snapshot.
        styles: Per-kind color and altitude offset.
        horizons: Tracked horizons in display order.

    Returns:
        One HorizonLayer per horizon, groups in DisasterKind order.
    """
    layers: list[HorizonLayer] = []
    for index, horizon in enumerate(horizons):
        groups = []
        for kind in DisasterKind:
            style = style_for(kind, styles)
            primitives: list[RenderPrimitive] = []
            for feature in snapshot.features(kind, horizon):
                primitives.extend(
                    project(feature.geometry, style, index, feature.properties)
                )
            groups.append(DisasterGroup(
                disaster=kind,
                color=style.color,
                primitives=tuple(primitives),
            ))
        layers.append(HorizonLayer(
            horizon=horizon,
            index=index,
            rotation_speed=rotation_speed(index),
            groups=tuple(groups),
        ))
    return layers


class LayerRotation:
    """Accumulated y-axis rotation of each horizon layer."""

    def __init__(self, layer_count: int) -> None:
        self.angles = [0.0] * layer_count

    def advance(self, delta_s: float) -> list[float]:
        """Advance by one frame of delta_s seconds; returns the new angles."""
        for i in range(len(self.angles)):
            self.angles[i] += rotation_speed(i) * (delta_s * 60.0)
        return list(self.angles)


class Highlight:
    """The entity under the pointer, if any."""

    def __init__(self) -> None:
        self.current: Any = None

    def enter(self, entity: Any) -> None:
        self.current = entity

    def leave(self) -> None:
        self.current = None

    @property
    def active(self) -> bool:
        return self.current is not None
