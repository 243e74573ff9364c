"""
riskglobe

Disaster-risk forecast overlay for a satellite globe. Polls an external
inference service for fire, flood and landslide predictions over a grid
of forecast horizons, keeps the latest complete snapshot, and projects
the returned GeoJSON onto the globe as render primitives alongside live
satellite markers.
"""

from riskglobe.domain.errors import (
    ForecastRequestError,
    InferenceError,
    AbortError,
    MalformedGeometryError,
)
from riskglobe.domain.forecast import (
    DisasterKind,
    RequestKey,
    Feature,
    ForecastSnapshot,
    StyleEntry,
    DEFAULT_STYLES,
    features_from_payload,
)
from riskglobe.domain.projection import (
    RenderPrimitive,
    geo_to_cartesian,
    project,
    resolve_risk,
    point_size,
)
from riskglobe.domain.overlay import (
    DisasterGroup,
    HorizonLayer,
    Highlight,
    LayerRotation,
    render_overlay,
)
from riskglobe.domain.satellites import (
    TrackedSatellite,
    SatellitePosition,
    parse_tle_catalog,
    marker_primitive,
)
from riskglobe.config import OverlayConfig

__version__ = "0.1.0"
