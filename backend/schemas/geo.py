"""
schemas/geo.py
--------------
Value objects exchanged with the geo lookup adapter.

route() returns either a RoutePath or a RouteFailure; it never raises for
"no route" so the caller can decide on the fallback.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class PlaceSuggestion:
    """One partial-text search hit; place_ref is opaque to callers."""
    label: str
    place_ref: str


@dataclass(frozen=True)
class ResolvedPlace:
    lat: float
    lng: float
    label: str


class PathSource(str, Enum):
    DIRECTIONS = "directions"        # computed by the routing service
    STRAIGHT_LINE = "straight_line"  # local fallback between the stops


@dataclass
class RoutePath:
    """Polyline to draw for the route, vertices in travel order."""
    vertices: list[LatLng] = field(default_factory=list)
    source: PathSource = PathSource.DIRECTIONS
    distance_m: float | None = None
    duration_s: float | None = None


@dataclass(frozen=True)
class RouteFailure:
    """Routing service could not produce a path (quota, network, ZERO_RESULTS...)."""
    reason: str
