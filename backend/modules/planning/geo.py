"""
modules/planning/geo.py
-----------------------
Pure geometry helpers for route composition.  No external HTTP calls.

  is_duplicate_point   — fixed-tolerance "same stop" predicate
  straight_line_path   — fallback path through the stops in their order
  route_bounds         — bounding box for fitting the map to the route
  haversine_km         — great-circle distance, used for path length
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import config
from schemas.draft import RoutePoint
from schemas.geo import LatLng, PathSource, RoutePath

_EARTH_RADIUS_KM = 6371.0

# ~10 m at the equator; compared per axis, not as a distance
ROUTE_POINT_TOLERANCE_DEG: float = config.ROUTE_POINT_TOLERANCE_DEG


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (Haversine formula) in km."""
    r = _EARTH_RADIUS_KM
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return 2 * r * math.asin(math.sqrt(a))


def validate_coordinates(lat: float, lng: float) -> bool:
    """True when lat/lng fall inside the valid WGS84 ranges."""
    return -90 <= lat <= 90 and -180 <= lng <= 180


def same_place(
    lat1: float,
    lng1: float,
    lat2: float,
    lng2: float,
    tolerance: float = ROUTE_POINT_TOLERANCE_DEG,
) -> bool:
    return abs(lat1 - lat2) < tolerance and abs(lng1 - lng2) < tolerance


def is_duplicate_point(
    lat: float,
    lng: float,
    points: Iterable[RoutePoint],
    tolerance: float = ROUTE_POINT_TOLERANCE_DEG,
) -> bool:
    """True if any existing point lies within *tolerance* degrees on both axes."""
    return any(same_place(p.lat, p.lng, lat, lng, tolerance) for p in points)


def find_duplicate(
    lat: float,
    lng: float,
    points: Iterable[RoutePoint],
    tolerance: float = ROUTE_POINT_TOLERANCE_DEG,
) -> RoutePoint | None:
    for p in points:
        if same_place(p.lat, p.lng, lat, lng, tolerance):
            return p
    return None


def straight_line_path(points: Sequence[RoutePoint]) -> RoutePath:
    """
    Fallback path: one vertex per stop, in the order given.

    Pure local computation; always succeeds.  Distance is the sum of
    great-circle legs, duration is unknown.
    """
    vertices = [LatLng(p.lat, p.lng) for p in points]
    distance_km = sum(
        haversine_km(a.lat, a.lng, b.lat, b.lng)
        for a, b in zip(vertices, vertices[1:])
    )
    return RoutePath(
        vertices=vertices,
        source=PathSource.STRAIGHT_LINE,
        distance_m=round(distance_km * 1000.0, 1),
        duration_s=None,
    )


def route_bounds(points: Sequence[RoutePoint]) -> dict[str, float]:
    """Return {north, south, east, west} for *points*, or {} when empty."""
    if not points:
        return {}
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return {
        "north": max(lats),
        "south": min(lats),
        "east": max(lngs),
        "west": min(lngs),
    }


def bounds_center(bounds: dict[str, float]) -> LatLng:
    """Centre of a bounds dict, or the configured default map centre."""
    if not bounds:
        return LatLng(config.DEFAULT_MAP_CENTER_LAT, config.DEFAULT_MAP_CENTER_LNG)
    return LatLng(
        (bounds["north"] + bounds["south"]) / 2.0,
        (bounds["east"] + bounds["west"]) / 2.0,
    )
