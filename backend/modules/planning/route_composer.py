"""
modules/planning/route_composer.py
-----------------------------------
Builds the ordered route of a trip draft from three entry paths:

  select_suggestion()  — the operator picked a search suggestion
  handle_map_click()   — the operator clicked the map
  add_point()          — direct coordinates (also the common tail of both)

All three funnel into add_point(), which owns the duplicate check and the
1..N ordering.  The route slice is always written back to the DraftStore as a
whole list.

resolve_route() asks the geo adapter for a road path through the points in
their existing order and falls back to a straight line when the adapter
cannot produce one.  The fallback never surfaces as an error.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from modules.draft.store import DraftStore
from modules.errors import GeoLookupError
from modules.planning.geo import (
    ROUTE_POINT_TOLERANCE_DEG,
    bounds_center,
    find_duplicate,
    route_bounds,
    straight_line_path,
    validate_coordinates,
)
from modules.tool_usage.geo_lookup_tool import GeoLookup
from schemas.draft import RoutePoint
from schemas.geo import LatLng, PlaceSuggestion, RouteFailure, RoutePath

logger = logging.getLogger(__name__)


class AddPointOutcome(str, Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    BUSY = "busy"
    LOOKUP_FAILED = "lookup_failed"


@dataclass
class AddPointResult:
    outcome: AddPointOutcome
    point: Optional[RoutePoint] = None
    notice: Optional[str] = None

    @property
    def added(self) -> bool:
        return self.outcome is AddPointOutcome.ADDED


def renumber_points(points: list[RoutePoint]) -> list[RoutePoint]:
    """Set order = 1..N following list position (in place; returns the list)."""
    for idx, point in enumerate(points, start=1):
        point.order = idx
    return points


def click_label(lat: float, lng: float) -> str:
    return f"Point {lat:.4f}, {lng:.4f}"


class RouteComposer:
    """Route slice editor for one wizard session."""

    def __init__(
        self,
        store: DraftStore,
        geo_lookup: GeoLookup,
        tolerance: float = ROUTE_POINT_TOLERANCE_DEG,
    ) -> None:
        self.store = store
        self.geo_lookup = geo_lookup
        self.tolerance = tolerance
        self.path: RoutePath = RoutePath()
        self._click_in_flight = False

    @property
    def points(self) -> list[RoutePoint]:
        return self.store.get().route_points

    # ── Point editing ─────────────────────────────────────────────────────────

    def add_point(self, lat: float, lng: float, label: Optional[str] = None) -> AddPointResult:
        """
        Append a stop unless one already exists within the tolerance.

        When the route was empty, the draft's own coordinates and
        destination region are seeded from this first stop.
        """
        if not validate_coordinates(lat, lng):
            return AddPointResult(
                AddPointOutcome.INVALID,
                notice=f"Coordinates out of range: {lat}, {lng}",
            )

        points = self.points
        existing = find_duplicate(lat, lng, points, self.tolerance)
        if existing is not None:
            logger.info("Skipping duplicate point near %r", existing.name)
            return AddPointResult(
                AddPointOutcome.DUPLICATE,
                point=existing,
                notice=f"{existing.name or 'This place'} is already on the route",
            )

        name = (label or "").strip() or f"Destination {len(points) + 1}"
        point = RoutePoint(
            id=f"point-{uuid.uuid4().hex[:12]}",
            name=name,
            lat=lat,
            lng=lng,
            order=len(points) + 1,
        )
        was_empty = not points
        points.append(point)
        self._write_points(points)

        if was_empty:
            self.store.set_identity(
                latitude=lat,
                longitude=lng,
                destination_region=(label or "").strip(),
            )

        logger.debug("Added route point %s (%s) at order %d", point.id, name, point.order)
        return AddPointResult(AddPointOutcome.ADDED, point=point)

    def remove_point(self, point_id: str) -> bool:
        points = self.points
        kept = [p for p in points if p.id != point_id]
        if len(kept) == len(points):
            return False
        self._write_points(kept)
        return True

    def rename_point(self, point_id: str, name: str) -> bool:
        points = self.points
        for point in points:
            if point.id == point_id:
                point.name = name
                self.store.set_route_points(points)
                return True
        return False

    def move_point(self, point_id: str, new_index: int) -> bool:
        points = self.points
        idx = next((i for i, p in enumerate(points) if p.id == point_id), None)
        if idx is None:
            return False
        if not 0 <= new_index < len(points):
            raise IndexError(f"route position {new_index} out of range")
        points.insert(new_index, points.pop(idx))
        self._write_points(points)
        return True

    def _write_points(self, points: list[RoutePoint]) -> None:
        self.store.set_route_points(renumber_points(points))
        if len(points) < 2:
            self.path = RoutePath()

    # ── Entry paths that need the geo adapter ─────────────────────────────────

    async def handle_map_click(self, lat: float, lng: float) -> AddPointResult:
        """
        Reverse-geocode a clicked coordinate and add it.

        Only one click is processed at a time; a click that arrives while
        another is being resolved is rejected with BUSY.
        """
        if self._click_in_flight:
            return AddPointResult(AddPointOutcome.BUSY, notice="Still adding the previous point")

        self._click_in_flight = True
        try:
            try:
                label = await asyncio.to_thread(self.geo_lookup.reverse_geocode, lat, lng)
            except GeoLookupError as exc:
                logger.warning("Reverse geocode failed for (%s, %s): %s", lat, lng, exc)
                label = None
            return self.add_point(lat, lng, label or click_label(lat, lng))
        finally:
            self._click_in_flight = False

    async def select_suggestion(self, suggestion: PlaceSuggestion) -> AddPointResult:
        try:
            place = await asyncio.to_thread(self.geo_lookup.resolve, suggestion.place_ref)
        except GeoLookupError as exc:
            logger.warning("Could not resolve %r: %s", suggestion.label, exc)
            return AddPointResult(
                AddPointOutcome.LOOKUP_FAILED,
                notice=f"Could not load details for {suggestion.label}",
            )
        return self.add_point(place.lat, place.lng, place.label or suggestion.label)

    # ── Path ──────────────────────────────────────────────────────────────────

    async def resolve_route(self, points: Sequence[RoutePoint] | None = None) -> RoutePath:
        """Road path through the stops, or the straight-line fallback."""
        points = list(points) if points is not None else self.points
        if len(points) < 2:
            self.path = RoutePath()
            return self.path

        try:
            result = await asyncio.to_thread(self.geo_lookup.route, points)
        except Exception:
            logger.exception("Geo adapter raised while routing %d points", len(points))
            result = RouteFailure("adapter error")

        if isinstance(result, RouteFailure):
            logger.info("Routing failed (%s); drawing straight line", result.reason)
            result = straight_line_path(points)

        self.path = result
        return self.path

    def bounds(self) -> dict[str, float]:
        return route_bounds(self.points)

    def center(self) -> LatLng:
        return bounds_center(self.bounds())
