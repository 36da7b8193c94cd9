"""
modules/tool_usage/geo_lookup_tool.py
---------------------------------------
Geo lookup adapter: place search, place resolution, reverse geocoding and
multi-stop directions behind one narrow contract.

Implementations:
  GoogleGeoLookup — Google Maps web services through the `googlemaps` client
                    (Places Autocomplete, Place Details, Geocoding, Directions).
  StubGeoLookup   — deterministic offline data; no API key needed.

Config knobs (config.py):
  USE_STUB_GEO             -- pick the stub (default: true)
  GOOGLE_MAPS_API_KEY      -- required when USE_STUB_GEO=false
  GEO_LANGUAGE, GEO_REGION, GEO_COUNTRY_RESTRICTION, GEO_REQUEST_TIMEOUT

Error contract:
  search / resolve / reverse_geocode raise GeoLookupError on transport or API
  failure, on a client that cannot be built (missing or malformed key) and on
  a response payload of the wrong shape; nothing else escapes them.
  route() never raises for service problems: it returns a RouteFailure and
  the caller picks the fallback.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Sequence

import googlemaps
from googlemaps import convert as gm_convert
from googlemaps import exceptions as gm_exceptions

import config
from modules.errors import GeoLookupError
from modules.planning.geo import haversine_km
from schemas.draft import RoutePoint
from schemas.geo import LatLng, PathSource, PlaceSuggestion, ResolvedPlace, RouteFailure, RoutePath

logger = logging.getLogger(__name__)

_GOOGLE_ERRORS = (
    gm_exceptions.ApiError,
    gm_exceptions.TransportError,
    gm_exceptions.Timeout,
)

# Raised while reading a response that does not have the documented shape
_PAYLOAD_ERRORS = (KeyError, TypeError, ValueError, AttributeError, IndexError)


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

class GeoLookup(ABC):
    """Narrow contract the route composer and place search depend on."""

    @abstractmethod
    def search(self, text: str) -> list[PlaceSuggestion]:
        """Partial-text place suggestions."""

    @abstractmethod
    def resolve(self, place_ref: str) -> ResolvedPlace:
        """Full coordinates for a chosen suggestion."""

    @abstractmethod
    def reverse_geocode(self, lat: float, lng: float) -> str | None:
        """Best-effort human label for a raw coordinate; None when nothing found."""

    @abstractmethod
    def route(self, points: Sequence[RoutePoint]) -> RoutePath | RouteFailure:
        """Multi-stop path through *points* in the given order."""


# ---------------------------------------------------------------------------
# Google Maps
# ---------------------------------------------------------------------------

class GoogleGeoLookup(GeoLookup):
    """Google Maps web services via a cached googlemaps.Client."""

    def __init__(self, client: googlemaps.Client | None = None) -> None:
        self._client = client

    def _get_client(self) -> googlemaps.Client:
        if self._client is None:
            if not config.GOOGLE_MAPS_API_KEY:
                raise GeoLookupError("GOOGLE_MAPS_API_KEY is not configured")
            logger.info("Initializing Google Maps client")
            try:
                self._client = googlemaps.Client(
                    key=config.GOOGLE_MAPS_API_KEY,
                    timeout=config.GEO_REQUEST_TIMEOUT,
                )
            except ValueError as exc:
                # the client rejects keys that are not Google API keys
                raise GeoLookupError(f"Google Maps client unavailable: {exc}") from exc
        return self._client

    def search(self, text: str) -> list[PlaceSuggestion]:
        kwargs: dict = {"types": "geocode", "language": config.GEO_LANGUAGE}
        if config.GEO_COUNTRY_RESTRICTION:
            kwargs["components"] = {"country": [config.GEO_COUNTRY_RESTRICTION]}
        try:
            predictions = self._get_client().places_autocomplete(text, **kwargs)
        except _GOOGLE_ERRORS as exc:
            raise GeoLookupError(f"place search failed for {text!r}: {exc}") from exc
        try:
            return [
                PlaceSuggestion(label=p["description"], place_ref=p["place_id"])
                for p in predictions
                if p.get("place_id")
            ]
        except _PAYLOAD_ERRORS as exc:
            raise GeoLookupError(f"malformed autocomplete response for {text!r}: {exc}") from exc

    def resolve(self, place_ref: str) -> ResolvedPlace:
        try:
            response = self._get_client().place(
                place_ref,
                fields=["geometry", "formatted_address", "name"],
                language=config.GEO_LANGUAGE,
            )
        except _GOOGLE_ERRORS as exc:
            raise GeoLookupError(f"place details failed for {place_ref!r}: {exc}") from exc

        try:
            result = response.get("result") or {}
            location = (result.get("geometry") or {}).get("location")
            if not location:
                raise GeoLookupError(f"place {place_ref!r} has no geometry")
            return ResolvedPlace(
                lat=float(location["lat"]),
                lng=float(location["lng"]),
                label=result.get("formatted_address") or result.get("name") or "",
            )
        except _PAYLOAD_ERRORS as exc:
            raise GeoLookupError(f"malformed place details for {place_ref!r}: {exc}") from exc

    def reverse_geocode(self, lat: float, lng: float) -> str | None:
        try:
            results = self._get_client().reverse_geocode((lat, lng), language=config.GEO_LANGUAGE)
        except _GOOGLE_ERRORS as exc:
            raise GeoLookupError(f"reverse geocode failed for ({lat}, {lng}): {exc}") from exc
        if not results:
            return None
        try:
            first = results[0]
            if first.get("formatted_address"):
                return first["formatted_address"]
            components = first.get("address_components") or []
            return components[0].get("long_name") if components else None
        except _PAYLOAD_ERRORS as exc:
            raise GeoLookupError(f"malformed geocode response for ({lat}, {lng}): {exc}") from exc

    def route(self, points: Sequence[RoutePoint]) -> RoutePath | RouteFailure:
        if len(points) < 2:
            return RouteFailure("at least two points are required")
        origin, destination = points[0], points[-1]
        waypoints = [(p.lat, p.lng) for p in points[1:-1]]
        try:
            routes = self._get_client().directions(
                (origin.lat, origin.lng),
                (destination.lat, destination.lng),
                mode="driving",
                waypoints=waypoints or None,
                optimize_waypoints=False,
                language=config.GEO_LANGUAGE,
                region=config.GEO_REGION.lower(),
            )
        except (GeoLookupError, *_GOOGLE_ERRORS) as exc:
            logger.warning("Directions request failed: %s", exc)
            return RouteFailure(str(exc))

        if not routes:
            return RouteFailure("ZERO_RESULTS")

        try:
            best = routes[0]
            encoded = (best.get("overview_polyline") or {}).get("points")
            if not encoded:
                return RouteFailure("route has no overview polyline")
            legs = best.get("legs") or []
            return RoutePath(
                vertices=[LatLng(v["lat"], v["lng"]) for v in gm_convert.decode_polyline(encoded)],
                source=PathSource.DIRECTIONS,
                distance_m=float(sum(leg.get("distance", {}).get("value", 0) for leg in legs)),
                duration_s=float(sum(leg.get("duration", {}).get("value", 0) for leg in legs)),
            )
        except _PAYLOAD_ERRORS as exc:
            logger.warning("Malformed directions response: %s", exc)
            return RouteFailure(f"malformed directions response: {exc}")


# ---------------------------------------------------------------------------
# Stub
# ---------------------------------------------------------------------------

_STUB_PLACES: dict[str, ResolvedPlace] = {
    "stub:bogota":       ResolvedPlace(4.6097, -74.0817, "Bogotá, Colombia"),
    "stub:medellin":     ResolvedPlace(6.2442, -75.5812, "Medellín, Antioquia, Colombia"),
    "stub:cartagena":    ResolvedPlace(10.3910, -75.4794, "Cartagena de Indias, Bolívar, Colombia"),
    "stub:barranquilla": ResolvedPlace(10.9685, -74.7813, "Barranquilla, Atlántico, Colombia"),
    "stub:santa_marta":  ResolvedPlace(11.2408, -74.1990, "Santa Marta, Magdalena, Colombia"),
    "stub:cali":         ResolvedPlace(3.4516, -76.5320, "Cali, Valle del Cauca, Colombia"),
    "stub:salento":      ResolvedPlace(4.6376, -75.5703, "Salento, Quindío, Colombia"),
    "stub:villa_leyva":  ResolvedPlace(5.6333, -73.5248, "Villa de Leyva, Boyacá, Colombia"),
}

# Reverse geocoding only answers within this radius of a known place
_STUB_REVERSE_RADIUS_KM = 25.0
_STUB_DRIVING_SPEED_KMH = 60.0


class StubGeoLookup(GeoLookup):
    """Returns places from a fixed Colombian table.  No network access."""

    def __init__(self, places: dict[str, ResolvedPlace] | None = None) -> None:
        self._places = dict(places if places is not None else _STUB_PLACES)

    def search(self, text: str) -> list[PlaceSuggestion]:
        needle = text.strip().lower()
        return [
            PlaceSuggestion(label=place.label, place_ref=ref)
            for ref, place in self._places.items()
            if needle and needle in place.label.lower()
        ]

    def resolve(self, place_ref: str) -> ResolvedPlace:
        place = self._places.get(place_ref)
        if place is None:
            raise GeoLookupError(f"unknown place reference {place_ref!r}")
        return place

    def reverse_geocode(self, lat: float, lng: float) -> str | None:
        nearest = min(
            self._places.values(),
            key=lambda p: haversine_km(lat, lng, p.lat, p.lng),
            default=None,
        )
        if nearest is None or haversine_km(lat, lng, nearest.lat, nearest.lng) > _STUB_REVERSE_RADIUS_KM:
            return None
        return nearest.label

    def route(self, points: Sequence[RoutePoint]) -> RoutePath | RouteFailure:
        if len(points) < 2:
            return RouteFailure("at least two points are required")
        km = sum(
            haversine_km(a.lat, a.lng, b.lat, b.lng)
            for a, b in zip(points, points[1:])
        )
        return RoutePath(
            vertices=[LatLng(p.lat, p.lng) for p in points],
            source=PathSource.DIRECTIONS,
            distance_m=round(km * 1000.0, 1),
            duration_s=round(km / _STUB_DRIVING_SPEED_KMH * 3600.0, 1),
        )


def get_geo_lookup() -> GeoLookup:
    """Return the adapter selected by config.USE_STUB_GEO."""
    if config.USE_STUB_GEO:
        return StubGeoLookup()
    return GoogleGeoLookup()
