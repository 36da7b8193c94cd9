from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import googlemaps
import pytest
from googlemaps import convert
from googlemaps import exceptions as gm_exceptions

import config
from modules.errors import GeoLookupError
from modules.planning.route_composer import AddPointOutcome, RouteComposer
from modules.tool_usage.geo_lookup_tool import GoogleGeoLookup, StubGeoLookup, get_geo_lookup
from modules.tool_usage.place_search import PlaceSearch
from schemas.draft import RoutePoint
from schemas.geo import LatLng, PathSource, PlaceSuggestion, RouteFailure

_POINTS = [
    RoutePoint(id="a", name="Bogotá", lat=4.60, lng=-74.08, order=1),
    RoutePoint(id="b", name="Villa de Leyva", lat=5.63, lng=-73.52, order=2),
    RoutePoint(id="c", name="Barranquilla", lat=10.96, lng=-74.80, order=3),
]


@pytest.fixture
def gmaps() -> MagicMock:
    return MagicMock(spec=googlemaps.Client)


# ── Google ─────────────────────────────────────────────────────────────────────

def test_google_search_maps_predictions(gmaps):
    gmaps.places_autocomplete.return_value = [
        {"description": "Medellín, Antioquia, Colombia", "place_id": "ChIJ-med"},
        {"description": "no id"},
    ]

    result = GoogleGeoLookup(client=gmaps).search("mede")

    assert result == [PlaceSuggestion("Medellín, Antioquia, Colombia", "ChIJ-med")]
    _, kwargs = gmaps.places_autocomplete.call_args
    assert kwargs["components"] == {"country": [config.GEO_COUNTRY_RESTRICTION]}


def test_google_search_failure_raises_geo_error(gmaps):
    gmaps.places_autocomplete.side_effect = gm_exceptions.Timeout()
    with pytest.raises(GeoLookupError):
        GoogleGeoLookup(client=gmaps).search("mede")


def test_google_resolve(gmaps):
    gmaps.place.return_value = {
        "result": {
            "geometry": {"location": {"lat": 6.2442, "lng": -75.5812}},
            "formatted_address": "Medellín, Antioquia, Colombia",
        }
    }

    place = GoogleGeoLookup(client=gmaps).resolve("ChIJ-med")

    assert (place.lat, place.lng, place.label) == (6.2442, -75.5812, "Medellín, Antioquia, Colombia")


def test_google_resolve_without_geometry_raises(gmaps):
    gmaps.place.return_value = {"result": {}}
    with pytest.raises(GeoLookupError):
        GoogleGeoLookup(client=gmaps).resolve("ChIJ-x")


def test_google_reverse_geocode(gmaps):
    gmaps.reverse_geocode.return_value = [{"formatted_address": "Cra. 7 #10, Bogotá"}]
    assert GoogleGeoLookup(client=gmaps).reverse_geocode(4.6, -74.08) == "Cra. 7 #10, Bogotá"

    gmaps.reverse_geocode.return_value = []
    assert GoogleGeoLookup(client=gmaps).reverse_geocode(0.0, 0.0) is None


def test_google_route_keeps_waypoint_order(gmaps):
    encoded = convert.encode_polyline([(4.60, -74.08), (10.96, -74.80)])
    gmaps.directions.return_value = [{
        "overview_polyline": {"points": encoded},
        "legs": [
            {"distance": {"value": 150000}, "duration": {"value": 9000}},
            {"distance": {"value": 700000}, "duration": {"value": 40000}},
        ],
    }]

    path = GoogleGeoLookup(client=gmaps).route(_POINTS)

    args, kwargs = gmaps.directions.call_args
    assert args == ((4.60, -74.08), (10.96, -74.80))
    assert kwargs["waypoints"] == [(5.63, -73.52)]
    assert kwargs["optimize_waypoints"] is False
    assert path.source is PathSource.DIRECTIONS
    assert (path.vertices[0].lat, path.vertices[0].lng) == (pytest.approx(4.6), pytest.approx(-74.08))
    assert path.distance_m == 850000
    assert path.duration_s == 49000


@pytest.mark.parametrize("outcome", [[], gm_exceptions.ApiError("OVER_QUERY_LIMIT")])
def test_google_route_failure_is_returned_not_raised(gmaps, outcome):
    if isinstance(outcome, Exception):
        gmaps.directions.side_effect = outcome
    else:
        gmaps.directions.return_value = outcome

    assert isinstance(GoogleGeoLookup(client=gmaps).route(_POINTS), RouteFailure)


def test_google_without_key_fails_lookup_but_not_routing():
    with patch.object(config, "GOOGLE_MAPS_API_KEY", ""):
        geo = GoogleGeoLookup()
        with pytest.raises(GeoLookupError):
            geo.search("bogo")
        assert isinstance(geo.route(_POINTS), RouteFailure)


def test_google_malformed_key_becomes_geo_error():
    with patch.object(config, "GOOGLE_MAPS_API_KEY", "not-a-google-key"):
        geo = GoogleGeoLookup()
        with pytest.raises(GeoLookupError):
            geo.search("bogo")
        with pytest.raises(GeoLookupError):
            geo.reverse_geocode(4.6, -74.08)
        assert isinstance(geo.route(_POINTS), RouteFailure)


def test_malformed_key_degrades_click_and_search(store):
    with patch.object(config, "GOOGLE_MAPS_API_KEY", "not-a-google-key"):
        geo = GoogleGeoLookup()
        result = asyncio.run(RouteComposer(store, geo).handle_map_click(1.5, -70.0))
        suggestions = asyncio.run(PlaceSearch(geo, debounce_ms=0).search("Bogo"))

    assert result.outcome is AddPointOutcome.ADDED
    assert result.point.name == "Point 1.5000, -70.0000"
    assert suggestions == []


@pytest.mark.parametrize("predictions", [
    [{"place_id": "ChIJ-no-description"}],
    [None],
])
def test_google_malformed_autocomplete_becomes_geo_error(gmaps, predictions):
    gmaps.places_autocomplete.return_value = predictions
    with pytest.raises(GeoLookupError):
        GoogleGeoLookup(client=gmaps).search("mede")


def test_google_malformed_details_and_geocode_become_geo_error(gmaps):
    gmaps.place.return_value = {"result": {"geometry": {"location": {"lat": 6.2}}}}
    gmaps.reverse_geocode.return_value = ["not a dict"]
    geo = GoogleGeoLookup(client=gmaps)

    with pytest.raises(GeoLookupError):
        geo.resolve("ChIJ-x")
    with pytest.raises(GeoLookupError):
        geo.reverse_geocode(4.6, -74.08)


def test_google_malformed_directions_is_route_failure(gmaps):
    gmaps.directions.return_value = [{"overview_polyline": {"points": "_p~iF"}, "legs": "x"}]
    assert isinstance(GoogleGeoLookup(client=gmaps).route(_POINTS), RouteFailure)


# ── Stub ───────────────────────────────────────────────────────────────────────

def test_stub_search_and_resolve():
    geo = StubGeoLookup()
    hits = geo.search("salento")

    assert [h.place_ref for h in hits] == ["stub:salento"]
    assert geo.resolve("stub:salento").label.startswith("Salento")
    with pytest.raises(GeoLookupError):
        geo.resolve("stub:atlantis")


def test_stub_reverse_geocode_radius():
    geo = StubGeoLookup()
    assert geo.reverse_geocode(6.25, -75.58).startswith("Medellín")
    assert geo.reverse_geocode(-33.45, -70.66) is None


def test_stub_route():
    path = StubGeoLookup().route(_POINTS)
    assert path.vertices == [LatLng(p.lat, p.lng) for p in _POINTS]
    assert path.duration_s > 0
    assert isinstance(StubGeoLookup().route(_POINTS[:1]), RouteFailure)


def test_get_geo_lookup_follows_config():
    with patch.object(config, "USE_STUB_GEO", True):
        assert isinstance(get_geo_lookup(), StubGeoLookup)
    with patch.object(config, "USE_STUB_GEO", False):
        assert isinstance(get_geo_lookup(), GoogleGeoLookup)
