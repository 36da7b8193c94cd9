"""
Shared fixtures for the trip draft wizard tests.

Run from the repository root:
    pytest
"""

from __future__ import annotations

from typing import Sequence
from unittest.mock import MagicMock

import pytest

from modules.draft.autosave import InMemoryAutosave
from modules.draft.store import DraftStore
from modules.errors import GeoLookupError
from modules.hydration.trip_client import TripRecordClient
from modules.observability.logger import WizardEventLog
from modules.tool_usage.geo_lookup_tool import GeoLookup, StubGeoLookup
from modules.wizard.controller import WizardController
from schemas.draft import Activity, Day, RoutePoint
from schemas.geo import PlaceSuggestion, ResolvedPlace, RouteFailure, RoutePath


class FailingGeoLookup(GeoLookup):
    """Every call fails the way a dead network would."""

    def search(self, text: str) -> list[PlaceSuggestion]:
        raise GeoLookupError("offline")

    def resolve(self, place_ref: str) -> ResolvedPlace:
        raise GeoLookupError("offline")

    def reverse_geocode(self, lat: float, lng: float) -> str | None:
        raise GeoLookupError("offline")

    def route(self, points: Sequence[RoutePoint]) -> RoutePath | RouteFailure:
        return RouteFailure("offline")


@pytest.fixture
def store() -> DraftStore:
    return DraftStore()


@pytest.fixture
def stub_geo() -> StubGeoLookup:
    return StubGeoLookup()


@pytest.fixture
def failing_geo() -> FailingGeoLookup:
    return FailingGeoLookup()


@pytest.fixture
def autosave() -> InMemoryAutosave:
    return InMemoryAutosave()


@pytest.fixture
def trip_client() -> MagicMock:
    return MagicMock(spec=TripRecordClient)


@pytest.fixture
def make_wizard(stub_geo, trip_client, autosave):
    """Factory for controllers wired to offline collaborators."""
    def _make(**overrides) -> WizardController:
        kwargs = dict(
            geo_lookup=stub_geo,
            trip_client=trip_client,
            autosave=autosave,
            event_log=WizardEventLog(enabled=False),
        )
        kwargs.update(overrides)
        return WizardController(**kwargs)
    return _make


# ── Draft builders ─────────────────────────────────────────────────────────────

def complete_basic(store: DraftStore) -> None:
    store.set_identity(
        location_id="city-11001",
        title="Eje Cafetero",
        description="<p>Coffee farms and wax palms</p>",
        price=1500,
        max_persons=12,
    )
    store.set_date_range("2025-03-01", "2025-03-04")


def complete_itinerary(store: DraftStore) -> None:
    store.set_itinerary([
        Day(title="Arrival", activities=[Activity(title="Check-in")]),
        Day(title="Valle de Cocora", activities=[Activity(title="Hike")]),
    ])


def complete_gallery(store: DraftStore) -> None:
    store.set_gallery(["https://cdn.example.com/cocora.jpg"], 0)


@pytest.fixture
def trip_record() -> dict:
    """A persisted trip in the backend's camelCase shape."""
    return {
        "idTrip": "trip-42",
        "idCity": "city-11001",
        "title": "Caribe Colombiano",
        "description": "<p>Beaches and old towns</p>",
        "category": "ADVENTURE",
        "destinationRegion": "Bolívar",
        "latitude": 10.391,
        "longitude": -75.4794,
        "startDate": "2025-06-01",
        "endDate": "2025-06-05",
        "durationDays": 5,
        "durationNights": 4,
        "price": 2500000,
        "currency": "COP",
        "priceType": "ADULTS",
        "maxPersons": 10,
        "status": "DRAFT",
        "routePoints": [
            {"id": "rp-1", "name": "Cartagena", "latitude": 10.391, "longitude": -75.4794, "order": 1},
            {"name": "Santa Marta", "latitude": 11.2408, "longitude": -74.199},
        ],
        "itineraryDays": [
            {
                "day": 1,
                "title": "Ciudad amurallada",
                "activities": [
                    {"type": "ACTIVITY", "title": "Walking tour", "time": "09:00", "order": 1},
                    {"type": "MEAL", "title": "Dinner in Getsemaní"},
                ],
            },
            {"day": 2, "title": "Tayrona", "activities": [{"type": "TRANSPORT", "title": "Bus"}]},
        ],
        "galleryImages": [
            "https://cdn.example.com/cartagena.jpg",
            {"imageUrl": "https://cdn.example.com/tayrona.jpg"},
        ],
        "coverImageIndex": 1,
        "discountCodes": [{"code": "early10", "percentage": 10, "maxUses": 50}],
        "promoterCode": "ana01",
        "promoterName": "Ana",
    }
