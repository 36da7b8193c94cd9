"""
schemas/draft.py
----------------
Dataclass definitions for the in-memory trip draft edited by the wizard.

The draft is the working representation of a trip being authored; it is
distinct from the persisted backend record (see schemas/trip_record.py).

Slices (each replaced as a whole by the DraftStore):
  identity      — location, title, description, category, region, coords,
                  dates, durations, price, currency, price type, capacity, status
  route_points  — ordered geographic stops, order = 1..N
  itinerary     — ordered days with nested activities, day/order = 1..N
  gallery       — image references + cover index
  discounts     — optional discount codes
  promoter      — optional promoter code / name
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Optional, Union

import config


class Category(str, Enum):
    ADVENTURE = "Adventure"
    LUXURY = "Luxury"
    CULTURAL = "Cultural"
    WELLNESS = "Wellness"
    WILDLIFE = "Wildlife"


class PriceType(str, Enum):
    ADULTS = "adults"
    CHILDREN = "children"
    BOTH = "both"


class ActivityType(str, Enum):
    ACTIVITY = "activity"
    ACCOMMODATION = "accommodation"
    TRANSPORT = "transport"
    MEAL = "meal"
    POI = "poi"


class WizardStep(str, Enum):
    BASIC = "basic"
    ITINERARY = "itinerary"
    GALLERY = "gallery"


# Unknown backend categories are kept verbatim, so the slot is Category | str.
CategoryValue = Union[Category, str]


@dataclass
class RoutePoint:
    """A single ordered stop on the trip's geographic route."""
    id: str
    name: str
    lat: float
    lng: float
    order: int = 0


@dataclass
class Activity:
    """One scheduled item inside an itinerary day."""
    type: ActivityType = ActivityType.ACTIVITY
    title: str = ""
    description: Optional[str] = None
    time: Optional[str] = None          # free-form "HH:MM" as typed by the operator
    lat: Optional[float] = None
    lng: Optional[float] = None
    poi_id: Optional[str] = None
    order: int = 0


@dataclass
class Day:
    """One day of the itinerary."""
    day: int = 1
    title: str = ""
    subtitle: Optional[str] = None
    order: int = 1
    activities: list[Activity] = field(default_factory=list)


@dataclass
class DiscountCode:
    code: str = ""
    percentage: int = 0
    max_uses: Optional[int] = None
    per_user_limit: Optional[int] = None


@dataclass
class TripDraft:
    """
    Root working document of one wizard session.

    Only the DraftStore writes to it; every other component reads a copy
    and hands back whole slices.
    """
    # ── Identity ──────────────────────────────────────────────────────────────
    location_id: Optional[str] = None
    title: str = ""
    description: str = ""               # rich text (HTML)
    category: CategoryValue = Category.ADVENTURE
    destination_region: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # ── Scheduling / commercial ───────────────────────────────────────────────
    start_date: Optional[str] = None    # ISO-8601
    end_date: Optional[str] = None      # ISO-8601
    duration_days: Optional[int] = None
    duration_nights: Optional[int] = None
    price: Optional[float] = None
    currency: str = field(default_factory=lambda: config.DEFAULT_CURRENCY)
    price_type: PriceType = PriceType.ADULTS
    max_persons: Optional[int] = None
    status: str = "DRAFT"

    # ── Collections ───────────────────────────────────────────────────────────
    route_points: list[RoutePoint] = field(default_factory=list)
    itinerary: list[Day] = field(default_factory=list)
    gallery_images: list[str] = field(default_factory=list)
    cover_image_index: Optional[int] = None

    # ── Optional extras (never affect step validity) ─────────────────────────
    discount_codes: list[DiscountCode] = field(default_factory=list)
    promoter_code: Optional[str] = None
    promoter_name: Optional[str] = None


COLLECTION_FIELDS: frozenset[str] = frozenset({
    "route_points", "itinerary", "gallery_images", "cover_image_index",
    "discount_codes", "promoter_code", "promoter_name",
})

# Fields writable through DraftStore.set_identity()
IDENTITY_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(TripDraft) if f.name not in COLLECTION_FIELDS
)


# ── Serialisation ─────────────────────────────────────────────────────────────

def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def draft_to_dict(draft: TripDraft) -> dict[str, Any]:
    """Return a JSON-safe dict (enums flattened to their values)."""
    return _plain(asdict(draft))


def _category(value: Any) -> CategoryValue:
    try:
        return Category(value)
    except ValueError:
        return value


def draft_from_dict(data: dict[str, Any]) -> TripDraft:
    """Inverse of draft_to_dict(); unknown keys are ignored."""
    known = {f.name for f in fields(TripDraft)}
    values = {k: v for k, v in data.items() if k in known}

    if "category" in values:
        values["category"] = _category(values["category"])
    if "price_type" in values:
        values["price_type"] = PriceType(values["price_type"])
    values["route_points"] = [RoutePoint(**p) for p in values.get("route_points", [])]
    values["itinerary"] = [
        Day(
            day=d.get("day", 1),
            title=d.get("title", ""),
            subtitle=d.get("subtitle"),
            order=d.get("order", 1),
            activities=[
                Activity(**{**a, "type": ActivityType(a.get("type", "activity"))})
                for a in d.get("activities", [])
            ],
        )
        for d in values.get("itinerary", [])
    ]
    values["gallery_images"] = list(values.get("gallery_images", []))
    values["discount_codes"] = [DiscountCode(**c) for c in values.get("discount_codes", [])]
    return TripDraft(**values)
