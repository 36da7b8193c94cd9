"""
schemas/trip_record.py
----------------------
Pydantic models for the persisted trip record returned by the trips API
(GET /agencies/trips/{id}).

Every field is optional: the backend omits or nulls fields freely and the
hydration mapper supplies the defaults.  Field names follow the backend's
camelCase spelling through an alias generator; unknown fields are kept.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,   # numeric ids arrive from some endpoints
        extra="allow",
    )


class RoutePointRecord(_RecordModel):
    id: Optional[str] = None
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    order: Optional[int] = None


class ActivityRecord(_RecordModel):
    id: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    time: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    poi_id: Optional[str] = None
    order: Optional[int] = None


class DayRecord(_RecordModel):
    id: Optional[str] = None
    day: Optional[int] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    order: Optional[int] = None
    activities: Optional[list[ActivityRecord]] = None


class DiscountCodeRecord(_RecordModel):
    code: Optional[str] = None
    percentage: Optional[int] = None
    max_uses: Optional[int] = None
    per_user_limit: Optional[int] = None


class TripRecord(_RecordModel):
    """A trip as persisted by the backend."""
    id_trip: Optional[str] = None
    id: Optional[str] = None
    id_city: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    destination_region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    duration_days: Optional[int] = None
    duration_nights: Optional[int] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    price_type: Optional[str] = None
    max_persons: Optional[int] = None
    status: Optional[str] = None
    cover_image_index: Optional[int] = None

    route_points: Optional[list[RoutePointRecord]] = None
    itinerary_days: Optional[list[DayRecord]] = None
    # Older records carry the days under "itinerary"
    itinerary: Optional[list[DayRecord]] = None
    # Bare URL strings or {"imageUrl": ...} objects; filtered by the mapper
    gallery_images: Optional[list[Any]] = None
    discount_codes: Optional[list[DiscountCodeRecord]] = None
    promoter_code: Optional[str] = None
    promoter_name: Optional[str] = None

    @property
    def record_id(self) -> str:
        """Backend identifier, blank when absent."""
        return (self.id_trip or self.id or "").strip()

    def days(self) -> list[DayRecord]:
        return self.itinerary_days or self.itinerary or []
