"""
modules/hydration/mapper.py
---------------------------
Translates a persisted trip record (backend shape) into a TripDraft.

The mapping is total and idempotent: missing optional fields get defaults,
unknown enum values are normalised, and mapping the same record twice gives
equal drafts.  The result is a complete draft meant for DraftStore.load(),
which replaces every slice; nothing from a previous draft survives.

The only hard failure is a record with no identifier.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError

import config
from modules.errors import HydrationError
from schemas.draft import (
    Activity,
    ActivityType,
    Category,
    CategoryValue,
    Day,
    DiscountCode,
    PriceType,
    RoutePoint,
    TripDraft,
)
from schemas.trip_record import DayRecord, RoutePointRecord, TripRecord

logger = logging.getLogger(__name__)

# Keyed by the upper-cased backend value
_CATEGORY_LOOKUP: dict[str, Category] = {c.value.upper(): c for c in Category}


# ── Enum normalisation ─────────────────────────────────────────────────────────

def normalize_category(raw: Optional[str]) -> CategoryValue:
    """ADVENTURE -> Adventure (any case); unknown passes through; blank -> Adventure."""
    if raw is None or not raw.strip():
        return Category.ADVENTURE
    return _CATEGORY_LOOKUP.get(raw.strip().upper(), raw)


def normalize_price_type(raw: Optional[str]) -> PriceType:
    try:
        return PriceType((raw or "").strip().lower())
    except ValueError:
        return PriceType.ADULTS


def normalize_activity_type(raw: Optional[str]) -> ActivityType:
    try:
        return ActivityType((raw or "").strip().lower())
    except ValueError:
        return ActivityType.ACTIVITY


# ── Slice mappers ──────────────────────────────────────────────────────────────

def _map_route_points(records: list[RoutePointRecord]) -> list[RoutePoint]:
    return [
        RoutePoint(
            id=(rp.id or "").strip() or f"point-{idx}",
            name=rp.name or "",
            lat=rp.latitude if rp.latitude is not None else 0.0,
            lng=rp.longitude if rp.longitude is not None else 0.0,
            order=rp.order or idx + 1,
        )
        for idx, rp in enumerate(records)
    ]


def _map_days(records: list[DayRecord]) -> list[Day]:
    days: list[Day] = []
    for d in records:
        day_number = d.day or 1
        days.append(Day(
            day=day_number,
            title=d.title or "",
            subtitle=d.subtitle or "",
            order=d.order or day_number,
            activities=[
                Activity(
                    type=normalize_activity_type(a.type),
                    title=a.title or "",
                    description=a.description,
                    time=a.time,
                    lat=a.latitude,
                    lng=a.longitude,
                    poi_id=a.poi_id,
                    order=a.order or 0,
                )
                for a in d.activities or []
            ],
        ))
    return days


def _gallery_url(entry: Any) -> str:
    if isinstance(entry, str):
        return entry.strip()
    if isinstance(entry, Mapping):
        url = entry.get("imageUrl")
        return url.strip() if isinstance(url, str) else ""
    return ""


def _map_gallery(entries: list[Any], cover_index: Optional[int]) -> tuple[list[str], Optional[int]]:
    images = [url for url in (_gallery_url(e) for e in entries) if url]
    if not images:
        return [], None
    if cover_index is not None and 0 <= cover_index < len(images):
        return images, cover_index
    return images, 0


# ── Entry point ────────────────────────────────────────────────────────────────

def parse_record(raw: Mapping[str, Any] | TripRecord) -> TripRecord:
    if isinstance(raw, TripRecord):
        return raw
    try:
        return TripRecord.model_validate(raw)
    except ValidationError as exc:
        raise HydrationError(f"malformed trip record: {exc.error_count()} invalid field(s)") from exc


def hydrate_draft(raw: Mapping[str, Any] | TripRecord) -> TripDraft:
    """Build a complete TripDraft from a backend trip record."""
    record = parse_record(raw)
    trip_id = record.record_id
    if not trip_id:
        raise HydrationError("trip record has no identifier")

    images, cover = _map_gallery(record.gallery_images or [], record.cover_image_index)
    draft = TripDraft(
        location_id=record.id_city,
        title=record.title or "",
        description=record.description or "",
        category=normalize_category(record.category),
        destination_region=record.destination_region or "",
        latitude=record.latitude,
        longitude=record.longitude,
        start_date=record.start_date,
        end_date=record.end_date,
        duration_days=record.duration_days,
        duration_nights=record.duration_nights,
        price=record.price,
        currency=record.currency or config.DEFAULT_CURRENCY,
        price_type=normalize_price_type(record.price_type),
        max_persons=record.max_persons,
        status=record.status or "DRAFT",
        route_points=_map_route_points(record.route_points or []),
        itinerary=_map_days(record.days()),
        gallery_images=images,
        cover_image_index=cover,
        discount_codes=[
            DiscountCode(
                code=(c.code or "").upper(),
                percentage=c.percentage or 0,
                max_uses=c.max_uses,
                per_user_limit=c.per_user_limit,
            )
            for c in record.discount_codes or []
        ],
        promoter_code=(record.promoter_code or "").strip().upper() or None,
        promoter_name=(record.promoter_name or "").strip() or None,
    )
    logger.info(
        "Hydrated trip %s: %d route points, %d days, %d images",
        trip_id, len(draft.route_points), len(draft.itinerary), len(draft.gallery_images),
    )
    return draft
