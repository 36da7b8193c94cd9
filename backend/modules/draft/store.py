"""
modules/draft/store.py
----------------------
DraftStore — the single shared working document of one wizard session.

Every step component and composer reads the draft through get() and writes
back whole slices through the setters.  The store keeps its own copy of
everything it is given and hands out copies, so the only way to change the
draft is a setter call, and every setter call notifies subscribers.

    store = DraftStore()
    unsubscribe = store.subscribe(lambda slice_name, draft: ...)
    points = store.get().route_points
    points.append(new_point)
    store.set_route_points(points)
"""

from __future__ import annotations

import copy
import logging
import math
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence

from schemas.draft import (
    IDENTITY_FIELDS,
    Day,
    DiscountCode,
    RoutePoint,
    TripDraft,
)

logger = logging.getLogger(__name__)

Listener = Callable[[str, TripDraft], None]

# Slice names passed to listeners
SLICE_IDENTITY = "identity"
SLICE_ROUTE = "route_points"
SLICE_ITINERARY = "itinerary"
SLICE_GALLERY = "gallery"
SLICE_DISCOUNTS = "discount_codes"
SLICE_PROMOTER = "promoter"
SLICE_ALL = "*"


def _parse_day(value: str | date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00")).date()


def trip_duration(start: str | date | datetime, end: str | date | datetime) -> tuple[int, int]:
    """
    Days and nights covered by a date range, both ends inclusive.

    2025-03-01 → 2025-03-04 is 4 days / 3 nights; a same-day range is 1 / 0.
    """
    span = abs((_parse_day(end) - _parse_day(start)).days)
    days = math.ceil(span) + 1
    return days, max(0, days - 1)


class DraftStore:
    """Explicit state container with whole-slice setters and subscriptions."""

    def __init__(self, draft: TripDraft | None = None) -> None:
        self._draft = copy.deepcopy(draft) if draft is not None else TripDraft()
        self._listeners: list[Listener] = []

    # ── Read ──────────────────────────────────────────────────────────────────

    def get(self) -> TripDraft:
        """Return a copy of the current draft."""
        return copy.deepcopy(self._draft)

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, slice_name: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(slice_name, self.get())
            except Exception:
                logger.exception("Draft listener failed for slice %r", slice_name)

    # ── Setters (whole-slice replace) ─────────────────────────────────────────

    def set_identity(self, **partial: Any) -> None:
        """Overwrite the given identity / scheduling fields."""
        unknown = set(partial) - IDENTITY_FIELDS
        if unknown:
            raise ValueError(f"not identity fields: {sorted(unknown)}")
        for name, value in partial.items():
            setattr(self._draft, name, copy.deepcopy(value))
        self._notify(SLICE_IDENTITY)

    def set_date_range(self, start: str | date | datetime, end: str | date | datetime) -> None:
        """Store both dates and derive duration_days / duration_nights."""
        days, nights = trip_duration(start, end)
        self.set_identity(
            start_date=start if isinstance(start, str) else start.isoformat(),
            end_date=end if isinstance(end, str) else end.isoformat(),
            duration_days=days,
            duration_nights=nights,
        )

    def set_route_points(self, points: Sequence[RoutePoint]) -> None:
        self._draft.route_points = copy.deepcopy(list(points))
        self._notify(SLICE_ROUTE)

    def set_itinerary(self, days: Sequence[Day]) -> None:
        self._draft.itinerary = copy.deepcopy(list(days))
        self._notify(SLICE_ITINERARY)

    def set_gallery(self, images: Sequence[str], cover_index: Optional[int]) -> None:
        """Replace the gallery; an invalid cover index is stored as None."""
        images = list(images)
        if cover_index is not None and not 0 <= cover_index < len(images):
            logger.debug("Dropping cover index %s for %d images", cover_index, len(images))
            cover_index = None
        self._draft.gallery_images = images
        self._draft.cover_image_index = cover_index
        self._notify(SLICE_GALLERY)

    def set_discount_codes(self, codes: Sequence[DiscountCode]) -> None:
        self._draft.discount_codes = [
            DiscountCode(
                code=c.code.strip().upper(),
                percentage=c.percentage,
                max_uses=c.max_uses,
                per_user_limit=c.per_user_limit,
            )
            for c in codes
        ]
        self._notify(SLICE_DISCOUNTS)

    def set_promoter(self, code: Optional[str] = None, name: Optional[str] = None) -> None:
        self._draft.promoter_code = code.strip().upper() if code and code.strip() else None
        self._draft.promoter_name = name.strip() if name and name.strip() else None
        self._notify(SLICE_PROMOTER)

    # ── Whole-document operations ─────────────────────────────────────────────

    def load(self, draft: TripDraft) -> None:
        """Replace every slice at once (hydration); notifies once."""
        self._draft = copy.deepcopy(draft)
        self._notify(SLICE_ALL)

    def reset(self) -> None:
        """Back to an empty draft."""
        self._draft = TripDraft()
        self._notify(SLICE_ALL)
