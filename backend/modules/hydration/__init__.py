"""
modules/hydration package — persisted trip record -> TripDraft.
"""
from modules.hydration.mapper import (
    hydrate_draft,
    normalize_activity_type,
    normalize_category,
    normalize_price_type,
)
from modules.hydration.trip_client import TripRecordClient

__all__ = [
    "hydrate_draft",
    "normalize_activity_type",
    "normalize_category",
    "normalize_price_type",
    "TripRecordClient",
]
