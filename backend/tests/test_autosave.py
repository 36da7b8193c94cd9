from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import redis

import config
from modules.draft import autosave as autosave_module
from modules.draft.autosave import InMemoryAutosave, RedisAutosave, get_autosave
from schemas.draft import (
    Activity,
    ActivityType,
    Day,
    DiscountCode,
    PriceType,
    RoutePoint,
    TripDraft,
    draft_from_dict,
    draft_to_dict,
)


@pytest.fixture
def sample_draft() -> TripDraft:
    return TripDraft(
        location_id="city-1",
        title="Salento",
        category="Gastronomy",
        price=900.0,
        price_type=PriceType.BOTH,
        route_points=[RoutePoint(id="p1", name="Salento", lat=4.63, lng=-75.57, order=1)],
        itinerary=[Day(title="Cocora", activities=[Activity(type=ActivityType.POI, title="Palms", order=1)])],
        gallery_images=["https://x/a.jpg"],
        cover_image_index=0,
        discount_codes=[DiscountCode(code="CAFE", percentage=5)],
    )


def test_draft_dict_round_trip(sample_draft):
    data = draft_to_dict(sample_draft)

    assert data["price_type"] == "both"
    assert data["itinerary"][0]["activities"][0]["type"] == "poi"
    assert json.loads(json.dumps(data)) == data
    assert draft_from_dict(data) == sample_draft


def test_in_memory_save_load_discard(sample_draft):
    slot = InMemoryAutosave()
    slot.save("temp_1", sample_draft)
    sample_draft.title = "mutated after save"

    loaded = slot.load("temp_1")
    assert loaded.title == "Salento"
    assert slot.load("temp_2") is None

    slot.discard("temp_1")
    assert slot.load("temp_1") is None


def test_redis_backend_uses_draft_id_key_and_ttl(sample_draft):
    client = MagicMock()
    slot = RedisAutosave(client=client)

    slot.save("trip-42", sample_draft)

    key, ttl, payload = client.setex.call_args.args
    assert key == "draftsnapshot:trip-42"
    assert ttl == config.DRAFT_SNAPSHOT_TTL
    assert draft_from_dict(json.loads(payload)) == sample_draft


def test_redis_backend_load_and_discard(sample_draft):
    client = MagicMock()
    client.get.return_value = json.dumps(draft_to_dict(sample_draft))
    slot = RedisAutosave(client=client)

    assert slot.load("temp_5") == sample_draft
    client.get.assert_called_once_with("draftsnapshot:temp_5")

    slot.discard("temp_5")
    client.delete.assert_called_once_with("draftsnapshot:temp_5")


def test_redis_miss_and_errors_are_not_fatal(sample_draft):
    client = MagicMock()
    client.get.return_value = None
    slot = RedisAutosave(client=client)
    assert slot.load("temp_missing") is None

    client.get.side_effect = redis.ConnectionError("down")
    client.setex.side_effect = redis.ConnectionError("down")
    assert slot.load("temp_1") is None
    slot.save("temp_1", sample_draft)


def test_get_autosave_selects_backend():
    with patch.object(autosave_module, "_default", None), \
            patch.object(config, "AUTOSAVE_BACKEND", "redis"):
        assert isinstance(get_autosave(), RedisAutosave)

    with patch.object(autosave_module, "_default", None), \
            patch.object(config, "AUTOSAVE_BACKEND", "in_memory"):
        assert isinstance(get_autosave(), InMemoryAutosave)

    with patch.object(autosave_module, "_default", None), \
            patch.object(config, "AUTOSAVE_BACKEND", "sqlite"):
        with pytest.raises(ValueError):
            get_autosave()
