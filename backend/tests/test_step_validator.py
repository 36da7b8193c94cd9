from __future__ import annotations

import pytest

from conftest import complete_basic
from modules.validation import check_step, is_step_complete, strip_rich_text
from schemas.draft import Activity, Day, DiscountCode, TripDraft, WizardStep


@pytest.fixture
def basic_draft(store) -> TripDraft:
    complete_basic(store)
    return store.get()


def test_complete_basic_step(basic_draft):
    result = check_step(WizardStep.BASIC, basic_draft)
    assert result.valid, result.errors
    assert basic_draft.duration_days == 4
    assert basic_draft.duration_nights == 3


def test_price_zero_fails_and_1500_passes(basic_draft):
    basic_draft.price = 0
    assert not is_step_complete(WizardStep.BASIC, basic_draft)

    basic_draft.price = 1500
    assert is_step_complete(WizardStep.BASIC, basic_draft)


@pytest.mark.parametrize("field, value", [
    ("location_id", "  "),
    ("title", ""),
    ("description", "<p>&nbsp;</p>"),
    ("start_date", None),
    ("end_date", None),
    ("duration_days", 0),
    ("duration_nights", -1),
    ("max_persons", 0),
    ("price", None),
])
def test_each_basic_requirement(basic_draft, field, value):
    setattr(basic_draft, field, value)
    result = check_step("basic", basic_draft)
    assert not result.valid
    assert any(field in err for err in result.errors)


def test_zero_nights_is_allowed(basic_draft):
    basic_draft.duration_days = 1
    basic_draft.duration_nights = 0
    assert is_step_complete(WizardStep.BASIC, basic_draft)


def test_strip_rich_text():
    assert strip_rich_text("<p><br></p>") == ""
    assert strip_rich_text("<p>&nbsp; Hola &nbsp;</p>") == "Hola"
    assert strip_rich_text(None) == ""


def test_itinerary_requires_an_activity_in_every_day():
    draft = TripDraft()
    assert not is_step_complete(WizardStep.ITINERARY, draft)

    draft.itinerary = [Day(activities=[Activity(title="Hike")]), Day(day=2, order=2)]
    result = check_step(WizardStep.ITINERARY, draft)
    assert not result.valid
    assert result.errors == ["day 2 has no activities"]

    draft.itinerary[1].activities.append(Activity(title="Museum"))
    assert is_step_complete(WizardStep.ITINERARY, draft)


def test_gallery_requires_an_image():
    draft = TripDraft()
    assert not is_step_complete(WizardStep.GALLERY, draft)
    draft.gallery_images = ["https://cdn.example.com/a.jpg"]
    assert is_step_complete(WizardStep.GALLERY, draft)


def test_discounts_and_promoter_never_affect_validity(basic_draft):
    basic_draft.discount_codes = [DiscountCode(code="", percentage=500)]
    basic_draft.promoter_code = None
    assert is_step_complete(WizardStep.BASIC, basic_draft)
