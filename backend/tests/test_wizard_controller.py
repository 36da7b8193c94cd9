from __future__ import annotations

import asyncio
import json
from unittest.mock import MagicMock

import pytest

from conftest import complete_basic, complete_gallery, complete_itinerary
from modules.errors import HydrationError, TripFetchError, TripNotFoundError, WizardStateError
from modules.observability.logger import WizardEventLog
from modules.wizard.controller import STEPS, WizardController, WizardMode, WizardState
from schemas.draft import Category, TripDraft, WizardStep


def _complete_all(wizard: WizardController) -> None:
    complete_basic(wizard.store)
    complete_itinerary(wizard.store)
    complete_gallery(wizard.store)


# ── Start ──────────────────────────────────────────────────────────────────────

def test_start_new_gives_temp_id_and_empty_draft(make_wizard):
    wizard = make_wizard()
    draft_id = wizard.start_new()

    ms, suffix = draft_id[len("temp_"):].split("_")
    assert draft_id.startswith("temp_")
    assert ms.isdigit()
    assert len(suffix) == 8
    assert wizard.state is WizardState.ACTIVE
    assert wizard.mode is WizardMode.CREATE
    assert wizard.current_step is WizardStep.BASIC
    assert wizard.store.get() == TripDraft()


def test_back_to_back_sessions_get_distinct_ids(make_wizard):
    ids = {make_wizard().start_new() for _ in range(50)}
    assert len(ids) == 50


def test_start_twice_is_a_state_error(make_wizard):
    wizard = make_wizard()
    wizard.start_new()
    with pytest.raises(WizardStateError):
        wizard.start_new()


def test_resume_restores_snapshot_under_same_id(make_wizard, autosave):
    first = make_wizard()
    draft_id = first.start_new()
    first.store.set_identity(title="Half written")
    assert first.snapshot() == draft_id

    second = make_wizard()
    second.start_new(draft_id=draft_id)

    assert second.draft_id == draft_id
    assert second.store.get().title == "Half written"


def test_resume_without_snapshot_starts_empty(make_wizard):
    wizard = make_wizard()
    wizard.start_new(draft_id="temp_123_abcdef01")
    assert wizard.store.get() == TripDraft()


def test_fresh_session_never_picks_up_another_snapshot(make_wizard):
    first = make_wizard()
    first.start_new()
    first.store.set_identity(title="Saved")
    first.snapshot()

    second = make_wizard()
    second.start_new()

    assert second.draft_id != first.draft_id
    assert second.store.get().title == ""


def test_start_edit_hydrates_draft(make_wizard, trip_client, trip_record):
    trip_client.fetch.return_value = trip_record
    wizard = make_wizard()

    assert asyncio.run(wizard.start_edit("trip-42")) == "trip-42"

    trip_client.fetch.assert_called_once_with("trip-42")
    assert wizard.state is WizardState.ACTIVE
    assert wizard.draft_id == "trip-42"
    assert wizard.store.get().category is Category.ADVENTURE
    assert len(wizard.store.get().route_points) == 2


@pytest.mark.parametrize("error", [
    TripNotFoundError("gone"),
    TripFetchError("timeout"),
])
def test_hydration_failure_closes_session(make_wizard, trip_client, error):
    trip_client.fetch.side_effect = error
    wizard = make_wizard()

    with pytest.raises(type(error)):
        asyncio.run(wizard.start_edit("trip-x"))

    assert wizard.state is WizardState.CLOSED
    assert wizard.store.get() == TripDraft()


def test_unexpected_failure_is_wrapped_as_hydration_error(make_wizard, trip_client):
    trip_client.fetch.side_effect = KeyError("idTrip")
    wizard = make_wizard()

    with pytest.raises(HydrationError):
        asyncio.run(wizard.start_edit("trip-x"))
    assert wizard.state is WizardState.CLOSED


def test_record_without_id_closes_session(make_wizard, trip_client):
    trip_client.fetch.return_value = {"title": "no id"}
    wizard = make_wizard()

    with pytest.raises(HydrationError):
        asyncio.run(wizard.start_edit("trip-x"))
    assert wizard.state is WizardState.CLOSED


# ── Navigation ─────────────────────────────────────────────────────────────────

def test_advance_is_gated_by_step_completeness(make_wizard):
    wizard = make_wizard()
    wizard.start_new()

    assert not wizard.can_advance
    assert wizard.advance() is False
    assert wizard.current_step is WizardStep.BASIC

    complete_basic(wizard.store)
    assert wizard.can_advance
    assert wizard.advance() is True
    assert wizard.current_step is WizardStep.ITINERARY


def test_completion_percentage(make_wizard):
    wizard = make_wizard()
    wizard.start_new()
    _complete_all(wizard)

    seen = [wizard.completion]
    wizard.advance()
    seen.append(wizard.completion)
    wizard.advance()
    seen.append(wizard.completion)

    assert seen == [33, 67, 100]


def test_back_not_permitted_from_first_step(make_wizard):
    wizard = make_wizard()
    wizard.start_new()
    assert wizard.back() is False

    complete_basic(wizard.store)
    wizard.advance()
    assert wizard.back() is True
    assert wizard.current_step is WizardStep.BASIC


def test_transition_blocks_navigation(make_wizard):
    wizard = make_wizard()
    wizard.start_new()
    _complete_all(wizard)

    assert wizard.advance(animate=True)
    assert wizard.state is WizardState.TRANSITIONING
    assert wizard.advance() is False
    assert wizard.back() is False
    assert wizard.current_step is WizardStep.ITINERARY

    wizard.finish_transition()
    assert wizard.state is WizardState.ACTIVE
    assert wizard.back() is True


def test_go_to_forward_requires_earlier_steps_complete(make_wizard):
    wizard = make_wizard()
    wizard.start_new()
    complete_basic(wizard.store)

    assert wizard.go_to(WizardStep.GALLERY) is False
    complete_itinerary(wizard.store)
    assert wizard.go_to("gallery") is True
    assert wizard.go_to(WizardStep.BASIC) is True
    assert wizard.current_step is WizardStep.BASIC


def test_navigation_before_start_is_a_state_error(make_wizard):
    wizard = make_wizard()
    with pytest.raises(WizardStateError):
        wizard.advance()
    with pytest.raises(WizardStateError):
        wizard.snapshot()


# ── Handoff / close ────────────────────────────────────────────────────────────

def test_handoff_emits_temp_id_in_create_mode(make_wizard, autosave):
    handed = []
    wizard = make_wizard(on_handoff=handed.append)
    draft_id = wizard.start_new()
    _complete_all(wizard)
    wizard.snapshot()

    for _ in STEPS:
        assert wizard.advance()

    assert wizard.state is WizardState.HANDOFF
    assert handed == [draft_id]
    assert wizard.handoff_id == draft_id
    assert autosave.load(draft_id) is None


def test_handoff_emits_trip_id_in_edit_mode(make_wizard, trip_client, trip_record):
    trip_client.fetch.return_value = trip_record
    handed = []
    wizard = make_wizard(on_handoff=handed.append)
    asyncio.run(wizard.start_edit("trip-42"))

    while wizard.state is WizardState.ACTIVE:
        assert wizard.advance()

    assert handed == ["trip-42"]


def test_handoff_ends_session(make_wizard):
    wizard = make_wizard()
    wizard.start_new()
    _complete_all(wizard)
    for _ in STEPS:
        wizard.advance()

    with pytest.raises(WizardStateError):
        wizard.advance()


def test_close_discards_draft_without_persisting(make_wizard, autosave):
    autosave_spy = MagicMock(wraps=autosave)
    wizard = make_wizard(autosave=autosave_spy)
    wizard.start_new()
    wizard.store.set_identity(title="Throwaway")

    wizard.close()
    wizard.close()

    assert wizard.state is WizardState.CLOSED
    assert wizard.store.get() == TripDraft()
    autosave_spy.save.assert_not_called()
    with pytest.raises(WizardStateError):
        wizard.advance()


def test_describe(make_wizard):
    wizard = make_wizard()
    wizard.start_new()

    info = wizard.describe()

    assert info["state"] == "active"
    assert info["step_label"] == "Basic Info"
    assert [s["label"] for s in info["steps"]] == ["Basic Info", "Trip Planning", "Media Gallery"]
    assert info["completion"] == 33
    assert info["can_advance"] is False


def test_session_events_are_written_as_jsonl(make_wizard, tmp_path):
    wizard = make_wizard(event_log=WizardEventLog(logs_dir=tmp_path, enabled=True))
    draft_id = wizard.start_new()
    complete_basic(wizard.store)
    wizard.advance()
    wizard.close()

    lines = (tmp_path / f"{draft_id}.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line)["event_type"] for line in lines]
    assert events == ["session_started", "step_changed", "session_closed"]


def test_handoff_tears_down_session_but_keeps_handoff_state(make_wizard, tmp_path):
    events = WizardEventLog(logs_dir=tmp_path, enabled=True)
    wizard = make_wizard(event_log=events)
    draft_id = wizard.start_new()
    _complete_all(wizard)

    for _ in STEPS:
        wizard.advance()

    assert wizard.state is WizardState.HANDOFF
    assert wizard.handoff_id == draft_id
    assert wizard.store.get() == TripDraft()
    assert events._handles == {}


def test_handoff_callback_sees_draft_before_reset(make_wizard):
    seen = []
    wizard = make_wizard(on_handoff=lambda _id: seen.append(wizard.store.get().title))
    wizard.start_new()
    _complete_all(wizard)
    for _ in STEPS:
        wizard.advance()

    assert seen == ["Eje Cafetero"]


def test_event_payloads_carry_step_label_and_counts(make_wizard, tmp_path):
    wizard = make_wizard(event_log=WizardEventLog(logs_dir=tmp_path, enabled=True))
    draft_id = wizard.start_new()
    _complete_all(wizard)
    for _ in STEPS:
        wizard.advance()

    records = [
        json.loads(line)
        for line in (tmp_path / f"{draft_id}.jsonl").read_text(encoding="utf-8").splitlines()
    ]
    step_changed = [r["payload"] for r in records if r["event_type"] == "step_changed"]
    handoff = [r["payload"] for r in records if r["event_type"] == "handoff"]

    assert step_changed[0]["label"] == "Trip Planning"
    assert step_changed[1]["label"] == "Media Gallery"
    assert handoff == [{
        "mode": "create",
        "preview_path": f"/preview/{draft_id}",
        "route_points": 0,
        "days": 2,
        "activities": 2,
        "images": 1,
    }]
