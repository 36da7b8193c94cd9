"""
modules/wizard/controller.py
-----------------------------
WizardController — drives one trip-authoring session through its steps.

Wraps DraftStore, RouteComposer, ItineraryComposer, PlaceSearch, the trip
record client and the autosave slot into a single interface an HTTP layer
or a UI can drive.

Lifecycle:
    wizard = WizardController(on_handoff=lambda draft_id: ...)

    wizard.start_new()                    # or: await wizard.start_edit("trip-42")
    wizard.store.set_identity(title="Eje Cafetero", ...)
    wizard.advance()                      # False until the step is complete
    ...
    wizard.advance()                      # from the last step -> handoff

States:
    idle ─start_new──────────────────────► active ⇄ transitioning
    idle ─start_edit─► loading_hydration ─► active
                              │ failure
                              ▼
                            closed  ◄─close()─ (any)
    active ─advance on last step─► handoff
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from enum import Enum
from typing import Any, Callable, Optional

from modules.draft.autosave import DraftAutosave, get_autosave
from modules.draft.store import DraftStore
from modules.errors import HydrationError, WizardStateError
from modules.hydration.mapper import hydrate_draft
from modules.hydration.trip_client import TripRecordClient
from modules.observability.logger import WizardEventLog
from modules.planning.itinerary_composer import ItineraryComposer
from modules.planning.route_composer import RouteComposer
from modules.tool_usage.geo_lookup_tool import GeoLookup, get_geo_lookup
from modules.tool_usage.place_search import PlaceSearch
from modules.validation.step_validator import ValidationResult, check_step, is_step_complete
from schemas.draft import WizardStep

logger = logging.getLogger(__name__)


class WizardState(str, Enum):
    IDLE = "idle"
    LOADING_HYDRATION = "loading_hydration"
    ACTIVE = "active"
    TRANSITIONING = "transitioning"
    HANDOFF = "handoff"
    CLOSED = "closed"


class WizardMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


STEPS: list[WizardStep] = [WizardStep.BASIC, WizardStep.ITINERARY, WizardStep.GALLERY]

STEP_LABELS: dict[WizardStep, str] = {
    WizardStep.BASIC: "Basic Info",
    WizardStep.ITINERARY: "Trip Planning",
    WizardStep.GALLERY: "Media Gallery",
}

TEMP_ID_PREFIX = "temp_"


def new_temp_id() -> str:
    """`temp_{ms}_{8 hex}`, unique per session."""
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def preview_path(draft_id: str) -> str:
    return f"/preview/{draft_id}"


class WizardController:
    """
    Manages the step lifecycle of one wizard session.

    Single source of truth for:
      - the draft (through its DraftStore)
      - the active step and controller state
      - the draft identifier handed off on completion
    """

    def __init__(
        self,
        store: Optional[DraftStore] = None,
        geo_lookup: Optional[GeoLookup] = None,
        trip_client: Optional[TripRecordClient] = None,
        autosave: Optional[DraftAutosave] = None,
        event_log: Optional[WizardEventLog] = None,
        on_handoff: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.store        = store or DraftStore()
        self.geo_lookup   = geo_lookup or get_geo_lookup()
        self.trip_client  = trip_client or TripRecordClient()
        self.autosave     = autosave or get_autosave()
        self.events       = event_log or WizardEventLog()
        self.on_handoff   = on_handoff

        self.route        = RouteComposer(self.store, self.geo_lookup)
        self.itinerary    = ItineraryComposer(self.store)
        self.search       = PlaceSearch(self.geo_lookup)

        self.state: WizardState = WizardState.IDLE
        self.mode: Optional[WizardMode] = None
        self.trip_id: Optional[str] = None
        self.temp_id: Optional[str] = None
        self.step_index: int = 0
        self.handoff_id: Optional[str] = None

    # ── Identity ──────────────────────────────────────────────────────────────

    @property
    def draft_id(self) -> Optional[str]:
        """Trip id in edit mode, temporary id otherwise."""
        return self.trip_id if self.mode is WizardMode.EDIT else self.temp_id

    @property
    def current_step(self) -> WizardStep:
        return STEPS[self.step_index]

    @property
    def is_last_step(self) -> bool:
        return self.step_index == len(STEPS) - 1

    # ── Start ─────────────────────────────────────────────────────────────────

    def start_new(self, draft_id: Optional[str] = None) -> str:
        """
        Begin a new-trip session with an empty draft.

        Passing the draft_id of an earlier session resumes it: the snapshot
        stored under that id is restored when one exists.  Without a
        draft_id a fresh temporary id is minted.  Returns the draft id.
        """
        self._require(WizardState.IDLE)
        self.mode = WizardMode.CREATE
        self.temp_id = draft_id or new_temp_id()
        self.store.reset()

        restored = False
        if draft_id:
            snapshot = self.autosave.load(self.temp_id)
            if snapshot is not None:
                self.store.load(snapshot)
                restored = True

        self.step_index = 0
        self.state = WizardState.ACTIVE
        logger.info("Wizard %s started (create, restored=%s)", self.temp_id, restored)
        self.events.log(self.temp_id, "session_started", {"mode": "create", "restored": restored})
        return self.temp_id

    async def start_edit(self, trip_id: str) -> str:
        """
        Fetch and hydrate an existing trip, then enter the first step.

        Any failure aborts and closes the session; the HydrationError is
        re-raised so the caller can tell the operator.
        """
        self._require(WizardState.IDLE)
        self.mode = WizardMode.EDIT
        self.trip_id = trip_id
        self.state = WizardState.LOADING_HYDRATION

        try:
            record = await asyncio.to_thread(self.trip_client.fetch, trip_id)
            draft = hydrate_draft(record)
        except HydrationError as exc:
            self._abort_hydration(exc)
            raise
        except Exception as exc:
            self._abort_hydration(exc)
            raise HydrationError(f"could not load trip {trip_id}: {exc}") from exc

        if self.state is not WizardState.LOADING_HYDRATION:
            # closed while the fetch was outstanding
            raise WizardStateError(f"wizard for {trip_id} closed during hydration")

        self.store.load(draft)
        self.step_index = 0
        self.state = WizardState.ACTIVE
        logger.info("Wizard %s started (edit)", trip_id)
        self.events.log(trip_id, "session_started", {"mode": "edit"})
        return trip_id

    def _abort_hydration(self, exc: Exception) -> None:
        logger.warning("Hydration of %s failed: %s", self.trip_id, exc)
        self.events.log(self.trip_id or "", "hydration_failed", {"error": str(exc)})
        self.close()

    # ── Navigation ────────────────────────────────────────────────────────────

    def check_current_step(self) -> ValidationResult:
        return check_step(self.current_step, self.store.get())

    @property
    def can_advance(self) -> bool:
        return (
            self.state is WizardState.ACTIVE
            and is_step_complete(self.current_step, self.store.get())
        )

    @property
    def completion(self) -> int:
        """Progress through the steps as a rounded percentage."""
        return round((self.step_index + 1) / len(STEPS) * 100)

    def advance(self, animate: bool = False) -> bool:
        """
        Move to the next step if the current one is complete.

        Returns False (and changes nothing) when the step is incomplete or a
        transition is still running.  On the last step this hands off.
        """
        if self.state is WizardState.TRANSITIONING:
            return False
        self._require(WizardState.ACTIVE)
        if not is_step_complete(self.current_step, self.store.get()):
            return False

        if self.is_last_step:
            self._handoff()
            return True

        self._move_to(self.step_index + 1, animate)
        return True

    def finish_transition(self) -> None:
        if self.state is WizardState.TRANSITIONING:
            self.state = WizardState.ACTIVE

    def back(self) -> bool:
        if self.state is WizardState.TRANSITIONING:
            return False
        self._require(WizardState.ACTIVE)
        if self.step_index == 0:
            return False
        self._move_to(self.step_index - 1)
        return True

    def go_to(self, step: WizardStep | str) -> bool:
        """Jump backwards freely; forwards only past complete steps."""
        if self.state is WizardState.TRANSITIONING:
            return False
        self._require(WizardState.ACTIVE)
        target = STEPS.index(WizardStep(step))
        if target == self.step_index:
            return True
        if target > self.step_index:
            draft = self.store.get()
            if not all(is_step_complete(s, draft) for s in STEPS[:target]):
                return False
        self._move_to(target)
        return True

    def _move_to(self, index: int, animate: bool = False) -> None:
        previous = self.current_step
        self.step_index = index
        self.state = WizardState.TRANSITIONING if animate else WizardState.ACTIVE
        logger.debug("Wizard %s: %s -> %s", self.draft_id, previous.value, self.current_step.value)
        self.events.log(
            self.draft_id or "",
            "step_changed",
            {
                "from": previous.value,
                "to": self.current_step.value,
                "label": STEP_LABELS[self.current_step],
                **self._draft_counts(),
            },
        )

    def _handoff(self) -> None:
        """Emit the draft id, then tear the session down (state stays HANDOFF)."""
        draft_id = self.draft_id
        assert draft_id is not None
        self.state = WizardState.HANDOFF
        self.handoff_id = draft_id
        self.autosave.discard(draft_id)
        logger.info("Wizard %s handed off to %s", draft_id, preview_path(draft_id))
        self.events.log(
            draft_id,
            "handoff",
            {"mode": self.mode.value if self.mode else None,
             "preview_path": preview_path(draft_id),
             **self._draft_counts()},
        )
        try:
            if self.on_handoff is not None:
                self.on_handoff(draft_id)
        finally:
            self.store.reset()
            self.search.clear()
            self.events.close(draft_id)

    def _draft_counts(self) -> dict[str, int]:
        draft = self.store.get()
        return {
            "route_points": len(draft.route_points),
            "days": len(draft.itinerary),
            "activities": sum(len(d.activities) for d in draft.itinerary),
            "images": len(draft.gallery_images),
        }

    # ── Persistence / teardown ────────────────────────────────────────────────

    def snapshot(self) -> str:
        """Write the current draft to the autosave slot; returns the key used."""
        self._require(WizardState.ACTIVE, WizardState.TRANSITIONING)
        draft_id = self.draft_id
        assert draft_id is not None
        self.autosave.save(draft_id, self.store.get())
        return draft_id

    def close(self) -> None:
        """Discard the in-memory draft.  Nothing is persisted remotely."""
        if self.state is WizardState.CLOSED:
            return
        draft_id = self.draft_id
        self.store.reset()
        self.search.clear()
        self.state = WizardState.CLOSED
        if draft_id:
            self.events.log(draft_id, "session_closed", {})
            self.events.close(draft_id)
        logger.info("Wizard %s closed", draft_id)

    def describe(self) -> dict[str, Any]:
        """Plain-data view of the controller for an API response."""
        return {
            "state": self.state.value,
            "mode": self.mode.value if self.mode else None,
            "draft_id": self.draft_id,
            "step": self.current_step.value,
            "step_label": STEP_LABELS[self.current_step],
            "step_index": self.step_index,
            "steps": [{"step": s.value, "label": STEP_LABELS[s]} for s in STEPS],
            "completion": self.completion,
            "can_advance": self.can_advance,
            "handoff_id": self.handoff_id,
        }

    def _require(self, *states: WizardState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise WizardStateError(f"operation needs state {allowed}; wizard is {self.state.value}")
