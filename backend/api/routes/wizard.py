"""
api/routes/wizard.py
---------------------
/v1/wizard/* — drive one trip-authoring wizard per session id.

Every endpoint forwards to a WizardController held in an in-process
registry; the HTTP layer adds no behaviour of its own.

    POST   /sessions                                   start (create | edit)
    GET    /sessions/{sid}                             controller + draft
    DELETE /sessions/{sid}                             close and forget
    PATCH  /sessions/{sid}/identity                    identity fields
    PUT    /sessions/{sid}/dates                       date range -> durations
    PUT    /sessions/{sid}/gallery
    PUT    /sessions/{sid}/discounts
    PUT    /sessions/{sid}/promoter
    GET    /sessions/{sid}/search?q=                   place suggestions
    POST   /sessions/{sid}/points                      add by coordinates
    POST   /sessions/{sid}/points/click                add by map click
    POST   /sessions/{sid}/points/suggestion           add by search pick
    PATCH  /sessions/{sid}/points/{point_id}           rename / move
    DELETE /sessions/{sid}/points/{point_id}
    GET    /sessions/{sid}/route                       path + bounds
    POST   /sessions/{sid}/days                        (+ PATCH/DELETE/move)
    POST   /sessions/{sid}/days/{i}/activities         (+ PATCH/DELETE/move)
    GET    /sessions/{sid}/validation
    POST   /sessions/{sid}/advance | back | go-to | snapshot

Error mapping (see api/server.py for the exception handlers):
    unknown session → 404, WizardStateError → 409,
    TripNotFoundError → 404, other HydrationError → 502
"""

from __future__ import annotations

import uuid
from dataclasses import asdict
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from modules.hydration.mapper import normalize_category
from modules.planning.route_composer import AddPointResult
from modules.wizard.controller import WizardController, preview_path
from schemas.draft import Activity, ActivityType, DiscountCode, PriceType, WizardStep, draft_to_dict
from schemas.geo import PlaceSuggestion, RoutePath

router = APIRouter()

# ── In-memory session registry ─────────────────────────────────────────────────
# key: session_id (str uuid4), value: WizardController
_sessions: dict[str, WizardController] = {}

ControllerFactory = Callable[[], WizardController]


def get_controller_factory() -> ControllerFactory:
    """Overridable dependency; tests swap in controllers with stub collaborators."""
    return WizardController


def get_session(session_id: str) -> WizardController:
    wizard = _sessions.get(session_id)
    if wizard is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found.")
    return wizard


def reset_sessions() -> None:
    for wizard in _sessions.values():
        wizard.close()
    _sessions.clear()


# ── Request schemas ────────────────────────────────────────────────────────────

class StartRequest(BaseModel):
    mode: str = Field("create", description="create | edit")
    trip_id: Optional[str] = Field(None, description="Required when mode=edit")
    draft_id: Optional[str] = Field(None, description="Draft id of an earlier session to resume")


class IdentityPatch(BaseModel):
    location_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    destination_region: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    duration_days: Optional[int] = None
    duration_nights: Optional[int] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    price_type: Optional[PriceType] = None
    max_persons: Optional[int] = None
    status: Optional[str] = None


class DateRangeRequest(BaseModel):
    start_date: str = Field(..., description="ISO-8601 date YYYY-MM-DD")
    end_date: str = Field(..., description="ISO-8601 date YYYY-MM-DD")


class GalleryRequest(BaseModel):
    images: list[str] = Field(default_factory=list)
    cover_image_index: Optional[int] = None


class DiscountCodeIn(BaseModel):
    code: str = Field(..., min_length=1)
    percentage: int = Field(..., ge=0, le=100)
    max_uses: Optional[int] = Field(None, ge=1)
    per_user_limit: Optional[int] = Field(None, ge=1)


class DiscountsRequest(BaseModel):
    codes: list[DiscountCodeIn] = Field(default_factory=list)


class PromoterRequest(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None


class PointRequest(BaseModel):
    lat: float
    lng: float
    label: Optional[str] = None


class ClickRequest(BaseModel):
    lat: float
    lng: float


class SuggestionRequest(BaseModel):
    label: str
    place_ref: str


class PointPatch(BaseModel):
    name: Optional[str] = None
    index: Optional[int] = Field(None, ge=0, description="New 0-based position")


class DayRequest(BaseModel):
    title: str = ""
    subtitle: Optional[str] = None
    position: Optional[int] = Field(None, ge=0)


class DayPatch(BaseModel):
    title: Optional[str] = None
    subtitle: Optional[str] = None


class MoveRequest(BaseModel):
    to: int = Field(..., ge=0)


class ActivityRequest(BaseModel):
    type: ActivityType = ActivityType.ACTIVITY
    title: str = ""
    description: Optional[str] = None
    time: Optional[str] = None               # "HH:MM"
    lat: Optional[float] = None
    lng: Optional[float] = None
    poi_id: Optional[str] = None
    position: Optional[int] = Field(None, ge=0)


class ActivityPatch(BaseModel):
    type: Optional[ActivityType] = None
    title: Optional[str] = None
    description: Optional[str] = None
    time: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    poi_id: Optional[str] = None


class GoToRequest(BaseModel):
    step: WizardStep


# ── Serialisers ────────────────────────────────────────────────────────────────

def _ser_session(session_id: str, wizard: WizardController) -> dict:
    return {"session_id": session_id, **wizard.describe(), "draft": draft_to_dict(wizard.store.get())}


def _ser_add_point(result: AddPointResult, wizard: WizardController) -> dict:
    return {
        "outcome": result.outcome.value,
        "point": asdict(result.point) if result.point else None,
        "notice": result.notice,
        "route_points": [asdict(p) for p in wizard.route.points],
    }


def _ser_path(path: RoutePath) -> dict:
    return {
        "source": path.source.value,
        "vertices": [{"lat": v.lat, "lng": v.lng} for v in path.vertices],
        "distance_m": path.distance_m,
        "duration_s": path.duration_s,
    }


def _ser_itinerary(wizard: WizardController) -> list[dict]:
    return draft_to_dict(wizard.store.get())["itinerary"]


# ── Lifecycle ──────────────────────────────────────────────────────────────────

@router.post("/sessions", summary="Start a wizard session (new trip or edit)")
async def start_session(
    req: StartRequest,
    factory: ControllerFactory = Depends(get_controller_factory),
) -> dict:
    wizard = factory()
    if req.mode == "edit":
        if not req.trip_id:
            raise HTTPException(status_code=422, detail="trip_id is required when mode=edit")
        await wizard.start_edit(req.trip_id)
    elif req.mode == "create":
        wizard.start_new(draft_id=req.draft_id)
    else:
        raise HTTPException(status_code=422, detail=f"Unknown mode '{req.mode}'")

    session_id = str(uuid.uuid4())
    _sessions[session_id] = wizard
    return _ser_session(session_id, wizard)


@router.get("/sessions/{session_id}", summary="Controller state and current draft")
def read_session(session_id: str) -> dict:
    return _ser_session(session_id, get_session(session_id))


@router.delete("/sessions/{session_id}", summary="Close the wizard and discard its draft")
def close_session(session_id: str) -> dict:
    wizard = get_session(session_id)
    wizard.close()
    _sessions.pop(session_id, None)
    return {"session_id": session_id, "state": wizard.state.value}


# ── Draft slices ───────────────────────────────────────────────────────────────

@router.patch("/sessions/{session_id}/identity", summary="Overwrite identity fields")
def patch_identity(session_id: str, req: IdentityPatch) -> dict:
    wizard = get_session(session_id)
    changes: dict[str, Any] = req.model_dump(exclude_unset=True)
    if "category" in changes:
        changes["category"] = normalize_category(changes["category"])
    wizard.store.set_identity(**changes)
    return _ser_session(session_id, wizard)


@router.put("/sessions/{session_id}/dates", summary="Set the date range and derived durations")
def put_dates(session_id: str, req: DateRangeRequest) -> dict:
    wizard = get_session(session_id)
    try:
        wizard.store.set_date_range(req.start_date, req.end_date)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _ser_session(session_id, wizard)


@router.put("/sessions/{session_id}/gallery")
def put_gallery(session_id: str, req: GalleryRequest) -> dict:
    wizard = get_session(session_id)
    wizard.store.set_gallery(req.images, req.cover_image_index)
    draft = wizard.store.get()
    return {"gallery_images": draft.gallery_images, "cover_image_index": draft.cover_image_index}


@router.put("/sessions/{session_id}/discounts")
def put_discounts(session_id: str, req: DiscountsRequest) -> dict:
    wizard = get_session(session_id)
    wizard.store.set_discount_codes([DiscountCode(**c.model_dump()) for c in req.codes])
    return {"discount_codes": [asdict(c) for c in wizard.store.get().discount_codes]}


@router.put("/sessions/{session_id}/promoter")
def put_promoter(session_id: str, req: PromoterRequest) -> dict:
    wizard = get_session(session_id)
    wizard.store.set_promoter(code=req.code, name=req.name)
    draft = wizard.store.get()
    return {"promoter_code": draft.promoter_code, "promoter_name": draft.promoter_name}


# ── Route ──────────────────────────────────────────────────────────────────────

@router.get("/sessions/{session_id}/search", summary="Place suggestions for a partial query")
async def search_places(session_id: str, q: str = Query("", description="Partial place name")) -> dict:
    wizard = get_session(session_id)
    suggestions = await wizard.search.search(q)
    return {
        "query": q,
        "stale": suggestions is None,
        "suggestions": [asdict(s) for s in wizard.search.suggestions],
    }


@router.post("/sessions/{session_id}/points", summary="Add a route point by coordinates")
def add_point(session_id: str, req: PointRequest) -> dict:
    wizard = get_session(session_id)
    return _ser_add_point(wizard.route.add_point(req.lat, req.lng, req.label), wizard)


@router.post("/sessions/{session_id}/points/click", summary="Add a route point from a map click")
async def click_point(session_id: str, req: ClickRequest) -> dict:
    wizard = get_session(session_id)
    return _ser_add_point(await wizard.route.handle_map_click(req.lat, req.lng), wizard)


@router.post("/sessions/{session_id}/points/suggestion", summary="Add a route point from a search pick")
async def pick_suggestion(session_id: str, req: SuggestionRequest) -> dict:
    wizard = get_session(session_id)
    suggestion = PlaceSuggestion(label=req.label, place_ref=req.place_ref)
    return _ser_add_point(await wizard.route.select_suggestion(suggestion), wizard)


@router.patch("/sessions/{session_id}/points/{point_id}", summary="Rename or reorder a route point")
def patch_point(session_id: str, point_id: str, req: PointPatch) -> dict:
    wizard = get_session(session_id)
    # position is checked before any write
    if req.index is not None and req.index >= len(wizard.route.points):
        raise HTTPException(status_code=422, detail=f"route position {req.index} out of range")
    found = True
    if req.name is not None:
        found = wizard.route.rename_point(point_id, req.name)
    if found and req.index is not None:
        found = wizard.route.move_point(point_id, req.index)
    if not found:
        raise HTTPException(status_code=404, detail=f"Route point '{point_id}' not found.")
    return {"route_points": [asdict(p) for p in wizard.route.points]}


@router.delete("/sessions/{session_id}/points/{point_id}")
def delete_point(session_id: str, point_id: str) -> dict:
    wizard = get_session(session_id)
    if not wizard.route.remove_point(point_id):
        raise HTTPException(status_code=404, detail=f"Route point '{point_id}' not found.")
    return {"route_points": [asdict(p) for p in wizard.route.points]}


@router.get("/sessions/{session_id}/route", summary="Path, bounds and centre of the route")
async def read_route(session_id: str) -> dict:
    wizard = get_session(session_id)
    path = await wizard.route.resolve_route()
    center = wizard.route.center()
    return {
        "path": _ser_path(path),
        "bounds": wizard.route.bounds(),
        "center": {"lat": center.lat, "lng": center.lng},
    }


# ── Itinerary ──────────────────────────────────────────────────────────────────

def _itinerary_call(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    try:
        return fn(*args, **kwargs)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post("/sessions/{session_id}/days")
def add_day(session_id: str, req: DayRequest) -> dict:
    wizard = get_session(session_id)
    _itinerary_call(wizard.itinerary.add_day, req.title, req.subtitle, req.position)
    return {"itinerary": _ser_itinerary(wizard)}


@router.patch("/sessions/{session_id}/days/{day_index}")
def patch_day(session_id: str, day_index: int, req: DayPatch) -> dict:
    wizard = get_session(session_id)
    _itinerary_call(wizard.itinerary.update_day, day_index, title=req.title, subtitle=req.subtitle)
    return {"itinerary": _ser_itinerary(wizard)}


@router.delete("/sessions/{session_id}/days/{day_index}")
def delete_day(session_id: str, day_index: int) -> dict:
    wizard = get_session(session_id)
    _itinerary_call(wizard.itinerary.remove_day, day_index)
    return {"itinerary": _ser_itinerary(wizard)}


@router.post("/sessions/{session_id}/days/{day_index}/move")
def move_day(session_id: str, day_index: int, req: MoveRequest) -> dict:
    wizard = get_session(session_id)
    _itinerary_call(wizard.itinerary.move_day, day_index, req.to)
    return {"itinerary": _ser_itinerary(wizard)}


@router.post("/sessions/{session_id}/days/{day_index}/activities")
def add_activity(session_id: str, day_index: int, req: ActivityRequest) -> dict:
    wizard = get_session(session_id)
    fields = req.model_dump(exclude={"position"})
    _itinerary_call(wizard.itinerary.add_activity, day_index, Activity(**fields), req.position)
    return {"itinerary": _ser_itinerary(wizard)}


@router.patch("/sessions/{session_id}/days/{day_index}/activities/{activity_index}")
def patch_activity(session_id: str, day_index: int, activity_index: int, req: ActivityPatch) -> dict:
    wizard = get_session(session_id)
    _itinerary_call(
        wizard.itinerary.update_activity,
        day_index,
        activity_index,
        **req.model_dump(exclude_unset=True),
    )
    return {"itinerary": _ser_itinerary(wizard)}


@router.delete("/sessions/{session_id}/days/{day_index}/activities/{activity_index}")
def delete_activity(session_id: str, day_index: int, activity_index: int) -> dict:
    wizard = get_session(session_id)
    _itinerary_call(wizard.itinerary.remove_activity, day_index, activity_index)
    return {"itinerary": _ser_itinerary(wizard)}


@router.post("/sessions/{session_id}/days/{day_index}/activities/{activity_index}/move")
def move_activity(session_id: str, day_index: int, activity_index: int, req: MoveRequest) -> dict:
    wizard = get_session(session_id)
    _itinerary_call(wizard.itinerary.move_activity, day_index, activity_index, req.to)
    return {"itinerary": _ser_itinerary(wizard)}


# ── Navigation ─────────────────────────────────────────────────────────────────

@router.get("/sessions/{session_id}/validation", summary="Why the current step is (in)complete")
def validation(session_id: str) -> dict:
    wizard = get_session(session_id)
    result = wizard.check_current_step()
    return {"step": wizard.current_step.value, "valid": result.valid, "errors": result.errors}


@router.post("/sessions/{session_id}/advance", summary="Advance to the next step or hand off")
def advance(session_id: str) -> dict:
    wizard = get_session(session_id)
    moved = wizard.advance()
    body = {"advanced": moved, **wizard.describe()}
    if wizard.handoff_id:
        body["handoff"] = {
            "draft_id": wizard.handoff_id,
            "preview_path": preview_path(wizard.handoff_id),
        }
        _sessions.pop(session_id, None)
    elif not moved:
        body["errors"] = wizard.check_current_step().errors
    return body


@router.post("/sessions/{session_id}/back")
def back(session_id: str) -> dict:
    wizard = get_session(session_id)
    return {"moved": wizard.back(), **wizard.describe()}


@router.post("/sessions/{session_id}/go-to")
def go_to(session_id: str, req: GoToRequest) -> dict:
    wizard = get_session(session_id)
    return {"moved": wizard.go_to(req.step), **wizard.describe()}


@router.post("/sessions/{session_id}/snapshot", summary="Write the draft to the autosave slot")
def snapshot(session_id: str) -> dict:
    wizard = get_session(session_id)
    return {"draft_id": wizard.snapshot()}
