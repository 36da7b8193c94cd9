"""
modules/validation/step_validator.py
-------------------------------------
Completeness checks that gate the wizard's step transitions.

Pure functions over a TripDraft; no I/O and never raises for an incomplete
draft.

  basic:
    ✓ location_id non-blank
    ✓ title non-blank
    ✓ description non-blank once HTML tags and &nbsp; are stripped
    ✓ start_date and end_date set
    ✓ duration_days > 0, duration_nights >= 0
    ✓ price > 0
    ✓ max_persons > 0

  itinerary:
    ✓ at least one day
    ✓ every day has at least one activity

  gallery:
    ✓ at least one image

Discount codes and promoter fields never affect the result.

Usage:
    from modules.validation import check_step, is_step_complete

    result = check_step(WizardStep.BASIC, store.get())
    if not result.valid:
        print(result.errors)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable

from schemas.draft import TripDraft, WizardStep

_TAG_RE = re.compile(r"<[^>]*>")


# ── Result dataclass ───────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    """
    Outcome of a single step check.

    Attributes:
        valid:  True iff there are zero errors.
        errors: Human-readable list of failure reasons.
    """
    valid: bool
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid


def strip_rich_text(html: str | None) -> str:
    """Visible text of an HTML fragment: tags and &nbsp; removed, trimmed."""
    if not html:
        return ""
    text = _TAG_RE.sub("", html)
    return text.replace("&nbsp;", " ").strip()


def _blank(value: str | None) -> bool:
    return not value or not value.strip()


# ── Per-step checks ────────────────────────────────────────────────────────────

def _check_basic(draft: TripDraft) -> list[str]:
    errors: list[str] = []

    if _blank(draft.location_id):
        errors.append("location_id is required")
    if _blank(draft.title):
        errors.append("title is required")
    if not strip_rich_text(draft.description):
        errors.append("description is required")

    if not draft.start_date:
        errors.append("start_date is required")
    if not draft.end_date:
        errors.append("end_date is required")
    if draft.duration_days is None or draft.duration_days <= 0:
        errors.append(f"duration_days must be > 0, got {draft.duration_days}")
    if draft.duration_nights is None or draft.duration_nights < 0:
        errors.append(f"duration_nights must be >= 0, got {draft.duration_nights}")

    if draft.price is None or draft.price <= 0:
        errors.append(f"price must be > 0, got {draft.price}")
    if draft.max_persons is None or draft.max_persons <= 0:
        errors.append(f"max_persons must be > 0, got {draft.max_persons}")

    return errors


def _check_itinerary(draft: TripDraft) -> list[str]:
    if not draft.itinerary:
        return ["itinerary needs at least one day"]
    return [
        f"day {idx} has no activities"
        for idx, day in enumerate(draft.itinerary, start=1)
        if not day.activities
    ]


def _check_gallery(draft: TripDraft) -> list[str]:
    if not draft.gallery_images:
        return ["gallery needs at least one image"]
    return []


_CHECKS: dict[WizardStep, Callable[[TripDraft], list[str]]] = {
    WizardStep.BASIC: _check_basic,
    WizardStep.ITINERARY: _check_itinerary,
    WizardStep.GALLERY: _check_gallery,
}


def check_step(step: WizardStep | str, draft: TripDraft) -> ValidationResult:
    errors = _CHECKS[WizardStep(step)](draft)
    return ValidationResult(valid=not errors, errors=errors)


def is_step_complete(step: WizardStep | str, draft: TripDraft) -> bool:
    return check_step(step, draft).valid
