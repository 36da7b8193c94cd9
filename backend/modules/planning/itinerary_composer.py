"""
modules/planning/itinerary_composer.py
---------------------------------------
Day / activity editing for the itinerary slice of a trip draft.

Every operation reads the itinerary, edits the copy, renumbers and writes the
whole list back.  After any call:
  day.day == day.order == position + 1         for every day
  activity.order == position + 1               for every activity in a day
"""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, Optional

from modules.draft.store import DraftStore
from schemas.draft import Activity, ActivityType, Day

logger = logging.getLogger(__name__)

_ACTIVITY_FIELDS = frozenset(f.name for f in fields(Activity)) - {"order"}


def renumber_days(days: list[Day]) -> list[Day]:
    for idx, day in enumerate(days, start=1):
        day.day = idx
        day.order = idx
        renumber_activities(day.activities)
    return days


def renumber_activities(activities: list[Activity]) -> list[Activity]:
    for idx, activity in enumerate(activities, start=1):
        activity.order = idx
    return activities


def _check_index(index: int, size: int, what: str) -> None:
    if not 0 <= index < size:
        raise IndexError(f"{what} index {index} out of range (size {size})")


def _insert_at(size: int, position: Optional[int], what: str) -> int:
    if position is None:
        return size
    if not 0 <= position <= size:
        raise IndexError(f"{what} position {position} out of range (size {size})")
    return position


class ItineraryComposer:
    def __init__(self, store: DraftStore) -> None:
        self.store = store

    @property
    def days(self) -> list[Day]:
        return self.store.get().itinerary

    def _write(self, days: list[Day]) -> list[Day]:
        self.store.set_itinerary(renumber_days(days))
        return self.days

    # ── Days ──────────────────────────────────────────────────────────────────

    def add_day(
        self,
        title: str = "",
        subtitle: Optional[str] = None,
        position: Optional[int] = None,
    ) -> Day:
        days = self.days
        at = _insert_at(len(days), position, "day")
        days.insert(at, Day(title=title, subtitle=subtitle))
        return self._write(days)[at]

    def remove_day(self, index: int) -> Day:
        days = self.days
        _check_index(index, len(days), "day")
        removed = days.pop(index)
        self._write(days)
        return removed

    def move_day(self, index: int, new_index: int) -> None:
        days = self.days
        _check_index(index, len(days), "day")
        _check_index(new_index, len(days), "day")
        days.insert(new_index, days.pop(index))
        self._write(days)

    def update_day(
        self,
        index: int,
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
    ) -> Day:
        days = self.days
        _check_index(index, len(days), "day")
        if title is not None:
            days[index].title = title
        if subtitle is not None:
            days[index].subtitle = subtitle
        return self._write(days)[index]

    # ── Activities ────────────────────────────────────────────────────────────

    def add_activity(
        self,
        day_index: int,
        activity: Activity,
        position: Optional[int] = None,
    ) -> Activity:
        days = self.days
        _check_index(day_index, len(days), "day")
        activities = days[day_index].activities
        at = _insert_at(len(activities), position, "activity")
        activities.insert(at, activity)
        return self._write(days)[day_index].activities[at]

    def remove_activity(self, day_index: int, activity_index: int) -> Activity:
        days = self.days
        _check_index(day_index, len(days), "day")
        activities = days[day_index].activities
        _check_index(activity_index, len(activities), "activity")
        removed = activities.pop(activity_index)
        self._write(days)
        return removed

    def move_activity(self, day_index: int, from_index: int, to_index: int) -> None:
        days = self.days
        _check_index(day_index, len(days), "day")
        activities = days[day_index].activities
        _check_index(from_index, len(activities), "activity")
        _check_index(to_index, len(activities), "activity")
        activities.insert(to_index, activities.pop(from_index))
        self._write(days)

    def update_activity(self, day_index: int, activity_index: int, **changes: Any) -> Activity:
        """Overwrite the given activity fields; `order` is managed here and cannot be set."""
        unknown = set(changes) - _ACTIVITY_FIELDS
        if unknown:
            raise ValueError(f"not activity fields: {sorted(unknown)}")
        days = self.days
        _check_index(day_index, len(days), "day")
        activities = days[day_index].activities
        _check_index(activity_index, len(activities), "activity")

        activity = activities[activity_index]
        for name, value in changes.items():
            if name == "type" and not isinstance(value, ActivityType):
                value = ActivityType(value)
            setattr(activity, name, value)
        return self._write(days)[day_index].activities[activity_index]
