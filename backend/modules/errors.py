"""
modules/errors.py
-----------------
Exception hierarchy for the trip draft engine.

Only hydration failures are fatal to a wizard session.  Validation outcomes
are never raised; geo lookup errors are absorbed by the composers.
"""

from __future__ import annotations


class TripDraftError(RuntimeError):
    """Base class for every error raised by the draft engine."""


class HydrationError(TripDraftError):
    """A persisted trip record could not be turned into a draft."""


class TripNotFoundError(HydrationError):
    """The trips API has no record for the requested id."""


class TripFetchError(HydrationError):
    """Transport failure or unexpected response from the trips API."""


class GeoLookupError(TripDraftError):
    """A place search / resolve / reverse-geocode / directions call failed."""


class WizardStateError(TripDraftError):
    """Operation not allowed in the wizard's current state."""
