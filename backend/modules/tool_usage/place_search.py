"""
modules/tool_usage/place_search.py
------------------------------------
Search-as-you-type over the geo lookup adapter.

Every keystroke calls PlaceSearch.search(text).  Each call takes a new
generation number; after the debounce delay and again after the adapter
answers, the call checks that it is still the newest one.  Superseded calls
return None and leave `suggestions` untouched, so a slow response for an old
prefix can never overwrite the list for the current one.
"""

from __future__ import annotations

import asyncio
import logging

import config
from modules.errors import GeoLookupError
from modules.tool_usage.geo_lookup_tool import GeoLookup
from schemas.geo import PlaceSuggestion

logger = logging.getLogger(__name__)


class PlaceSearch:
    """Debounced, last-request-wins place suggestions for one search box."""

    def __init__(
        self,
        geo_lookup: GeoLookup,
        debounce_ms: int | None = None,
        min_chars: int | None = None,
        max_results: int | None = None,
    ) -> None:
        self.geo_lookup = geo_lookup
        self.debounce_s = (config.SEARCH_DEBOUNCE_MS if debounce_ms is None else debounce_ms) / 1000.0
        self.min_chars = config.SEARCH_MIN_CHARS if min_chars is None else min_chars
        self.max_results = config.SEARCH_MAX_RESULTS if max_results is None else max_results

        self.suggestions: list[PlaceSuggestion] = []
        self.query: str = ""
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def search(self, text: str) -> list[PlaceSuggestion] | None:
        """
        Debounce, query the adapter, and apply the result if still current.

        Returns the applied suggestion list, or None if a newer call
        superseded this one.
        """
        self._generation += 1
        generation = self._generation
        query = text.strip()

        if len(query) < self.min_chars:
            return self._apply(generation, query, [])

        if self.debounce_s > 0:
            await asyncio.sleep(self.debounce_s)
        if not self.is_current(generation):
            logger.debug("Search %r superseded during debounce", query)
            return None

        try:
            results = await asyncio.to_thread(self.geo_lookup.search, query)
        except GeoLookupError as exc:
            logger.warning("Place search failed for %r: %s", query, exc)
            results = []

        return self._apply(generation, query, results[: self.max_results])

    def clear(self) -> None:
        """Drop suggestions and invalidate any in-flight search."""
        self._generation += 1
        self.suggestions = []
        self.query = ""

    def _apply(
        self,
        generation: int,
        query: str,
        results: list[PlaceSuggestion],
    ) -> list[PlaceSuggestion] | None:
        if not self.is_current(generation):
            logger.debug("Discarding stale results for %r", query)
            return None
        self.query = query
        self.suggestions = list(results)
        return self.suggestions
