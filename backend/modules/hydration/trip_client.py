"""
modules/hydration/trip_client.py
---------------------------------
Fetches a persisted trip record from the trips REST API.

  GET {TRIPS_API_BASE_URL}/agencies/trips/{trip_id}
  Authorization: Bearer {TRIPS_API_TOKEN}      (only when configured)

Responses may wrap the record in a {"data": {...}} envelope; fetch() returns
the bare record dict either way.

Errors:
  TripNotFoundError  — 404, or a 2xx with no record in the body
  TripFetchError     — transport failure, timeout, other non-2xx, bad JSON
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests

import config
from modules.errors import TripFetchError, TripNotFoundError

logger = logging.getLogger(__name__)


class TripRecordClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else config.TRIPS_API_BASE_URL).rstrip("/")
        self.token = token if token is not None else config.TRIPS_API_TOKEN
        self.timeout = timeout if timeout is not None else config.TRIPS_API_TIMEOUT
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def trip_url(self, trip_id: str) -> str:
        return f"{self.base_url}/agencies/trips/{quote(str(trip_id), safe='')}"

    def fetch(self, trip_id: str) -> dict[str, Any]:
        """Return the trip record for *trip_id* as a plain dict."""
        url = self.trip_url(trip_id)
        logger.info("Fetching trip %s", trip_id)
        try:
            resp = self._session.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise TripFetchError(f"could not reach trips API for {trip_id}: {exc}") from exc

        if resp.status_code == 404:
            raise TripNotFoundError(f"trip {trip_id} not found")
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise TripFetchError(f"trips API returned {resp.status_code} for {trip_id}") from exc

        if not resp.content:
            raise TripNotFoundError(f"trips API returned an empty body for {trip_id}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise TripFetchError(f"trips API returned invalid JSON for {trip_id}") from exc

        if isinstance(body, dict) and "data" in body:
            body = body["data"]
        if not isinstance(body, dict) or not body:
            raise TripNotFoundError(f"trips API returned no record for {trip_id}")
        return body
