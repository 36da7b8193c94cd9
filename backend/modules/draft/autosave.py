"""
modules/draft/autosave.py
-------------------------
Local autosave slot for in-progress drafts.

One snapshot per draft identifier (trip id when editing, temp_{ms}_{hex} for a new
trip).  The wizard writes a snapshot on request, restores it when a new-trip
session resumes, and discards it on handoff.

Backends (config.AUTOSAVE_BACKEND):
  in_memory — process-local dict (default; lost on restart)
  redis     — draftsnapshot:{draft_id} keys, see db/redis_client.py
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod

import redis

import config
from db import redis_client
from schemas.draft import TripDraft, draft_from_dict, draft_to_dict

logger = logging.getLogger(__name__)


class DraftAutosave(ABC):
    @abstractmethod
    def save(self, draft_id: str, draft: TripDraft) -> None: ...

    @abstractmethod
    def load(self, draft_id: str) -> TripDraft | None: ...

    @abstractmethod
    def discard(self, draft_id: str) -> None: ...


class InMemoryAutosave(DraftAutosave):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: dict[str, TripDraft] = {}

    def save(self, draft_id: str, draft: TripDraft) -> None:
        with self._lock:
            self._slots[draft_id] = copy.deepcopy(draft)

    def load(self, draft_id: str) -> TripDraft | None:
        with self._lock:
            draft = self._slots.get(draft_id)
            return copy.deepcopy(draft) if draft is not None else None

    def discard(self, draft_id: str) -> None:
        with self._lock:
            self._slots.pop(draft_id, None)


class RedisAutosave(DraftAutosave):
    """
    Snapshots stored as JSON strings in Redis.

    Redis errors are logged and swallowed on save/discard: losing an autosave
    must never break the editing session.  load() reports a miss instead.
    """

    def __init__(self, client: redis.Redis | None = None) -> None:
        self._client = client

    def save(self, draft_id: str, draft: TripDraft) -> None:
        try:
            redis_client.set_draft_snapshot(draft_id, draft_to_dict(draft), client=self._client)
        except redis.RedisError as exc:
            logger.warning("Autosave write failed for %s: %s", draft_id, exc)

    def load(self, draft_id: str) -> TripDraft | None:
        try:
            data = redis_client.get_draft_snapshot(draft_id, client=self._client)
        except redis.RedisError as exc:
            logger.warning("Autosave read failed for %s: %s", draft_id, exc)
            return None
        return draft_from_dict(data) if data else None

    def discard(self, draft_id: str) -> None:
        try:
            redis_client.delete_draft_snapshot(draft_id, client=self._client)
        except redis.RedisError as exc:
            logger.warning("Autosave discard failed for %s: %s", draft_id, exc)


_default: DraftAutosave | None = None


def get_autosave() -> DraftAutosave:
    """Process-wide autosave slot selected by config.AUTOSAVE_BACKEND."""
    global _default
    if _default is None:
        backend = config.AUTOSAVE_BACKEND.strip().lower()
        if backend == "redis":
            _default = RedisAutosave()
        elif backend == "in_memory":
            _default = InMemoryAutosave()
        else:
            raise ValueError(f"unknown AUTOSAVE_BACKEND {config.AUTOSAVE_BACKEND!r}")
        logger.info("Autosave backend: %s", backend)
    return _default
