"""
db/redis_client.py
-------------------
redis-py client — singleton plus helpers for the draft snapshot key schema.

Key schema:

  draftsnapshot:{draft_id}
       Type : String (JSON document, see schemas.draft.draft_to_dict)
       TTL  : DRAFT_SNAPSHOT_TTL (default 604,800 s = 7 days; reset on each write)
       Key  : the draft identifier — the trip id in edit mode, the temporary
              temp_{ms}_{hex} id for a new trip

Environment variables (set in config.py):
    REDIS_HOST          default: localhost
    REDIS_PORT          default: 6379
    REDIS_DB            default: 0
    REDIS_PASSWORD      default: ""  (empty = no auth)
    DRAFT_SNAPSHOT_TTL  default: 604800
"""

from __future__ import annotations

import json
from typing import Any

import redis

import config

# Module-level singleton; initialised lazily on first call to get_redis()
_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    """Return the singleton Redis client, creating it on first call."""
    global _client
    if _client is None:
        kwargs: dict[str, Any] = {
            "host":             config.REDIS_HOST,
            "port":             config.REDIS_PORT,
            "db":               config.REDIS_DB,
            "decode_responses": True,   # return str, not bytes
        }
        if config.REDIS_PASSWORD:
            kwargs["password"] = config.REDIS_PASSWORD
        _client = redis.Redis(**kwargs)
    return _client


# ── Draft snapshots ────────────────────────────────────────────────────────────

def _snapshot_key(draft_id: str) -> str:
    return f"draftsnapshot:{draft_id}"


def set_draft_snapshot(draft_id: str, data: dict[str, Any], client: redis.Redis | None = None) -> None:
    """Write one snapshot and (re)start its DRAFT_SNAPSHOT_TTL expiry."""
    r = client or get_redis()
    r.setex(_snapshot_key(draft_id), config.DRAFT_SNAPSHOT_TTL, json.dumps(data))


def get_draft_snapshot(draft_id: str, client: redis.Redis | None = None) -> dict | None:
    """
    Return the stored snapshot dict.

    Returns None if the key does not exist (expired or never written).
    """
    r = client or get_redis()
    raw = r.get(_snapshot_key(draft_id))
    return json.loads(raw) if raw else None


def delete_draft_snapshot(draft_id: str, client: redis.Redis | None = None) -> None:
    """Called on handoff, when the snapshot is no longer needed."""
    r = client or get_redis()
    r.delete(_snapshot_key(draft_id))
