"""
db/
----
Storage access for wizard sessions.

  Redis (redis-py) — volatile autosave slot
    draftsnapshot:{draft_id}   TTL = DRAFT_SNAPSHOT_TTL (7 days)

Trip records themselves live behind the trips REST API
(modules/hydration/trip_client.py); nothing here writes them.

Public exports:
    from db import get_redis
"""

from db.redis_client import get_redis

__all__ = ["get_redis"]
