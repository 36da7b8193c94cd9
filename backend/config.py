"""
config.py
---------
Central configuration for the trip draft wizard backend.
All secrets loaded from environment variables, never hard-coded.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the backend directory (if it exists) so env vars in that file
# are picked up by os.getenv() below.  Won't override vars already set in the shell.
_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path, override=False)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# ── Google Maps (required when USE_STUB_GEO=false) ───────────────────────────
# Enable: Places API + Geocoding API + Directions API
# Set env: GOOGLE_MAPS_API_KEY=AIza...
GOOGLE_MAPS_API_KEY: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
GEO_LANGUAGE: str = os.getenv("GEO_LANGUAGE", "es")
GEO_REGION: str = os.getenv("GEO_REGION", "CO")
# Autocomplete suggestions are restricted to this ISO country ("" = worldwide)
GEO_COUNTRY_RESTRICTION: str = os.getenv("GEO_COUNTRY_RESTRICTION", "co")
GEO_REQUEST_TIMEOUT: int = int(os.getenv("GEO_REQUEST_TIMEOUT", "10"))

# The geo adapter runs in stub (offline) mode by default; no API key needed.
USE_STUB_GEO: bool = _flag("USE_STUB_GEO", "true")

# ── Place search (search-as-you-type) ────────────────────────────────────────
SEARCH_DEBOUNCE_MS: int = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))
SEARCH_MIN_CHARS: int = int(os.getenv("SEARCH_MIN_CHARS", "2"))
SEARCH_MAX_RESULTS: int = int(os.getenv("SEARCH_MAX_RESULTS", "8"))

# ── Route composition ────────────────────────────────────────────────────────
# Two points closer than this on both axes are the same stop (~10 m)
ROUTE_POINT_TOLERANCE_DEG: float = float(os.getenv("ROUTE_POINT_TOLERANCE_DEG", "0.0001"))
# Map centre used while the route is empty (Bogotá)
DEFAULT_MAP_CENTER_LAT: float = float(os.getenv("DEFAULT_MAP_CENTER_LAT", "4.6097"))
DEFAULT_MAP_CENTER_LNG: float = float(os.getenv("DEFAULT_MAP_CENTER_LNG", "-74.0817"))

# ── Trips API (record fetch for edit sessions) ───────────────────────────────
TRIPS_API_BASE_URL: str = os.getenv("TRIPS_API_BASE_URL", "http://localhost:3000")
TRIPS_API_TOKEN: str = os.getenv("TRIPS_API_TOKEN", "")
TRIPS_API_TIMEOUT: int = int(os.getenv("TRIPS_API_TIMEOUT", "15"))

# ── Draft defaults ───────────────────────────────────────────────────────────
DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "COP")

# ── Autosave slot ────────────────────────────────────────────────────────────
AUTOSAVE_BACKEND: str = os.getenv("AUTOSAVE_BACKEND", "in_memory")   # "in_memory" | "redis"
DRAFT_SNAPSHOT_TTL: int = int(os.getenv("DRAFT_SNAPSHOT_TTL", "604800"))  # 7 days

# ── Redis ────────────────────────────────────────────────────────────────────
REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")

# ── Session event log ────────────────────────────────────────────────────────
SESSION_LOG_ENABLED: bool = _flag("SESSION_LOG_ENABLED", "false")
SESSION_LOG_DIR: str = os.getenv("SESSION_LOG_DIR", str(Path(__file__).parent / "logs"))
