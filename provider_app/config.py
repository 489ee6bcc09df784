from __future__ import annotations

import os
import secrets
from pathlib import Path


class Config:
    # Project root = folder containing this file's parent (provider_app/..)
    PROJECT_ROOT = Path(__file__).resolve().parents[1]

    # Provider export (treated read-only)
    PROVIDERS_CSV = PROJECT_ROOT / "data" / "providers.csv"

    # Single fixed locale bias appended to every postal code lookup.
    REGION_QUALIFIER = "Rhode Island, USA"

    # Map defaults (Rhode Island)
    DEFAULT_CENTER = (41.7, -71.5)
    DEFAULT_ZOOM = 9
    RADIUS_ZOOM = 11
    FOCUS_ZOOM = 15

    # Signs the cookie that ties a browser to its directory session.
    SECRET_KEY = os.environ.get("PROVIDER_DIRECTORY_SECRET_KEY") or secrets.token_hex(32)
    MAX_SESSIONS = 256

    RADIUS_CHOICES_MILES = (5, 10, 25, 50)
    DEFAULT_RADIUS_MILES = 10

    GEOCODER_USER_AGENT = "provider_directory"
    GEOCODER_TIMEOUT = 10

    # Distinct postal codes remembered per resolver.
    GEOCODE_CACHE_SIZE = 512
