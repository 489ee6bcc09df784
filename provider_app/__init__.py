from __future__ import annotations

from typing import Any, Mapping

from flask import Flask

from .geocoding import PostalCodeResolver
from .logger import logger
from .records import RecordStore, get_store
from .session import SessionRegistry
from .tabular import ParseError
from .views import EXTENSION_KEY, directory_bp


def create_app(
    test_config: Mapping[str, Any] | None = None,
    store: RecordStore | None = None,
    geocoder: Any | None = None,
) -> Flask:
    """Build the directory app.

    Args:
        test_config: Overrides applied on top of ``provider_app.config.Config``.
        store: Preloaded providers; when None the CSV at PROVIDERS_CSV is read.
        geocoder: geopy-style geocoder used for postal code lookups.
    """
    app = Flask(__name__)

    app.config.from_object("provider_app.config.Config")
    if test_config:
        app.config.update(test_config)

    load_error: str | None = None
    if store is None:
        try:
            store = get_store(app.config["PROVIDERS_CSV"])
        except (ParseError, OSError, UnicodeDecodeError) as e:
            # No partial or stale set is shown; endpoints answer 503 instead.
            logger.error(f"Error loading providers: {e}")
            load_error = str(e)

    state: dict[str, Any] = {"sessions": None, "load_error": load_error}
    if store is not None:
        resolver = PostalCodeResolver(
            geocoder=geocoder,
            region=app.config["REGION_QUALIFIER"],
            timeout=app.config["GEOCODER_TIMEOUT"],
            user_agent=app.config["GEOCODER_USER_AGENT"],
            cache_size=app.config["GEOCODE_CACHE_SIZE"],
        )
        state["sessions"] = SessionRegistry(store, resolver, app.config, max_sessions=app.config["MAX_SESSIONS"])
    app.extensions[EXTENSION_KEY] = state

    app.register_blueprint(directory_bp, url_prefix="/providers")

    return app
