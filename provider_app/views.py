from __future__ import annotations

import io
import uuid

from flask import Blueprint, Response, current_app, request, session as client_session

from .data_validation import check_data_files, get_data_health_summary
from .filters import SearchRequest
from .logger import logger
from .records import PROVIDER_COLUMNS
from .session import DirectorySession

directory_bp = Blueprint("directory", __name__)

EXTENSION_KEY = "provider_directory"
CLIENT_KEY = "directory_client"


def _state() -> dict:
    return current_app.extensions[EXTENSION_KEY]


def _session_or_error() -> tuple[DirectorySession | None, tuple[dict, int] | None]:
    state = _state()
    if state.get("load_error"):
        return None, ({"error": f"Provider data could not be loaded: {state['load_error']}"}, 503)
    client_id = client_session.get(CLIENT_KEY)
    if not client_id:
        client_id = uuid.uuid4().hex
        client_session[CLIENT_KEY] = client_id
    return state["sessions"].get(client_id), None


@directory_bp.route("/health", methods=["GET"])
def health_check():
    """Data health check endpoint."""
    path = current_app.config["PROVIDERS_CSV"]
    status = check_data_files(path)
    all_ok = all(info["exists"] and info["readable"] and not info["missing_columns"] for info in status.values())
    load_error = _state().get("load_error")
    return {
        "status": status,
        "summary": get_data_health_summary(path),
        "loaded": load_error is None,
        "load_error": load_error,
        "all_ok": all_ok and load_error is None,
    }, (200 if all_ok and load_error is None else 503)


@directory_bp.route("/api/specialties", methods=["GET"])
def specialties():
    session, err = _session_or_error()
    if err:
        return err
    return {"specialties": session.store.facet_specialties()}


@directory_bp.route("/api/search", methods=["GET", "POST"])
async def search():
    session, err = _session_or_error()
    if err:
        return err

    search_request = SearchRequest.from_values(
        request.values,
        default_radius=current_app.config["DEFAULT_RADIUS_MILES"],
        radius_choices=current_app.config["RADIUS_CHOICES_MILES"],
    )
    logger.info(
        f"Search request: name={search_request.name!r}, specialties={list(search_request.specialties)}, "
        f"zip={search_request.zip_code!r}, radius={search_request.radius_miles}, "
        f"gender={search_request.gender!r}, accepting_only={search_request.accepting_only}"
    )
    try:
        outcome = await session.search(search_request)
    except Exception as e:
        logger.error(f"Error in search: {str(e)}", exc_info=True)
        return {"error": str(e)}, 500
    return outcome.to_dict()


@directory_bp.route("/api/clear", methods=["POST"])
def clear():
    session, err = _session_or_error()
    if err:
        return err
    return session.clear().to_dict()


@directory_bp.route("/api/current", methods=["GET"])
def current():
    session, err = _session_or_error()
    if err:
        return err
    return session.current().to_dict()


@directory_bp.route("/api/providers/<provider_id>", methods=["GET"])
def focus_provider(provider_id: str):
    session, err = _session_or_error()
    if err:
        return err
    provider = session.focus(provider_id)
    if provider is None:
        return {"error": f"Provider {provider_id} is not on the map."}, 404
    return {"provider": provider.to_dict(), "viewport": session.viewport.to_dict()}


@directory_bp.route("/export", methods=["GET"])
def export():
    """Current filtered list as CSV, using the input's column headers."""
    session, err = _session_or_error()
    if err:
        return err

    df = session.store.to_frame(session.filtered)
    df = df.rename(columns={f: names[0] for f, names in PROVIDER_COLUMNS.items()})
    df["Accepting New Patients"] = df["Accepting New Patients"].map(lambda v: "True" if v else "False")

    def _stream_csv(frame):
        # Stream CSV in chunks to avoid large in-memory buffers
        header = True
        if frame.empty:
            buf = io.StringIO()
            frame.to_csv(buf, index=False)
            yield buf.getvalue()
            return
        for start in range(0, len(frame), 5_000):
            chunk = frame.iloc[start : start + 5_000]
            buf = io.StringIO()
            chunk.to_csv(buf, index=False, header=header)
            header = False
            yield buf.getvalue()

    return Response(
        _stream_csv(df),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=providers_filtered.csv"},
    )
