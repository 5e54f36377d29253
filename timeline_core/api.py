from flask import Blueprint, request, current_app
from werkzeug.exceptions import BadRequest
from .errors import (
    expect_json, read_json, parse_bool, parse_position, parse_wait, require_auth
)
from .handoff import DetailResult, open_detail, confirm_detail, apply_detail_result
from .tracker import get_tracker

api_bp = Blueprint("api", __name__, url_prefix="/api")  # blueprint for API routes

def _await(future):
    return future.result(timeout=current_app.config["TIMELINE_MUTATION_TIMEOUT"])

def _mutation_response(entry_id, transition):
    tracker = get_tracker()
    entry = tracker.get(entry_id)
    return {
        "id": entry.id,
        "watched": entry.watched,
        "timeline_position": entry.timeline_position,
        "transition": transition.value,
        "current_position": tracker.current_position(),
    }

def _snapshot_body(version, snapshot):
    items = [e.to_dict() for e in (snapshot or [])]
    current = next((e["timeline_position"] for e in items if e["current"]), None)
    return {"version": version, "current_position": current, "items": items}

@api_bp.get("/health")
def health():
    return {"ok": True}

@api_bp.get("/movies")
def list_movies():
    tracker = get_tracker()
    items = tracker.list_all()
    return {
        "total": len(items),
        "current_position": tracker.current_position(),
        "items": [e.to_dict() for e in items],
    }

@api_bp.get("/movies/<int:movie_id>")
def get_movie(movie_id):
    return get_tracker().get(movie_id).to_dict()

@api_bp.get("/movies/<int:movie_id>/detail")
def get_movie_detail(movie_id):
    # EntryLocked -> 409 through the JSON error handlers
    return open_detail(get_tracker().get(movie_id)).to_extras()

@api_bp.post("/movies/<int:movie_id>/watch")
@require_auth
def watch_movie(movie_id):
    transition = _await(get_tracker().mark_watched(movie_id))
    return _mutation_response(movie_id, transition)

@api_bp.post("/movies/<int:movie_id>/unwatch")
@require_auth
def unwatch_movie(movie_id):
    transition = _await(get_tracker().mark_unwatched(movie_id))
    return _mutation_response(movie_id, transition)

@api_bp.post("/movies/<int:movie_id>/toggle-watched")
@require_auth
def toggle_watched(movie_id):
    tracker = get_tracker()
    # same path as the detail view: locked entries are refused
    result = confirm_detail(open_detail(tracker.get(movie_id)))
    transition = _await(apply_detail_result(tracker, result))
    return _mutation_response(movie_id, transition)

@api_bp.post("/movies/<int:movie_id>/detail-result")
@require_auth
def submit_detail_result(movie_id):
    expect_json()
    data = read_json()
    result = DetailResult(
        id=movie_id,
        watched=parse_bool(data.get("watched", False)),
        timeline_position=parse_position(data.get("timeline_position")),
    )
    transition = _await(apply_detail_result(get_tracker(), result))
    return _mutation_response(movie_id, transition)

@api_bp.post("/timeline/reset")
@require_auth
def reset_timeline():
    tracker = get_tracker()
    transition = _await(tracker.reset_all(rewind=True))
    return {"transition": transition.value, "current_position": tracker.current_position()}

@api_bp.get("/timeline")
def timeline_snapshot():
    """
    Latest published snapshot with its version.
    With ?since=<version> the call waits (up to ?wait= seconds) for a newer one.
    """
    channel = get_tracker().channel
    since = request.args.get("since")
    if since in (None, ""):
        return _snapshot_body(*channel.latest())
    try:
        after = int(since)
    except ValueError:
        raise BadRequest("since must be an integer version")
    wait = parse_wait(request.args.get("wait"), current_app.config["TIMELINE_POLL_MAX_WAIT"])
    version, snapshot = channel.wait_for(after, wait)
    body = _snapshot_body(version, snapshot)
    body["changed"] = version > after
    return body
