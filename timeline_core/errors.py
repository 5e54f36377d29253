from flask import request, current_app
from werkzeug.exceptions import HTTPException, BadRequest, UnsupportedMediaType, Unauthorized, Forbidden
from typing import Any, Dict
from functools import wraps

# -----------------------------
# Timeline errors
# -----------------------------

class TimelineError(Exception):
    status = 500
    code = "TIMELINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class EntryNotFound(TimelineError, LookupError):
    status = 404
    code = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id):
        super().__init__(f"movie entry {entry_id} does not exist")
        self.entry_id = entry_id


class EntryLocked(TimelineError):
    status = 409
    code = "ENTRY_LOCKED"

    def __init__(self, entry_id):
        super().__init__("You haven't unlocked that movie yet.")
        self.entry_id = entry_id


class StaleHandoff(TimelineError):
    status = 409
    code = "STALE_HANDOFF"

    def __init__(self, entry_id):
        super().__init__("That movie changed since it was opened. Nothing was updated.")
        self.entry_id = entry_id


class InvalidHandoff(TimelineError, ValueError):
    status = 400
    code = "INVALID_HANDOFF"


# -----------------------------
# JSON error handlers
# -----------------------------

def _error_body(status: int, code: str, message: str):
    return {
        "error": {
            "status": status,
            "code": code,
            "message": message
        }
    }, status

def install_json_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return _error_body(e.code, e.name.replace(" ", "_").upper(), e.description)

    @app.errorhandler(TimelineError)
    def handle_timeline(e: TimelineError):
        return _error_body(e.status, e.code, e.message)

    @app.errorhandler(Exception)
    def handle_generic(e: Exception):
        # Avoid leaking details in production responses
        current_app.logger.exception("Unhandled error on %s", request.path)
        return _error_body(500, "INTERNAL_SERVER_ERROR", "Internal Server Error")


# -----------------------------
# Validators & helpers
# -----------------------------

def expect_json():
    if request.method in {"POST", "PUT", "PATCH"}:
        ctype = request.headers.get("Content-Type", "")
        if "application/json" not in ctype:
            raise UnsupportedMediaType("Use Content-Type: application/json")

def read_json() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        raise BadRequest("Invalid or missing JSON body")
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data

def parse_bool(v: Any, field: str = "watched") -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s in {"true", "1", "yes", "on"}: return True
        if s in {"false", "0", "no", "off", ""}: return False
    raise BadRequest(f"{field} must be boolean")

def parse_position(v: Any) -> int:
    if isinstance(v, bool):
        raise BadRequest("timeline_position must be a positive integer")
    try:
        p = int(v)
    except Exception:
        raise BadRequest("timeline_position must be a positive integer")
    if p < 1:
        raise BadRequest("timeline_position must be a positive integer")
    return p

def parse_wait(v: Any, max_wait: float) -> float:
    if v in (None, ""):
        return 0.0
    try:
        w = float(v)
    except Exception:
        raise BadRequest("wait must be a number of seconds")
    return max(0.0, min(w, max_wait))


# -----------------------------
# Auth decorator
# -----------------------------

def require_auth(fn):
    """
    If API_TOKEN is configured on the app, require a Bearer token on mutating requests.
    When API_TOKEN is not set, auth is effectively disabled (everything allowed).
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = current_app.config.get("API_TOKEN")
        if not token:
            return fn(*args, **kwargs)

        hdr = request.headers.get("Authorization", "")
        parts = hdr.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise Unauthorized("Missing or invalid Authorization header")
        if parts[1] != token:
            raise Forbidden("Invalid token")
        return fn(*args, **kwargs)
    return wrapper
