from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app
from .errors import EntryLocked, InvalidHandoff, StaleHandoff
from .handoff import DetailResult, open_detail, apply_detail_result
from .posters import resolve_poster
from .tracker import Transition, get_tracker

web_bp = Blueprint("web", __name__)

FLASH_BY_TRANSITION = {
    Transition.ADVANCED: "Marked as WATCHED",
    Transition.WRAPPED: "Snap!",
    Transition.UNWATCHED: "Marked as UNWATCHED",
}

def _poster_url(image_key):
    path = resolve_poster(image_key, current_app.static_folder)
    return url_for("static", filename=path) if path else None

def entry_row(e):
    return {
        **e.to_dict(),
        "poster_url": _poster_url(e.image_key),
        "release_label": e.release_date.strftime("%B %d, %Y") if e.release_date else "",
    }

@web_bp.get("/")
def html_index():
    movies = [entry_row(e) for e in get_tracker().list_all()]
    return render_template("index.html", movies=movies)

@web_bp.get("/movies/<int:movie_id>")
def html_detail(movie_id):
    entry = get_tracker().get(movie_id)
    try:
        detail = open_detail(entry)
    except EntryLocked as e:
        flash(e.message, "error")
        return redirect(url_for("web.html_index"))
    return render_template(
        "detail.html",
        movie=detail,
        extras=detail.to_extras(),
        poster_url=_poster_url(detail.image_key),
    )

@web_bp.post("/movies/<int:movie_id>/watch-button")
def html_watch_button(movie_id):
    try:
        result = DetailResult.from_extras(request.form)
    except InvalidHandoff:
        # nothing to apply, same as a cancelled detail view
        return redirect(url_for("web.html_index"))
    if result.id != movie_id:
        return redirect(url_for("web.html_index"))

    future = apply_detail_result(get_tracker(), result)
    try:
        transition = future.result(timeout=current_app.config["TIMELINE_MUTATION_TIMEOUT"])
    except (EntryLocked, StaleHandoff) as e:
        flash(e.message, "error")
        return redirect(url_for("web.html_index"))
    flash(FLASH_BY_TRANSITION.get(transition, "Updated."), "success")
    return redirect(url_for("web.html_index"))
