"""List view <-> detail view handoff.

The list view opens a detail view with a flat key/value bundle describing
one entry; the detail view's watch button answers with the entry id, the
watched flag it was opened with and its timeline position. The list side
uses that answer to pick the progression branch.
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional

from .errors import EntryLocked, InvalidHandoff
from .tracker import EntrySnapshot, EntryState

EXTRA_ID = "id"
EXTRA_TITLE = "title"
EXTRA_DESCRIPTION = "description"
EXTRA_IMAGE_KEY = "image_key"
EXTRA_RELEASE_DATE = "release_date"
EXTRA_TIMELINE_POSITION = "timeline_position"
EXTRA_RATING = "rating"
EXTRA_WATCHED = "watched"
EXTRA_RUNTIME_MINUTES = "runtime_minutes"

_TRUE = {"true", "1", "yes", "on"}


def _int_extra(extras: Mapping[str, Any], key: str) -> int:
    raw = extras.get(key)
    if raw in (None, "") or isinstance(raw, bool):
        raise InvalidHandoff(f"{key} is missing from the handoff bundle")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidHandoff(f"{key} must be an integer")

def _bool_extra(extras: Mapping[str, Any], key: str) -> bool:
    raw = extras.get(key, False)
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in _TRUE

def _optional(extras: Mapping[str, Any], key: str, convert):
    raw = extras.get(key)
    if raw in (None, ""):
        return None
    try:
        return convert(raw)
    except (TypeError, ValueError):
        raise InvalidHandoff(f"{key} has an invalid value: {raw!r}")


@dataclass(frozen=True)
class DetailRequest:
    id: int
    title: str
    description: Optional[str]
    image_key: Optional[str]
    release_date: Optional[date]
    timeline_position: int
    rating: Optional[float]
    watched: bool
    runtime_minutes: Optional[int]

    @classmethod
    def from_entry(cls, entry: EntrySnapshot) -> "DetailRequest":
        return cls(
            id=entry.id,
            title=entry.title,
            description=entry.description,
            image_key=entry.image_key,
            release_date=entry.release_date,
            timeline_position=entry.timeline_position,
            rating=entry.rating,
            watched=entry.watched,
            runtime_minutes=entry.runtime_minutes,
        )

    def to_extras(self) -> Dict[str, Any]:
        return {
            EXTRA_ID: self.id,
            EXTRA_TITLE: self.title,
            EXTRA_DESCRIPTION: self.description,
            EXTRA_IMAGE_KEY: self.image_key,
            EXTRA_RELEASE_DATE: self.release_date.isoformat() if self.release_date else None,
            EXTRA_TIMELINE_POSITION: self.timeline_position,
            EXTRA_RATING: self.rating,
            EXTRA_WATCHED: self.watched,
            EXTRA_RUNTIME_MINUTES: self.runtime_minutes,
        }

    @classmethod
    def from_extras(cls, extras: Mapping[str, Any]) -> "DetailRequest":
        return cls(
            id=_int_extra(extras, EXTRA_ID),
            title=extras.get(EXTRA_TITLE) or "",
            description=extras.get(EXTRA_DESCRIPTION),
            image_key=extras.get(EXTRA_IMAGE_KEY),
            release_date=_optional(extras, EXTRA_RELEASE_DATE, date.fromisoformat),
            timeline_position=_int_extra(extras, EXTRA_TIMELINE_POSITION),
            rating=_optional(extras, EXTRA_RATING, float),
            watched=_bool_extra(extras, EXTRA_WATCHED),
            runtime_minutes=_optional(extras, EXTRA_RUNTIME_MINUTES, int),
        )


@dataclass(frozen=True)
class DetailResult:
    id: int
    watched: bool
    timeline_position: int

    def to_extras(self) -> Dict[str, Any]:
        return {
            EXTRA_ID: self.id,
            EXTRA_WATCHED: self.watched,
            EXTRA_TIMELINE_POSITION: self.timeline_position,
        }

    @classmethod
    def from_extras(cls, extras: Mapping[str, Any]) -> "DetailResult":
        return cls(
            id=_int_extra(extras, EXTRA_ID),
            watched=_bool_extra(extras, EXTRA_WATCHED),
            timeline_position=_int_extra(extras, EXTRA_TIMELINE_POSITION),
        )


def open_detail(entry: EntrySnapshot) -> DetailRequest:
    # only the current entry and already watched ones can be opened
    if entry.state is EntryState.LOCKED:
        raise EntryLocked(entry.id)
    return DetailRequest.from_entry(entry)

def confirm_detail(request: DetailRequest) -> DetailResult:
    """What the detail view's watch button sends back."""
    return DetailResult(id=request.id, watched=request.watched, timeline_position=request.timeline_position)

def apply_detail_result(tracker, result: DetailResult):
    """Run the progression branch the detail view asked for.

    An entry opened unwatched gets watched (wrapping on the last position);
    an entry opened watched gets unwatched. The writer re-checks the entry
    against the result, so a locked entry or a stale view fails with
    EntryLocked or StaleHandoff instead of moving the pointer. Returns the
    tracker's Future.
    """
    if not result.watched:
        return tracker.mark_watched(result.id, opened=result)
    return tracker.mark_unwatched(result.id, opened=result)
