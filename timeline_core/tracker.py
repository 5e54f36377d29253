"""Watch-state progression over the fixed movie timeline.

Marking an entry watched moves the current pointer to the next timeline
position. Watching the last position clears every watched flag and wraps
the pointer back to position 1. Unwatching an entry points at the entry
after it, not at the entry itself.

Every mutation runs on one worker thread, commits as a single transaction
and then publishes the new ordered snapshot on the tracker's channel.
"""
import enum
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, asdict
from datetime import date
from typing import List, Optional

from flask import current_app
from sqlalchemy import func, update

from models import MovieEntry, TimelineState, FIRST_POSITION
from .channel import SnapshotChannel
from .errors import EntryNotFound, EntryLocked, StaleHandoff
from .metrics import TRANSITION_COUNT, CURRENT_POSITION

logger = logging.getLogger(__name__)

EXTENSION_KEY = "timeline_tracker"
STATE_ROW_ID = 1


class Transition(str, enum.Enum):
    ADVANCED = "advanced"
    WRAPPED = "wrapped"
    UNWATCHED = "unwatched"
    RESET = "reset"


class EntryState(str, enum.Enum):
    LOCKED = "locked"
    CURRENT = "current"
    WATCHED = "watched"


@dataclass(frozen=True)
class EntrySnapshot:
    id: int
    title: str
    description: Optional[str]
    image_key: Optional[str]
    release_date: Optional[date]
    runtime_minutes: Optional[int]
    timeline_position: int
    rating: Optional[float]
    watched: bool
    current: bool

    @classmethod
    def from_row(cls, row: MovieEntry, current_position: Optional[int]) -> "EntrySnapshot":
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            image_key=row.image_key,
            release_date=row.release_date,
            runtime_minutes=row.runtime_minutes,
            timeline_position=row.timeline_position,
            rating=row.rating,
            watched=bool(row.watched),
            current=(row.timeline_position == current_position and not row.watched),
        )

    @property
    def state(self) -> EntryState:
        if self.current:
            return EntryState.CURRENT
        if self.watched:
            return EntryState.WATCHED
        return EntryState.LOCKED

    def to_dict(self):
        data = asdict(self)
        data["release_date"] = self.release_date.isoformat() if self.release_date else None
        data["state"] = self.state.value
        return data


class TimelineTracker:
    """Owns the timeline entries and the current pointer.

    ``db`` is the Flask-SQLAlchemy handle created at startup; ``app`` is used
    to push an application context on the writer thread and for reads made
    outside a request.
    """

    def __init__(self, app, db, channel: Optional[SnapshotChannel] = None):
        self._app = app
        self._db = db
        self.channel = channel or SnapshotChannel()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="timeline-writer")

    # ---- reads ----

    def list_all(self) -> List[EntrySnapshot]:
        with self._app.app_context():
            return self._snapshot()

    def get(self, entry_id: int) -> EntrySnapshot:
        with self._app.app_context():
            row = self._get_row(entry_id)
            return EntrySnapshot.from_row(row, self._current_position())

    def current_position(self) -> Optional[int]:
        with self._app.app_context():
            return self._current_position()

    # ---- mutations ----

    def mark_watched(self, entry_id: int, opened=None) -> "Future[Transition]":
        """``opened`` is what a detail view saw (``watched``, ``timeline_position``);
        when given, the entry must still match it and must not be locked.
        """
        return self._submit(self._watch, entry_id, opened)

    def mark_unwatched(self, entry_id: int, opened=None) -> "Future[Transition]":
        return self._submit(self._unwatch, entry_id, opened)

    def reset_all(self, rewind: bool = False) -> "Future[Transition]":
        return self._submit(self._reset, rewind)

    def refresh(self) -> "Future[None]":
        """Publish the stored state without changing it (startup, reseed)."""
        return self._submit(lambda: None)

    def close(self):
        self._executor.shutdown(wait=True)

    # ---- writer thread ----

    def _submit(self, operation, *args) -> Future:
        def job():
            with self._app.app_context():
                session = self._db.session
                try:
                    outcome = operation(*args)
                    session.commit()
                except Exception:
                    session.rollback()
                    raise
                snapshot = self._snapshot()
                position = self._current_position()
            if outcome is not None:
                TRANSITION_COUNT.labels(outcome.value).inc()
                logger.info("Timeline %s; current position is now %s", outcome.value, position)
            CURRENT_POSITION.set(position or 0)
            self.channel.publish(snapshot)
            return outcome
        return self._executor.submit(job)

    def _watch(self, entry_id, opened) -> Transition:
        entry = self._get_row(entry_id)
        self._check_opened(entry, opened)
        entry.watched = True
        if entry.timeline_position < self._last_position():
            self._point_at(entry.timeline_position + 1)
            return Transition.ADVANCED
        self._clear_watched()
        self._point_at(FIRST_POSITION)
        return Transition.WRAPPED

    def _unwatch(self, entry_id, opened) -> Transition:
        entry = self._get_row(entry_id)
        self._check_opened(entry, opened)
        entry.watched = False
        position = entry.timeline_position
        # nothing ahead of the last entry
        if position < self._last_position():
            position += 1
        self._point_at(position)
        return Transition.UNWATCHED

    def _reset(self, rewind) -> Transition:
        self._clear_watched()
        if rewind:
            self._point_at(FIRST_POSITION)
        return Transition.RESET

    # ---- helpers (caller holds an app context) ----

    def _snapshot(self) -> List[EntrySnapshot]:
        current = self._current_position()
        rows = MovieEntry.query.order_by(MovieEntry.timeline_position.asc()).all()
        return [EntrySnapshot.from_row(r, current) for r in rows]

    def _get_row(self, entry_id) -> MovieEntry:
        row = self._db.session.get(MovieEntry, entry_id)
        if row is None:
            raise EntryNotFound(entry_id)
        return row

    def _check_opened(self, entry: MovieEntry, opened):
        if opened is None:
            return
        if not entry.watched and entry.timeline_position != self._current_position():
            raise EntryLocked(entry.id)
        if bool(entry.watched) != opened.watched or entry.timeline_position != opened.timeline_position:
            raise StaleHandoff(entry.id)

    def _last_position(self) -> int:
        return self._db.session.query(func.max(MovieEntry.timeline_position)).scalar() or 0

    def _current_position(self) -> Optional[int]:
        if not self._last_position():
            return None
        state = self._db.session.get(TimelineState, STATE_ROW_ID)
        return state.current_position if state else FIRST_POSITION

    def _point_at(self, position: int):
        state = self._db.session.get(TimelineState, STATE_ROW_ID)
        if state is None:
            state = TimelineState(id=STATE_ROW_ID)
            self._db.session.add(state)
        state.current_position = position
        # the entry under the pointer is never watched
        target = MovieEntry.query.filter_by(timeline_position=position).first()
        if target is not None:
            target.watched = False

    def _clear_watched(self):
        session = self._db.session
        session.flush()
        session.execute(
            update(MovieEntry).values(watched=False),
            execution_options={"synchronize_session": "evaluate"},
        )


def get_tracker() -> TimelineTracker:
    return current_app.extensions[EXTENSION_KEY]
