import threading

import pytest

from models import db, MovieEntry
from timeline_core.errors import EntryNotFound
from timeline_core.tracker import Transition, EntryState


def ids_by_position(tracker):
    return {e.timeline_position: e.id for e in tracker.list_all()}

def watched_positions(tracker):
    return {e.timeline_position for e in tracker.list_all() if e.watched}

def current_positions(tracker):
    return [e.timeline_position for e in tracker.list_all() if e.current]

def watch(tracker, pos):
    return tracker.mark_watched(ids_by_position(tracker)[pos]).result(timeout=5)

def unwatch(tracker, pos):
    return tracker.mark_unwatched(ids_by_position(tracker)[pos]).result(timeout=5)


def test_initial_state(tracker):
    entries = tracker.list_all()
    assert [e.timeline_position for e in entries] == [1, 2, 3]
    assert current_positions(tracker) == [1]
    assert watched_positions(tracker) == set()
    assert [e.state for e in entries] == [EntryState.CURRENT, EntryState.LOCKED, EntryState.LOCKED]
    assert tracker.current_position() == 1

def test_full_cycle_wraps_back_to_first(tracker):
    assert watch(tracker, 1) is Transition.ADVANCED
    assert current_positions(tracker) == [2]
    assert watched_positions(tracker) == {1}

    assert watch(tracker, 2) is Transition.ADVANCED
    assert current_positions(tracker) == [3]
    assert watched_positions(tracker) == {1, 2}

    # last position: everything resets
    assert watch(tracker, 3) is Transition.WRAPPED
    assert current_positions(tracker) == [1]
    assert watched_positions(tracker) == set()

def test_unwatch_points_forward_not_back(tracker):
    watch(tracker, 1); watch(tracker, 2)
    assert unwatch(tracker, 1) is Transition.UNWATCHED

    states = {e.timeline_position: e.state for e in tracker.list_all()}
    assert states[1] is EntryState.LOCKED
    assert states[2] is EntryState.CURRENT
    assert states[3] is EntryState.LOCKED
    assert tracker.current_position() == 2

def test_watch_leaves_other_flags_alone(tracker):
    watch(tracker, 1)
    watch(tracker, 2)
    # 1 stays watched while 2 is watched
    assert watched_positions(tracker) == {1, 2}

def test_unwatch_last_position_keeps_pointer_on_it(small_app, tracker):
    ids = ids_by_position(tracker)
    with small_app.app_context():
        db.session.get(MovieEntry, ids[3]).watched = True
        db.session.commit()
    unwatch(tracker, 3)
    assert current_positions(tracker) == [3]
    assert 3 not in watched_positions(tracker)

def test_reset_all_clears_flags(tracker):
    watch(tracker, 1); watch(tracker, 2)
    assert tracker.reset_all().result(timeout=5) is Transition.RESET
    assert watched_positions(tracker) == set()
    assert tracker.current_position() == 3

    tracker.reset_all(rewind=True).result(timeout=5)
    assert current_positions(tracker) == [1]

def test_wrap_matches_reset_with_rewind(tracker):
    watch(tracker, 1); watch(tracker, 2); watch(tracker, 3)
    after_wrap = [(e.timeline_position, e.watched, e.current) for e in tracker.list_all()]
    tracker.reset_all(rewind=True).result(timeout=5)
    after_reset = [(e.timeline_position, e.watched, e.current) for e in tracker.list_all()]
    assert after_wrap == after_reset

def test_unknown_id_fails_loudly(tracker):
    with pytest.raises(EntryNotFound):
        tracker.mark_watched(999).result(timeout=5)
    with pytest.raises(EntryNotFound):
        tracker.mark_unwatched(999).result(timeout=5)
    with pytest.raises(EntryNotFound):
        tracker.get(999)
    # nothing changed
    assert current_positions(tracker) == [1]

def test_at_most_one_current_over_many_steps(tracker):
    for step in range(20):
        current = tracker.current_position()
        if step % 4 == 3 and watched_positions(tracker):
            unwatch(tracker, min(watched_positions(tracker)))
        else:
            watch(tracker, current)
        assert len(current_positions(tracker)) <= 1
        positions = [e.timeline_position for e in tracker.list_all()]
        assert positions == sorted(positions)

def test_mutations_are_serialized(tracker):
    ids = ids_by_position(tracker)
    # queued back to back without waiting
    first = tracker.mark_watched(ids[1])
    second = tracker.mark_watched(ids[2])
    assert first.result(timeout=5) is Transition.ADVANCED
    assert second.result(timeout=5) is Transition.ADVANCED
    assert current_positions(tracker) == [3]
    assert watched_positions(tracker) == {1, 2}

def test_concurrent_submitters_do_not_interleave(tracker):
    ids = ids_by_position(tracker)
    futures = []
    lock = threading.Lock()

    def submit():
        f = tracker.reset_all(rewind=True)
        with lock:
            futures.append(f)

    threads = [threading.Thread(target=submit) for _ in range(5)]
    threads.append(threading.Thread(target=lambda: futures.append(tracker.mark_watched(ids[1]))))
    for t in threads: t.start()
    for t in threads: t.join()
    for f in futures:
        f.result(timeout=5)
    assert len(current_positions(tracker)) == 1

def test_subscribers_get_snapshot_after_commit(tracker):
    seen = []
    unsubscribe = tracker.channel.subscribe(seen.append)
    # the latest snapshot is delivered on subscribe
    assert [e.timeline_position for e in seen[-1] if e.current] == [1]

    watch(tracker, 1)
    assert [e.timeline_position for e in seen[-1] if e.current] == [2]

    unsubscribe()
    watch(tracker, 2)
    assert [e.timeline_position for e in seen[-1] if e.current] == [2]

def test_failed_mutation_does_not_publish(tracker):
    version, _ = tracker.channel.latest()
    with pytest.raises(EntryNotFound):
        tracker.mark_watched(12345).result(timeout=5)
    assert tracker.channel.latest()[0] == version

def test_empty_store(empty_app):
    from timeline_core.tracker import EXTENSION_KEY
    tracker = empty_app.extensions[EXTENSION_KEY]
    assert tracker.list_all() == []
    assert tracker.current_position() is None

def test_snapshot_to_dict(tracker):
    row = tracker.list_all()[0].to_dict()
    assert row["release_date"] == "2011-01-01"
    assert row["state"] == "current"
    assert row["runtime_minutes"] == 101

def test_pointer_target_is_cleared_when_it_was_watched(four_app):
    from timeline_core.tracker import EXTENSION_KEY
    tracker = four_app.extensions[EXTENSION_KEY]
    watch(tracker, 1); watch(tracker, 2); watch(tracker, 3)
    assert watched_positions(tracker) == {1, 2, 3}

    unwatch(tracker, 1)
    # 2 becomes current, so it is no longer watched
    assert current_positions(tracker) == [2]
    assert watched_positions(tracker) == {3}

    watch(tracker, 2)
    states = {e.timeline_position: e for e in tracker.list_all()}
    assert states[3].current and not states[3].watched
    assert watched_positions(tracker) == {2}

def test_opened_view_is_checked_on_the_writer(tracker):
    from types import SimpleNamespace
    from timeline_core.errors import EntryLocked, StaleHandoff
    ids = ids_by_position(tracker)
    with pytest.raises(EntryLocked):
        tracker.mark_watched(ids[2], opened=SimpleNamespace(watched=False, timeline_position=2)).result(timeout=5)
    watch(tracker, 1)
    with pytest.raises(StaleHandoff):
        tracker.mark_watched(ids[1], opened=SimpleNamespace(watched=False, timeline_position=1)).result(timeout=5)
    assert current_positions(tracker) == [2]
    assert watched_positions(tracker) == {1}
