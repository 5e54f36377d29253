import os, sys
from datetime import date

import pytest

# allow importing the app modules from the repo root
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from models import db, MovieEntry, TimelineState
from timeline_core.tracker import EXTENSION_KEY


def _build_app(tmp_path, name, **overrides):
    config = {
        "TESTING": True,
        "SECRET_KEY": "test",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path/name}",
        "API_TOKEN": None,  # auth disabled unless a test turns it on
        "TIMELINE_AUTO_SEED": True,
    }
    config.update(overrides)
    return create_app(config)


def _teardown(app):
    app.extensions[EXTENSION_KEY].close()
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def seed_small_timeline(app, n=3):
    # inserted out of order on purpose; reads must sort by position
    positions = list(range(n, 0, -1))
    with app.app_context():
        for pos in positions:
            db.session.add(MovieEntry(
                title=f"Movie {pos}",
                description=f"Part {pos}",
                image_key=f"movie{pos}",
                release_date=date(2010 + pos, 1, 1),
                runtime_minutes=100 + pos,
                timeline_position=pos,
                rating=7.0,
            ))
        db.session.add(TimelineState(id=1, current_position=1))
        db.session.commit()
    app.extensions[EXTENSION_KEY].refresh().result()


@pytest.fixture()
def seeded_app(tmp_path):
    # full 23-movie timeline from the seed data
    app = _build_app(tmp_path, "seeded.db")
    yield app
    _teardown(app)


@pytest.fixture()
def small_app(tmp_path):
    # three-movie timeline
    app = _build_app(tmp_path, "small.db", TIMELINE_AUTO_SEED=False)
    seed_small_timeline(app)
    yield app
    _teardown(app)


@pytest.fixture()
def empty_app(tmp_path):
    app = _build_app(tmp_path, "empty.db", TIMELINE_AUTO_SEED=False)
    yield app
    _teardown(app)


@pytest.fixture()
def authed_app(tmp_path):
    app = _build_app(tmp_path, "authed.db", API_TOKEN="dev-secret-token")
    yield app
    _teardown(app)


@pytest.fixture()
def tracker(small_app):
    return small_app.extensions[EXTENSION_KEY]


@pytest.fixture()
def client(small_app):
    return small_app.test_client()


@pytest.fixture()
def four_app(tmp_path):
    app = _build_app(tmp_path, "four.db", TIMELINE_AUTO_SEED=False)
    seed_small_timeline(app, n=4)
    yield app
    _teardown(app)
