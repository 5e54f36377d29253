#reset the local db to a freshly seeded timeline
from app import create_app
from models import db, MovieEntry, TimelineState
from timeline_core.seed_data import seed_timeline
from timeline_core.tracker import EXTENSION_KEY

app = create_app({"TIMELINE_AUTO_SEED": False})

with app.app_context():
    db.drop_all(); db.create_all()
    seed_timeline(db)
    print("Seeded:", MovieEntry.query.count(), "current:", db.session.get(TimelineState, 1).current_position)

app.extensions[EXTENSION_KEY].close()
