from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

FIRST_POSITION = 1


class MovieEntry(db.Model): #one film in the timeline
    __tablename__ = "movie_entry"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image_key = db.Column(db.String(64), nullable=True)     # poster file name without extension
    release_date = db.Column(db.Date, nullable=True)
    runtime_minutes = db.Column(db.Integer, nullable=True)
    timeline_position = db.Column(db.Integer, nullable=False, unique=True, index=True)  # 1-based, dense
    rating = db.Column(db.Float, nullable=True)
    watched = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<MovieEntry {self.timeline_position} {self.title!r}>"


class TimelineState(db.Model):
    """Single row holding the current pointer."""
    __tablename__ = "timeline_state"
    id = db.Column(db.Integer, primary_key=True)
    current_position = db.Column(db.Integer, nullable=False, default=FIRST_POSITION)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<TimelineState current={self.current_position}>"
