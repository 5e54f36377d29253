import os
from pathlib import Path

from flask import Flask, jsonify
from sqlalchemy import text

from models import db
from timeline_core.errors import install_json_error_handlers
from timeline_core.api import api_bp
from timeline_core.web import web_bp
from timeline_core.metrics import metrics_bp
from timeline_core.seed_data import seed_timeline
from timeline_core.tracker import TimelineTracker, EXTENSION_KEY


def _env_bool(name, default=False):
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def create_app(test_config=None):
    app = Flask(__name__, static_folder="static", template_folder="templates")

    # Load env config
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["API_TOKEN"] = os.getenv("API_TOKEN")
    app.config["TIMELINE_AUTO_SEED"] = _env_bool("TIMELINE_AUTO_SEED", True)
    app.config["TIMELINE_MUTATION_TIMEOUT"] = float(os.getenv("TIMELINE_MUTATION_TIMEOUT", 10))
    app.config["TIMELINE_POLL_MAX_WAIT"] = 30.0

    # Database configuration
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
        try:
            safe_dest = database_url.split("@", 1)[-1]
        except Exception:
            safe_dest = "<hidden>"
        print(f"[EndgameOdyssey] Using DATABASE_URL -> {safe_dest}")

    if test_config:
        app.config.update(test_config)

    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        instance_db = Path(app.instance_path) / "endgame_odyssey.db"
        instance_db.parent.mkdir(parents=True, exist_ok=True)
        print(f"[EndgameOdyssey] DB file -> {instance_db.resolve()}")
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{instance_db}"

    # Installing JSON error handlers & SQLAlchemy
    install_json_error_handlers(app)
    db.init_app(app)

    # Initializing database safely
    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            print(f"[Warning] Database initialization skipped due to error: {e}")

        if app.config["TIMELINE_AUTO_SEED"]:
            try:
                seed_timeline(db)
            except Exception as e:
                db.session.rollback()
                app.logger.warning("Timeline seeding failed: %s", e)
                print(f"[Warning] Timeline seeding failed, the timeline is empty: {e}")

    # One tracker per app; the database handle is passed in
    tracker = TimelineTracker(app, db)
    app.extensions[EXTENSION_KEY] = tracker
    try:
        tracker.refresh().result()
    except Exception as e:
        print(f"[Warning] Could not publish the initial timeline: {e}")

    # HEALTH CHECK ENDPOINT
    @app.route("/health")
    def health():
        """
        Basic health endpoint for monitoring.
        Returns 200 if DB is reachable, 500 otherwise.
        """
        db_ok = True
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            db_ok = False

        status_code = 200 if db_ok else 500

        return jsonify({"status": "ok" if db_ok else "error", "database": db_ok}), status_code

    # Register blueprints
    app.register_blueprint(metrics_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(web_bp)

    return app


# Development only
if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    create_app().run(host="0.0.0.0", port=port, debug=True)
