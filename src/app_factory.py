import os
from flask import Flask

from extensions import db, migrate, serialize_sqlite_writers
from config import DevConfig, ProdConfig
from logging_setup import setup_logger


def create_app(config_object=None) -> Flask:
    """Initialize Flask app with DB + configuration."""
    app = Flask(__name__)

    if config_object is not None:
        app.config.from_object(config_object)
    elif os.getenv("FLASK_ENV") == "production":
        app.config.from_object(ProdConfig)
    else:
        app.config.from_object(DevConfig)

    if not app.config.get("TESTING"):
        setup_logger(app.config["LOG_DIR"], app.config["LOG_FILE"], app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so SQLAlchemy registers tables.
    with app.app_context():
        serialize_sqlite_writers(db.engine)

        from src.models import Patient, Doctor, Service, Appointment, AppointmentSettings  # noqa: F401
        # Ensure tables exist (useful for SQLite/dev). For production, prefer migrations.
        db.create_all()

        # Register HTTP blueprints
        from src.routes.appointments import appointments_bp
        from src.routes.dashboard import dashboard_bp
        from src.routes.directory import directory_bp
        from src.routes.settings import settings_bp
        from src.routes.errors import register_error_handlers

        app.register_blueprint(appointments_bp)
        app.register_blueprint(directory_bp)
        app.register_blueprint(settings_bp)
        app.register_blueprint(dashboard_bp)
        register_error_handlers(app)

    return app
