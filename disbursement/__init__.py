from flask import Flask
from flask_sqlalchemy import SQLAlchemy

from disbursement.config import Config

db = SQLAlchemy()


def create_app(config_object=None, **overrides):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)

    # Pool threads share one SQLite file; wait on its write lock instead of failing.
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        engine_options = app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", {})
        engine_options.setdefault("connect_args", {"check_same_thread": False, "timeout": 30})

    app.logger.setLevel(app.config["LOG_LEVEL"])

    db.init_app(app)

    from disbursement import models  # noqa: F401
    from disbursement.commands import register_commands
    from disbursement.routes import disbursement_bp

    app.register_blueprint(disbursement_bp)
    register_commands(app)

    with app.app_context():
        db.create_all()

    return app
