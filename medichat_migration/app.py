"""
Flask application factory hosting Flask-SQLAlchemy for the target store.

The migration tool serves no requests; the application exists to own the
engine, session and model metadata for the duration of one run.
"""

from typing import Type

from flask import Flask

from .config import Config, MigrationConfig
from .models import db


def create_app(migration_config: MigrationConfig, config_class: Type[Config] = Config) -> Flask:
    """
    Create a Flask application bound to the run's target database.

    Args:
        migration_config: Settings of the current run
        config_class: Flask configuration class to derive settings from

    Returns:
        Flask: Application with Flask-SQLAlchemy initialized
    """
    app = Flask('medichat_migration')
    app.config.from_mapping(config_class.from_migration_config(migration_config))
    db.init_app(app)
    return app
