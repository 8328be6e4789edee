"""
Pytest Configuration and Fixtures for Migration Engine Testing

Provides the Flask application fixture hosting Flask-SQLAlchemy on an SQLite
target, and helpers for building connectors against an in-memory source.

Key Features:
- Flask application fixture (pytest-flask) with TestingConfig and a fresh schema
- Fake MongoDB source (see tests.fakes) served through a mocked MongoClient
- SQLite file targets so a full run can be inspected after its stores close
"""

import pytest
import structlog

from medichat_migration.app import create_app
from medichat_migration.config import MigrationConfig, TestingConfig
from medichat_migration.migration import StoreConnector
from medichat_migration.models import db
from tests.fakes import FakeDatabase, make_client_factory


# =============================================================================
# PYTEST CONFIGURATION AND MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Unit tests for individual components and functions"
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration tests running complete migrations"
    )
    config.addinivalue_line(
        "markers",
        "database: Tests writing to a target database"
    )


def pytest_collection_modifyitems(config, items):
    """Apply markers based on test location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep structlog output out of captured test output."""
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        wrapper_class=structlog.make_filtering_bound_logger(50),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


# =============================================================================
# APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def migration_config(tmp_path) -> MigrationConfig:
    """Run settings targeting a throwaway SQLite file."""
    return MigrationConfig(
        mongodb_uri='mongodb://localhost:27017/medichat',
        mongodb_database='medichat',
        database_url=f"sqlite:///{tmp_path / 'target.db'}",
        connection_timeout=1,
        create_schema=True,
    )


@pytest.fixture
def app(migration_config):
    """
    Flask application with a fresh target schema.

    pytest-flask pushes a request context for every test using this fixture,
    so ``db.session`` is usable directly in the test body.
    """
    app = create_app(migration_config, TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def connector_factory():
    """Build StoreConnectors over a fake source and an SQLite target."""
    def build(config: MigrationConfig, database: FakeDatabase) -> StoreConnector:
        return StoreConnector(
            config,
            client_factory=make_client_factory(database),
            app_factory=lambda run_config: create_app(run_config, TestingConfig),
        )
    return build
