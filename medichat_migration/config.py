"""
Migration Configuration Management

This module loads the migration run's settings from the environment (with
python-dotenv support for .env files) and translates them into the Flask
configuration used to host Flask-SQLAlchemy against the target store.

Environment Variables:
    MONGODB_URI: Source store connection string (required)
    MONGODB_DATABASE: Source database name (default: database in the URI)
    DATABASE_URL: Target store SQLAlchemy URL (required)
    MIGRATION_AUDIT_LOG_LIMIT: Maximum activity log records migrated (default: 10000)
    MIGRATION_CONNECTION_TIMEOUT: Store connection timeout in seconds (default: 30)
    MIGRATION_VERIFY_INTEGRITY: Run the orphan check after migrating (default: true)
    MIGRATION_CREATE_SCHEMA: Create missing target tables before migrating (default: false)
    LOG_LEVEL: Logging level (default: INFO)
    LOG_FORMAT: 'json' or 'console' (default: json)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

DEFAULT_AUDIT_LOG_LIMIT = 10000


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == 'true'


def load_environment_variables() -> None:
    """
    Load environment variables from .env files.

    Search order (existing process variables always win):
        1. .env
        2. .env.local
    """
    for env_file in ('.env', '.env.local'):
        if Path(env_file).exists():
            load_dotenv(env_file, override=False)


@dataclass
class MigrationConfig:
    """
    Configuration parameters for one migration run.

    Provides centralized configuration for store connections, the audit-log
    ceiling and the logging setup.
    """
    # Store connection settings
    mongodb_uri: str = field(default="")
    mongodb_database: str = field(default="")
    database_url: str = field(default="")
    connection_timeout: int = field(default=30)

    # Audit-log phase ceiling
    audit_log_limit: int = field(default=DEFAULT_AUDIT_LOG_LIMIT)

    # Post-migration behaviour
    verify_integrity: bool = field(default=True)
    create_schema: bool = field(default=False)

    # Logging
    log_level: str = field(default="INFO")
    log_format: str = field(default="json")

    def __post_init__(self):
        if self.audit_log_limit < 0:
            raise ValueError("audit_log_limit must not be negative")

    @classmethod
    def from_environment(cls) -> 'MigrationConfig':
        """
        Create configuration from environment variables.

        Returns:
            MigrationConfig: Configuration instance with environment values
        """
        load_environment_variables()
        return cls(
            mongodb_uri=os.environ.get('MONGODB_URI', ''),
            mongodb_database=os.environ.get('MONGODB_DATABASE', ''),
            database_url=os.environ.get('DATABASE_URL', ''),
            connection_timeout=int(os.environ.get('MIGRATION_CONNECTION_TIMEOUT', 30)),
            audit_log_limit=int(os.environ.get('MIGRATION_AUDIT_LOG_LIMIT', DEFAULT_AUDIT_LOG_LIMIT)),
            verify_integrity=_env_bool('MIGRATION_VERIFY_INTEGRITY', 'true'),
            create_schema=_env_bool('MIGRATION_CREATE_SCHEMA', 'false'),
            log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
            log_format=os.environ.get('LOG_FORMAT', 'json').lower(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Loggable view of the configuration with credentials masked."""
        return {
            'mongodb_uri': _mask_credentials(self.mongodb_uri),
            'mongodb_database': self.mongodb_database or None,
            'database_url': _mask_credentials(self.database_url),
            'connection_timeout': self.connection_timeout,
            'audit_log_limit': self.audit_log_limit,
            'verify_integrity': self.verify_integrity,
            'create_schema': self.create_schema,
        }


def _mask_credentials(url: str) -> Optional[str]:
    if not url:
        return None
    scheme, sep, rest = url.partition('://')
    if not sep or '@' not in rest:
        return url
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"


class Config:
    """
    Base Flask configuration hosting Flask-SQLAlchemy for the target store.

    Built per run from a MigrationConfig via ``from_migration_config``.
    """

    SQLALCHEMY_DATABASE_URI: Optional[str] = None
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_RECORD_QUERIES = False
    SQLALCHEMY_ENGINE_OPTIONS: Dict[str, Any] = {
        'pool_pre_ping': True,
    }
    TESTING = False

    @classmethod
    def from_migration_config(cls, migration_config: MigrationConfig) -> Dict[str, Any]:
        """
        Build the Flask configuration mapping for a migration run.

        Args:
            migration_config: Settings of the current run

        Returns:
            Dict[str, Any]: Values suitable for ``app.config.from_mapping``
        """
        engine_options = dict(cls.SQLALCHEMY_ENGINE_OPTIONS)
        if migration_config.database_url.startswith('postgresql'):
            engine_options['connect_args'] = {
                'connect_timeout': migration_config.connection_timeout,
                'application_name': 'medichat_migration',
            }
        return {
            'SQLALCHEMY_DATABASE_URI': migration_config.database_url,
            'SQLALCHEMY_TRACK_MODIFICATIONS': cls.SQLALCHEMY_TRACK_MODIFICATIONS,
            'SQLALCHEMY_RECORD_QUERIES': cls.SQLALCHEMY_RECORD_QUERIES,
            'SQLALCHEMY_ENGINE_OPTIONS': engine_options,
            'TESTING': cls.TESTING,
        }


class TestingConfig(Config):
    """Configuration for automated tests against an SQLite target."""

    TESTING = True
    SQLALCHEMY_ENGINE_OPTIONS: Dict[str, Any] = {}
