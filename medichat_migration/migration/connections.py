"""
Connection Lifecycle Manager for the source and target stores.

``StoreConnector.acquire()`` opens the MongoDB source and the relational
target (through a Flask application hosting Flask-SQLAlchemy) and guarantees
both are released on every exit path. Failing to acquire either store is the
only fatal error of a run.
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator, NamedTuple, Optional, Tuple

from flask import Flask
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..app import create_app
from ..config import MigrationConfig
from ..exceptions import FatalConnectionError
from ..models import db
from ..utils.logging import get_logger

logger = get_logger('medichat_migration.connections')


class Stores(NamedTuple):
    """Handles to both stores for the duration of a run."""
    source: Database
    session: Session


class StoreConnector:
    """
    Scoped acquisition of the source and target stores.

    Args:
        config: Migration configuration with connection settings
        client_factory: Callable creating the MongoDB client
        app_factory: Callable creating the Flask application for the target
    """

    def __init__(
        self,
        config: MigrationConfig,
        client_factory: Callable[..., Any] = MongoClient,
        app_factory: Callable[[MigrationConfig], Flask] = create_app,
    ):
        self.config = config
        self.client_factory = client_factory
        self.app_factory = app_factory

    @contextmanager
    def acquire(self) -> Iterator[Stores]:
        """
        Open both stores, yield their handles, and release them afterwards.

        Raises:
            FatalConnectionError: If either store cannot be acquired
        """
        client = None
        app_context = None
        try:
            client, source = self._connect_source()
            app_context = self._connect_target()
            yield Stores(source=source, session=db.session)
        finally:
            self._release(client, app_context)

    def _connect_source(self) -> Tuple[Any, Database]:
        if not self.config.mongodb_uri:
            raise FatalConnectionError("MONGODB_URI is not configured", store='source')

        timeout_ms = self.config.connection_timeout * 1000
        client = None
        try:
            client = self.client_factory(
                self.config.mongodb_uri,
                serverSelectionTimeoutMS=timeout_ms,
                connectTimeoutMS=timeout_ms,
            )
            # Test connection
            client.admin.command('ping')

            if self.config.mongodb_database:
                database = client[self.config.mongodb_database]
            else:
                database = client.get_default_database()
        except (PyMongoError, ValueError) as error:
            if client is not None:
                client.close()
            logger.error("source_connection_failed", error=str(error))
            raise FatalConnectionError(f"Failed to connect to MongoDB: {error}", store='source') from error

        logger.info("source_connected", database=database.name)
        return client, database

    def _connect_target(self):
        if not self.config.database_url:
            raise FatalConnectionError("DATABASE_URL is not configured", store='target')

        try:
            app = self.app_factory(self.config)
        except (SQLAlchemyError, RuntimeError, ImportError) as error:
            logger.error("target_connection_failed", error=str(error))
            raise FatalConnectionError(f"Failed to configure target database: {error}", store='target') from error

        app_context = app.app_context()
        app_context.push()
        try:
            db.session.execute(text('SELECT 1'))
            if self.config.create_schema:
                db.create_all()
                logger.info("target_schema_ensured", tables=len(db.metadata.tables))
            db.session.commit()
        except SQLAlchemyError as error:
            self._close_target(app_context)
            logger.error("target_connection_failed", error=str(error))
            raise FatalConnectionError(f"Failed to connect to target database: {error}", store='target') from error

        logger.info("target_connected", dialect=db.engine.dialect.name)
        return app_context

    def _release(self, client: Optional[Any], app_context) -> None:
        if app_context is not None:
            self._close_target(app_context)
            logger.info("target_disconnected")
        if client is not None:
            client.close()
            logger.info("source_disconnected")

    @staticmethod
    def _close_target(app_context) -> None:
        try:
            db.session.remove()
            db.engine.dispose()
        except SQLAlchemyError as error:
            logger.warning("target_release_failed", error=str(error))
        finally:
            app_context.pop()
