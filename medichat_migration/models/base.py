"""
Base Model Classes and Column Types for the Relational Target Store

This module provides the Flask-SQLAlchemy instance shared by every target
model, the portable identifier and JSON column types, and the timestamp
mixin used by all migrated tables.

Key Components:
- db: Flask-SQLAlchemy instance bound by the application factory
- IdentifierType: 36-character UUID string, native UUID on PostgreSQL
- JSONType: portable JSON column, JSONB on PostgreSQL
- TimestampMixin: created_at / updated_at columns
- BaseModel: abstract model with serialization helpers

The table layout itself is owned by the application schema; these models
mirror it so rows can be written through the ORM metadata.
"""

import sqlite3
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import JSON, Column, DateTime, String, event
from sqlalchemy.engine import Engine
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import declared_attr
from sqlalchemy.inspection import inspect

# Global SQLAlchemy instance (initialized by the application factory)
db = SQLAlchemy()

# Identifiers are canonical hyphenated strings everywhere in the tool
IdentifierType = String(36).with_variant(UUID(as_uuid=False), 'postgresql')
JSONType = JSON().with_variant(JSONB(), 'postgresql')


@event.listens_for(Engine, 'connect')
def enforce_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite only enforces foreign keys when enabled on each connection."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the naive datetimes pymongo returns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_identifier() -> str:
    """Random identifier for rows whose source sub-document has no key."""
    return str(uuid.uuid4())


class TimestampMixin:
    """
    Mixin providing creation and modification timestamps.

    Migrated rows carry the source document's timestamps; the column
    defaults only apply when the source has none.
    """

    @declared_attr
    def created_at(cls):
        return Column(DateTime, default=utcnow, nullable=False)

    @declared_attr
    def updated_at(cls):
        return Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class BaseModel(db.Model):
    """
    Abstract base for all target models.

    Every table uses an identifier primary key; rows that originate from a
    keyed source document receive the remapped key explicitly.
    """

    __abstract__ = True

    id = Column(IdentifierType, primary_key=True, default=new_identifier)

    def to_dict(self, exclude_fields: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Convert the model instance to a JSON-compatible dictionary.

        Args:
            exclude_fields: Column names to leave out

        Returns:
            Dict[str, Any]: Column values keyed by column name
        """
        exclude_fields = exclude_fields or []
        result = {}
        for column in inspect(self.__class__).columns:
            if column.key in exclude_fields:
                continue
            value = getattr(self, column.key)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            result[column.key] = value
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id}>"
