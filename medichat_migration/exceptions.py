"""
Exception hierarchy for the migration engine.

Two classes of failure exist:
- FatalConnectionError: a store could not be acquired; the run aborts before
  any phase executes and the process exits non-zero.
- RecordError and subclasses: one source record could not be transformed or
  inserted; the error is absorbed at the record boundary into the entity's
  error counter and the run continues.

A child record skipped because its parent failed is an outcome recorded in
the statistics, not an exception.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for log routing."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class MigrationError(Exception):
    """
    Base exception class for all migration errors.

    Carries a machine-readable error code, structured details and a
    correlation id so a failure can be traced through the structured logs.
    """

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.severity = severity
        self.correlation_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for logging."""
        return {
            'error_code': self.error_code,
            'message': self.message,
            'severity': self.severity.value,
            'correlation_id': self.correlation_id,
            'timestamp': self.timestamp.isoformat(),
            'details': self.details,
            'type': self.__class__.__name__,
        }


class FatalConnectionError(MigrationError):
    """Raised when the source or target store cannot be acquired."""

    def __init__(self, message: str, store: str, **kwargs):
        super().__init__(message, severity=ErrorSeverity.CRITICAL, **kwargs)
        self.store = store
        self.details['store'] = store


class RecordError(MigrationError):
    """Base for failures confined to a single source record."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        source_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.entity = entity
        self.source_id = source_id
        if entity:
            self.details['entity'] = entity
        if source_id:
            self.details['source_id'] = source_id


class RecordTransformError(RecordError):
    """A source record cannot be mapped onto the target shape."""

    def __init__(self, message: str, column: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.column = column
        if column:
            self.details['column'] = column


class InvalidIdentifierError(RecordTransformError, ValueError):
    """A value handed to the identifier remapper is not a source identifier."""

    def __init__(self, value: Any, **kwargs):
        super().__init__(
            f"Invalid source identifier {value!r}: expected 24 lower-case hexadecimal characters",
            **kwargs
        )
        self.value = value


class RecordInsertError(RecordError):
    """The target store rejected the insert of a transformed record."""

    def __init__(self, message: str, original_error: Optional[Exception] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.original_error = original_error
        if original_error is not None:
            self.details['original_error_type'] = type(original_error).__name__
