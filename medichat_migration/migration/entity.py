"""
Entity Migrator: transform and insert one source record of one entity type.

Every entity type (accounts, their medical records, conversations, their
nested records, activity logs) is described as an EntitySpec: a target
model, a field-mapping table and the child specs nested under it. A single
EntityMigrator code path drives all of them.

Per record the migrator:
    1. maps source fields onto target columns, filling defaults and remapping
       every identifier-valued field,
    2. inserts and commits exactly one row,
    3. on success, migrates the nested children with this record as parent,
    4. on failure, rolls back, counts one error and records every nested
       child as an orphan skip without attempting it.

Nothing raised while handling a record escapes ``migrate``.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import RecordError, RecordInsertError, RecordTransformError
from ..identifiers import remap
from ..utils.logging import get_logger
from .statistics import MigrationStatistics, Outcome

logger = get_logger('medichat_migration.entity')


def is_absent(value: Any) -> bool:
    """Missing, None and empty strings all count as absent source values."""
    return value is None or (isinstance(value, str) and value == '')


def resolve_path(document: Any, path: str) -> Any:
    """
    Resolve a dotted path inside a nested document.

    Numeric segments index into lists, so ``emergencyContacts.0.phone``
    reads the first contact's phone. Any missing step yields None.
    """
    value = document
    for segment in path.split('.'):
        if isinstance(value, Mapping):
            value = value.get(segment)
        elif isinstance(value, (list, tuple)) and segment.isdigit():
            index = int(segment)
            value = value[index] if index < len(value) else None
        else:
            return None
        if value is None:
            return None
    return value


@dataclass
class RecordContext:
    """A source record in flight, linked to the record it is nested under."""
    document: Any
    parent: Optional['RecordContext'] = None
    target_id: Optional[str] = None

    def get(self, path: str) -> Any:
        return resolve_path(self.document, path)

    @property
    def source_id(self) -> Optional[str]:
        if isinstance(self.document, Mapping) and self.document.get('_id') is not None:
            return str(self.document['_id'])
        return None

    @property
    def parent_id(self) -> Optional[str]:
        return self.parent.target_id if self.parent else None


SourceGetter = Union[str, Callable[[RecordContext], Any], None]


class FieldMapping(NamedTuple):
    """
    How one target column is filled.

    Attributes:
        column: Target column name
        source: Dotted path in the record, a callable over the record context,
            or None when the column never has a source value
        default: Value (or zero-argument callable) used when the source is absent
        required: Reject the record when no value and no default exist
        remap: Pass a present source value through the identifier remapper
    """
    column: str
    source: SourceGetter = None
    default: Any = None
    required: bool = False
    remap: bool = False

    def resolve(self, context: RecordContext) -> Any:
        if self.source is None:
            return None
        if callable(self.source):
            return self.source(context)
        return context.get(self.source)

    def default_value(self) -> Any:
        return self.default() if callable(self.default) else self.default


def always(context: RecordContext) -> bool:
    return True


@dataclass(frozen=True)
class ChildSpec:
    """
    A nested entity type migrated beneath a parent record.

    Attributes:
        spec: The nested entity's own spec
        extract: Returns the child source records of a parent context
        applies: Whether the parent carries this kind of child at all
    """
    spec: 'EntitySpec'
    extract: Callable[[RecordContext], Any]
    applies: Callable[[RecordContext], bool] = always

    def items(self, parent: RecordContext) -> List[Any]:
        if not self.applies(parent):
            return []
        value = self.extract(parent)
        if isinstance(value, (list, tuple)):
            return list(value)
        if not is_absent(value):
            logger.warning(
                "child_records_not_a_list",
                entity=self.spec.name,
                parent_source_id=parent.source_id,
                value_type=type(value).__name__,
            )
        return []


@dataclass(frozen=True)
class EntitySpec:
    """Source-to-target description of one entity type."""
    name: str
    model: type
    fields: Tuple[FieldMapping, ...]
    children: Tuple[ChildSpec, ...] = field(default_factory=tuple)
    label: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.label or self.name.replace('_', ' ').title()

    def walk(self) -> Iterable['EntitySpec']:
        """Yield this spec followed by all nested specs, depth first."""
        yield self
        for child in self.children:
            yield from child.spec.walk()


class EntityMigrator:
    """
    Migrates source records of one entity type into the target store.

    Args:
        spec: Entity description
        session: SQLAlchemy session bound to the target store
        statistics: Run statistics shared by every migrator
    """

    def __init__(self, spec: EntitySpec, session: Session, statistics: MigrationStatistics):
        self.spec = spec
        self.session = session
        self.statistics = statistics
        self.table = spec.model.__table__
        self.children = [
            (child, EntityMigrator(child.spec, session, statistics))
            for child in spec.children
        ]

    @property
    def name(self) -> str:
        return self.spec.name

    def migrate(self, document: Any, parent: Optional[RecordContext] = None) -> bool:
        """
        Attempt exactly one insert for a source record, then its children.

        Args:
            document: Source record (document, sub-document or scalar element)
            parent: Context of the already-migrated parent record, if nested

        Returns:
            bool: True if the record was inserted
        """
        context = RecordContext(document, parent=parent)
        try:
            row = self.transform(context)
            self.insert(row, context)
        except RecordError as error:
            self.statistics.record(self.name, Outcome.ERROR)
            logger.warning(
                "record_failed",
                entity=self.name,
                source_id=context.source_id,
                parent_id=context.parent_id,
                error_type=type(error).__name__,
                error=error.message,
            )
            self.skip_children(context)
            return False

        context.target_id = row['id']
        self.statistics.record(self.name, Outcome.SUCCESS)

        for child, migrator in self.children:
            for child_document in child.items(context):
                migrator.migrate(child_document, parent=context)
        return True

    def transform(self, context: RecordContext) -> dict:
        """
        Map a source record onto a target row.

        Raises:
            RecordTransformError: If a required column has neither a value nor
                a default, or a field cannot be read
            InvalidIdentifierError: If an identifier field is malformed
        """
        row = {}
        for mapping in self.spec.fields:
            try:
                value = mapping.resolve(context)
                if is_absent(value):
                    value = mapping.default_value()
                elif mapping.remap:
                    value = remap(value)
            except RecordError as error:
                error.entity = error.entity or self.name
                error.source_id = error.source_id or context.source_id
                raise
            except (AttributeError, KeyError, TypeError, ValueError) as error:
                raise RecordTransformError(
                    f"Cannot read {mapping.column}: {error}",
                    column=mapping.column,
                    entity=self.name,
                    source_id=context.source_id,
                ) from error

            if is_absent(value):
                if mapping.required:
                    raise RecordTransformError(
                        f"Missing required field {mapping.column}",
                        column=mapping.column,
                        entity=self.name,
                        source_id=context.source_id,
                    )
                value = None
            row[mapping.column] = value
        return row

    def insert(self, row: dict, context: RecordContext) -> None:
        """
        Insert and commit one row.

        Raises:
            RecordInsertError: If the target store rejects the row
        """
        try:
            self.session.execute(self.table.insert().values(row))
            self.session.commit()
        except SQLAlchemyError as error:
            self.session.rollback()
            reason = getattr(error, 'orig', None) or error
            raise RecordInsertError(
                f"Insert into {self.table.name} failed: {reason}",
                entity=self.name,
                source_id=context.source_id,
                original_error=error,
            ) from error

    def skip_children(self, context: RecordContext) -> int:
        """
        Record every nested child of a failed record as an orphan skip.

        Returns:
            int: Number of child records skipped, across all nesting levels
        """
        skipped = 0
        for child, migrator in self.children:
            child_documents = child.items(context)
            if not child_documents:
                continue
            self.statistics.record_skipped(migrator.name, len(child_documents))
            skipped += len(child_documents)
            for child_document in child_documents:
                skipped += migrator.skip_children(RecordContext(child_document, parent=context))

        if skipped:
            logger.info(
                "children_skipped",
                entity=self.name,
                source_id=context.source_id,
                skipped=skipped,
            )
        return skipped
