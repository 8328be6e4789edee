"""
Post-migration referential integrity check.

Counts target rows whose non-null foreign key does not resolve to a parent
row. The check is read-only and informational: findings are logged and
reported, never repaired.
"""

from typing import Dict, Optional

from sqlalchemy import MetaData, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import db
from ..utils.logging import get_logger

logger = get_logger('medichat_migration.integrity')


def find_orphaned_references(session: Session, metadata: Optional[MetaData] = None) -> Dict[str, int]:
    """
    Count dangling foreign key references across all target tables.

    Args:
        session: Session bound to the target store
        metadata: Table metadata to inspect (defaults to the model metadata)

    Returns:
        Dict[str, int]: Non-zero orphan counts keyed by
            ``child_table.column -> parent_table.column``
    """
    metadata = metadata if metadata is not None else db.metadata
    orphans = {}

    for table in metadata.sorted_tables:
        for foreign_key in sorted(table.foreign_keys, key=lambda fk: fk.parent.name):
            child_column = foreign_key.parent
            parent = foreign_key.column.table.alias()
            parent_column = parent.c[foreign_key.column.name]
            label = (
                f"{table.name}.{child_column.name} -> "
                f"{foreign_key.column.table.name}.{foreign_key.column.name}"
            )

            query = (
                select(func.count())
                .select_from(table.outerjoin(parent, child_column == parent_column))
                .where(child_column.isnot(None))
                .where(parent_column.is_(None))
            )
            try:
                count = session.execute(query).scalar() or 0
            except SQLAlchemyError as error:
                session.rollback()
                logger.warning("integrity_check_failed", reference=label, error=str(error))
                continue

            if count:
                orphans[label] = count
                logger.warning("orphaned_references", reference=label, count=count)

    if not orphans:
        logger.info("integrity_check_passed")
    return orphans
