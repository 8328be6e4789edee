"""
MongoDB to relational store migration engine.

Public entry point is MigrationOrchestrator; the remaining names are exposed
for callers composing their own runs and for tests.
"""

from .connections import StoreConnector, Stores
from .entity import ChildSpec, EntityMigrator, EntitySpec, FieldMapping, RecordContext
from .integrity import find_orphaned_references
from .orchestrator import MigrationOrchestrator, MigrationState, Phase
from .statistics import ENTITY_TYPES, EntityStats, MigrationReport, MigrationStatistics, Outcome

__all__ = [
    'ENTITY_TYPES',
    'ChildSpec',
    'EntityMigrator',
    'EntitySpec',
    'EntityStats',
    'FieldMapping',
    'MigrationOrchestrator',
    'MigrationReport',
    'MigrationState',
    'MigrationStatistics',
    'Outcome',
    'Phase',
    'RecordContext',
    'StoreConnector',
    'Stores',
    'find_orphaned_references',
]
