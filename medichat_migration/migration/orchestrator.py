"""
Migration Orchestrator

Runs the migration phases in dependency order against acquired stores:

    1. Accounts       (users -> patient info, allergies, medications, history)
    2. Conversations  (conversations -> messages, symptoms, attachments, prescriptions)
    3. Audit logs     (activity logs, capped at the configured ceiling)

Later phases hold foreign keys into earlier phases' rows, so each phase
completes before the next starts. Per-record failures never stop a phase and
a phase's failures never stop later phases; the only abort is a failure to
acquire the stores.
"""

import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional, TextIO

import pymongo
from pymongo.errors import PyMongoError

from ..config import MigrationConfig
from ..exceptions import FatalConnectionError
from ..utils.logging import get_logger
from .connections import StoreConnector, Stores
from .entities import ACTIVITY_LOG_SPEC, CONVERSATION_SPEC, USER_SPEC
from .entity import EntityMigrator, EntitySpec
from .integrity import find_orphaned_references
from .statistics import MigrationReport, MigrationStatistics

logger = get_logger('medichat_migration.orchestrator')


class MigrationState(Enum):
    """Migration run state tracking."""
    NOT_STARTED = "not_started"
    CONNECTING_STORES = "connecting_stores"
    MIGRATING_ACCOUNTS = "migrating_accounts"
    MIGRATING_CONVERSATIONS = "migrating_conversations"
    MIGRATING_AUDIT_LOGS = "migrating_audit_logs"
    REPORTING_SUMMARY = "reporting_summary"
    DISCONNECTED = "disconnected"
    ABORTED = "aborted"


# The only failure transition is CONNECTING_STORES -> ABORTED
TRANSITIONS = {
    MigrationState.NOT_STARTED: {MigrationState.CONNECTING_STORES},
    MigrationState.CONNECTING_STORES: {MigrationState.MIGRATING_ACCOUNTS, MigrationState.ABORTED},
    MigrationState.MIGRATING_ACCOUNTS: {MigrationState.MIGRATING_CONVERSATIONS},
    MigrationState.MIGRATING_CONVERSATIONS: {MigrationState.MIGRATING_AUDIT_LOGS},
    MigrationState.MIGRATING_AUDIT_LOGS: {MigrationState.REPORTING_SUMMARY},
    MigrationState.REPORTING_SUMMARY: {MigrationState.DISCONNECTED},
    MigrationState.DISCONNECTED: set(),
    MigrationState.ABORTED: set(),
}


class InvalidStateTransition(RuntimeError):
    pass


@dataclass(frozen=True)
class Phase:
    """One entity type's complete pass over its source collection."""
    state: MigrationState
    collection: str
    spec: EntitySpec
    limit: Optional[int] = None


def build_phases(config: MigrationConfig) -> List[Phase]:
    return [
        Phase(MigrationState.MIGRATING_ACCOUNTS, 'users', USER_SPEC),
        Phase(MigrationState.MIGRATING_CONVERSATIONS, 'conversations', CONVERSATION_SPEC),
        Phase(MigrationState.MIGRATING_AUDIT_LOGS, 'activity_logs', ACTIVITY_LOG_SPEC,
              limit=config.audit_log_limit),
    ]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MigrationOrchestrator:
    """
    Main orchestrator coordinating one complete migration run.

    Owns the run's statistics; every entity migrator reports into them.

    Args:
        config: Migration configuration
        statistics: Statistics aggregator (a fresh one by default)
        output: Stream receiving progress lines and the summary table
    """

    def __init__(
        self,
        config: MigrationConfig,
        statistics: Optional[MigrationStatistics] = None,
        output: Optional[TextIO] = None,
    ):
        self.config = config
        self.statistics = statistics if statistics is not None else MigrationStatistics()
        self.output = output or sys.stdout
        self.phases = build_phases(config)
        self.state = MigrationState.NOT_STARTED
        self.started_at: Optional[datetime] = None
        self.finished_at: Optional[datetime] = None

    def transition(self, new_state: MigrationState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidStateTransition(f"{self.state.value} -> {new_state.value}")
        logger.debug("state_changed", previous=self.state.value, state=new_state.value)
        self.state = new_state

    def run(self, connector: Optional[StoreConnector] = None) -> MigrationReport:
        """
        Execute the complete migration.

        Args:
            connector: Store connector (built from the config by default)

        Returns:
            MigrationReport: Final summary of the run

        Raises:
            FatalConnectionError: If either store cannot be acquired
        """
        connector = connector or StoreConnector(self.config)
        self.started_at = utc_now()
        self.transition(MigrationState.CONNECTING_STORES)

        try:
            with connector.acquire() as stores:
                report = self.execute(stores)
        except FatalConnectionError as error:
            if self.state is MigrationState.CONNECTING_STORES:
                self.transition(MigrationState.ABORTED)
            logger.error("migration_aborted", store=error.store, error=error.message)
            raise

        self.transition(MigrationState.DISCONNECTED)
        report.state = self.state.value
        self._write(report.render())
        logger.info("migration_summary", **report.to_dict())
        return report

    def execute(self, stores: Stores) -> MigrationReport:
        """Run every phase against acquired stores, then report."""
        for phase in self.phases:
            self.transition(phase.state)
            self.run_phase(phase, stores)

        self.transition(MigrationState.REPORTING_SUMMARY)
        return self.report(stores)

    def run_phase(self, phase: Phase, stores: Stores) -> None:
        """
        Migrate every source record of one phase.

        A source read failure ends the phase early; records already read keep
        their outcomes and the run moves on to the next phase.
        """
        logger.info("phase_started", phase=phase.state.value, collection=phase.collection)
        migrator = EntityMigrator(phase.spec, stores.session, self.statistics)

        try:
            for document in self.read_source(stores.source, phase):
                migrator.migrate(document)
        except PyMongoError as error:
            logger.error(
                "phase_source_read_failed",
                phase=phase.state.value,
                collection=phase.collection,
                error=str(error),
            )

        for spec in phase.spec.walk():
            stats = self.statistics[spec.name]
            self._write(
                f"{spec.display_name}: {stats.migrated}/{stats.total} migrated "
                f"({stats.errors} errors, {stats.skipped} skipped)"
            )
            logger.info(
                "phase_completed",
                phase=phase.state.value,
                entity=spec.name,
                total=stats.total,
                migrated=stats.migrated,
                errors=stats.errors,
                skipped=stats.skipped,
            )

    @staticmethod
    def read_source(source: Any, phase: Phase) -> Iterable[Any]:
        """Read a phase's documents in source key order, honoring its ceiling."""
        if phase.limit == 0:
            return []
        cursor = source[phase.collection].find().sort('_id', pymongo.ASCENDING)
        if phase.limit is not None:
            cursor = cursor.limit(phase.limit)
        return cursor

    def report(self, stores: Stores) -> MigrationReport:
        orphans = {}
        if self.config.verify_integrity:
            orphans = find_orphaned_references(stores.session)

        self.finished_at = utc_now()
        report = self.statistics.summarize(
            state=self.state.value,
            started_at=self.started_at,
            finished_at=self.finished_at,
            orphaned_references=orphans,
        )
        logger.info("reporting_completed", duration_seconds=report.duration_seconds)
        return report

    def _write(self, line: str) -> None:
        self.output.write(line + '\n')
        self.output.flush()
