"""
Per-entity migration statistics and the final summary report.

One MigrationStatistics instance belongs to one orchestrator run and is
passed to every entity migrator. Counters only ever increase. For every
entity type ``migrated + errors == total`` holds once its phase finishes;
orphan skips are tracked beside the total, never inside it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

# Report order follows the dependency order of the phases
ENTITY_TYPES = (
    'users',
    'patient_info',
    'allergies',
    'medications',
    'medical_history',
    'conversations',
    'messages',
    'symptoms',
    'attachments',
    'prescriptions',
    'activity_logs',
)


class Outcome(Enum):
    """Result of one attempted record."""
    SUCCESS = "success"
    ERROR = "error"


def success_rate(migrated: int, total: int) -> float:
    """Percentage of migrated records; 0.0 when nothing was attempted."""
    if total <= 0:
        return 0.0
    return migrated / total * 100


@dataclass
class EntityStats:
    """Counters for one entity type."""
    total: int = 0
    migrated: int = 0
    errors: int = 0
    skipped: int = 0

    @property
    def success_rate(self) -> float:
        return success_rate(self.migrated, self.total)

    @property
    def is_consistent(self) -> bool:
        return self.migrated + self.errors == self.total


class MigrationStatistics:
    """
    Statistics aggregator for a migration run.

    Entity types are registered up front so the report lists every type,
    including those with no records.
    """

    def __init__(self, entity_types: Iterable[str] = ENTITY_TYPES):
        self._stats: Dict[str, EntityStats] = {name: EntityStats() for name in entity_types}

    def __getitem__(self, entity: str) -> EntityStats:
        return self._stats[entity]

    def __iter__(self):
        return iter(self._stats.items())

    @property
    def entity_types(self) -> List[str]:
        return list(self._stats)

    def record(self, entity: str, outcome: Outcome) -> None:
        """
        Count one attempted record and its outcome.

        Raises:
            KeyError: If the entity type was not registered
        """
        stats = self._stats[entity]
        stats.total += 1
        if outcome is Outcome.SUCCESS:
            stats.migrated += 1
        else:
            stats.errors += 1

    def record_skipped(self, entity: str, count: int = 1) -> None:
        """Count child records never attempted because their parent failed."""
        if count < 0:
            raise ValueError("skip count must not be negative")
        self._stats[entity].skipped += count

    @property
    def total(self) -> int:
        return sum(s.total for s in self._stats.values())

    @property
    def migrated(self) -> int:
        return sum(s.migrated for s in self._stats.values())

    @property
    def errors(self) -> int:
        return sum(s.errors for s in self._stats.values())

    @property
    def skipped(self) -> int:
        return sum(s.skipped for s in self._stats.values())

    def is_empty(self) -> bool:
        """True while no record has been attempted or skipped."""
        return self.total == 0 and self.skipped == 0

    def summarize(self, **metadata) -> 'MigrationReport':
        """
        Build the final report from the current counters.

        Args:
            **metadata: Run metadata forwarded to MigrationReport

        Returns:
            MigrationReport: Immutable snapshot of the statistics
        """
        rows = [
            ReportRow(
                entity=name,
                total=s.total,
                migrated=s.migrated,
                errors=s.errors,
                skipped=s.skipped,
                success_rate=s.success_rate,
            )
            for name, s in self._stats.items()
        ]
        overall = ReportRow(
            entity='overall',
            total=self.total,
            migrated=self.migrated,
            errors=self.errors,
            skipped=self.skipped,
            success_rate=success_rate(self.migrated, self.total),
        )
        return MigrationReport(rows=rows, overall=overall, **metadata)


@dataclass(frozen=True)
class ReportRow:
    entity: str
    total: int
    migrated: int
    errors: int
    skipped: int
    success_rate: float


@dataclass
class MigrationReport:
    """
    Final summary of a migration run.

    Rendered as a table so an operator can judge completeness without
    re-running the tool.
    """
    rows: List[ReportRow]
    overall: ReportRow
    state: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    orphaned_references: Dict[str, int] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def row(self, entity: str) -> ReportRow:
        for row in self.rows:
            if row.entity == entity:
                return row
        raise KeyError(entity)

    def render(self) -> str:
        """Render the report as a fixed-width text table."""
        header = f"{'ENTITY':<18}{'TOTAL':>9}{'MIGRATED':>10}{'ERRORS':>8}{'SKIPPED':>9}{'SUCCESS':>9}"
        rule = '=' * len(header)
        lines = [rule, 'MIGRATION SUMMARY', rule, header, '-' * len(header)]
        for row in self.rows:
            lines.append(self._format_row(row))
        lines.append('-' * len(header))
        lines.append(self._format_row(self.overall, label='OVERALL'))
        lines.append(rule)

        if self.orphaned_references:
            lines.append('Orphaned references:')
            for reference, count in self.orphaned_references.items():
                lines.append(f"  {reference}: {count}")
            lines.append(rule)

        if self.state:
            lines.append(f"State: {self.state}  Duration: {self.duration_seconds:.2f}s")
        return '\n'.join(lines)

    @staticmethod
    def _format_row(row: ReportRow, label: Optional[str] = None) -> str:
        name = label or row.entity.upper()
        return (
            f"{name:<18}{row.total:>9}{row.migrated:>10}{row.errors:>8}"
            f"{row.skipped:>9}{row.success_rate:>8.1f}%"
        )

    def to_dict(self) -> Dict[str, object]:
        """Convert the report to a dictionary for structured logging."""
        return {
            'state': self.state,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'duration_seconds': self.duration_seconds,
            'entities': {
                row.entity: {
                    'total': row.total,
                    'migrated': row.migrated,
                    'errors': row.errors,
                    'skipped': row.skipped,
                    'success_rate': round(row.success_rate, 1),
                }
                for row in self.rows
            },
            'overall': {
                'total': self.overall.total,
                'migrated': self.overall.migrated,
                'errors': self.overall.errors,
                'skipped': self.overall.skipped,
                'success_rate': round(self.overall.success_rate, 1),
            },
            'orphaned_references': dict(self.orphaned_references),
        }
