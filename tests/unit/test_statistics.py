"""
Unit tests for the statistics aggregator and the summary report.
"""

from datetime import datetime, timedelta, timezone

import pytest

from medichat_migration.migration.statistics import (
    ENTITY_TYPES,
    EntityStats,
    MigrationStatistics,
    Outcome,
    success_rate,
)


def record_many(statistics, entity, successes=0, errors=0):
    for _ in range(successes):
        statistics.record(entity, Outcome.SUCCESS)
    for _ in range(errors):
        statistics.record(entity, Outcome.ERROR)


class TestSuccessRate:

    def test_zero_total_reports_zero(self):
        assert success_rate(0, 0) == 0.0

    def test_percentage(self):
        assert success_rate(3, 4) == pytest.approx(75.0)

    def test_entity_stats_rate(self):
        assert EntityStats(total=8, migrated=2, errors=6).success_rate == pytest.approx(25.0)


class TestMigrationStatistics:
    """Tests for counter bookkeeping."""

    def test_all_entity_types_registered(self):
        statistics = MigrationStatistics()
        assert statistics.entity_types == list(ENTITY_TYPES)
        assert statistics.is_empty()

    def test_record_counts_outcomes(self):
        statistics = MigrationStatistics()
        record_many(statistics, 'users', successes=3, errors=1)

        users = statistics['users']
        assert (users.total, users.migrated, users.errors) == (4, 3, 1)
        assert users.is_consistent

    def test_skips_are_not_part_of_total(self):
        statistics = MigrationStatistics()
        statistics.record('conversations', Outcome.ERROR)
        statistics.record_skipped('messages', 5)

        messages = statistics['messages']
        assert messages.total == 0
        assert messages.skipped == 5
        assert messages.is_consistent
        assert not statistics.is_empty()

    def test_negative_skip_rejected(self):
        with pytest.raises(ValueError):
            MigrationStatistics().record_skipped('messages', -1)

    def test_unknown_entity_rejected(self):
        with pytest.raises(KeyError):
            MigrationStatistics().record('invoices', Outcome.SUCCESS)

    def test_totals_sum_entities(self):
        statistics = MigrationStatistics()
        record_many(statistics, 'users', successes=2, errors=1)
        record_many(statistics, 'activity_logs', successes=5)
        statistics.record_skipped('allergies', 2)

        assert statistics.total == 8
        assert statistics.migrated == 7
        assert statistics.errors == 1
        assert statistics.skipped == 2

    def test_custom_entity_types(self):
        statistics = MigrationStatistics(entity_types=('a', 'b'))
        assert statistics.entity_types == ['a', 'b']
        assert [name for name, _ in statistics] == ['a', 'b']


class TestMigrationReport:
    """Tests for summarize() and the rendered table."""

    def test_rows_follow_entity_order(self):
        report = MigrationStatistics().summarize()
        assert [row.entity for row in report.rows] == list(ENTITY_TYPES)

    def test_zero_record_entities_reported(self):
        report = MigrationStatistics().summarize()
        row = report.row('prescriptions')
        assert row.total == 0
        assert row.success_rate == 0.0

    def test_overall_row(self):
        statistics = MigrationStatistics()
        record_many(statistics, 'users', successes=3, errors=1)
        record_many(statistics, 'conversations', successes=4)

        overall = statistics.summarize().overall
        assert overall.total == 8
        assert overall.migrated == 7
        assert overall.success_rate == pytest.approx(87.5)

    def test_report_is_a_snapshot(self):
        statistics = MigrationStatistics()
        report = statistics.summarize()
        statistics.record('users', Outcome.SUCCESS)
        assert report.row('users').total == 0

    def test_unknown_row(self):
        with pytest.raises(KeyError):
            MigrationStatistics().summarize().row('invoices')

    def test_render_contains_every_entity(self):
        statistics = MigrationStatistics()
        record_many(statistics, 'users', successes=3, errors=1)
        statistics.record_skipped('allergies', 2)

        rendered = statistics.summarize(state='reporting_summary').render()
        for entity in ENTITY_TYPES:
            assert entity.upper() in rendered
        assert 'OVERALL' in rendered
        assert '75.0%' in rendered
        assert 'State: reporting_summary' in rendered

    def test_render_lists_orphaned_references(self):
        report = MigrationStatistics().summarize(
            orphaned_references={'messages.conversation_id -> conversations.id': 2}
        )
        assert 'messages.conversation_id -> conversations.id: 2' in report.render()

    def test_duration(self):
        started = datetime(2024, 1, 1, tzinfo=timezone.utc)
        report = MigrationStatistics().summarize(
            started_at=started, finished_at=started + timedelta(seconds=90)
        )
        assert report.duration_seconds == 90.0

    def test_to_dict(self):
        statistics = MigrationStatistics()
        record_many(statistics, 'users', successes=1, errors=2)
        data = statistics.summarize(state='disconnected').to_dict()

        assert data['state'] == 'disconnected'
        assert data['entities']['users'] == {
            'total': 3,
            'migrated': 1,
            'errors': 2,
            'skipped': 0,
            'success_rate': 33.3,
        }
        assert data['overall']['total'] == 3
        assert data['started_at'] is None
