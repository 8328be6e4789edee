"""
Unit tests for the post-migration orphaned reference check.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from medichat_migration.migration.integrity import find_orphaned_references
from medichat_migration.models import Conversation, Message, User, new_identifier


def add_user(session, **overrides):
    values = {
        'id': new_identifier(),
        'email': f"{new_identifier()}@medichat.test",
        'password_hash': 'x',
        'role': 'patient',
        'first_name': 'Ada',
        'last_name': 'Lovelace',
    }
    values.update(overrides)
    session.execute(User.__table__.insert().values(values))
    return values['id']


class TestFindOrphanedReferences:

    def test_clean_target(self, session):
        patient_id = add_user(session)
        session.execute(Conversation.__table__.insert().values(id=new_identifier(), patient_id=patient_id))
        session.commit()

        assert find_orphaned_references(session) == {}

    def test_dangling_references_counted(self, session):
        # Only possible while the target is not enforcing its foreign keys
        session.execute(text("PRAGMA foreign_keys=OFF"))
        conversation_id = new_identifier()
        session.execute(Conversation.__table__.insert().values(id=conversation_id, patient_id=new_identifier()))
        for _ in range(2):
            session.execute(Message.__table__.insert().values(
                id=new_identifier(), conversation_id=new_identifier(), content='hello',
            ))
        session.execute(Message.__table__.insert().values(
            id=new_identifier(), conversation_id=conversation_id, content='hello',
        ))
        session.commit()

        orphans = find_orphaned_references(session)

        assert orphans == {
            'conversations.patient_id -> users.id': 1,
            'messages.conversation_id -> conversations.id': 2,
        }

    def test_null_references_are_not_orphans(self, session):
        patient_id = add_user(session)
        session.execute(Conversation.__table__.insert().values(
            id=new_identifier(), patient_id=patient_id, doctor_id=None,
        ))
        session.commit()

        assert 'conversations.doctor_id -> users.id' not in find_orphaned_references(session)


class TestTargetForeignKeys:

    def test_sqlite_connections_enforce_foreign_keys(self, session):
        assert session.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_row_with_unknown_parent_rejected(self, session):
        with pytest.raises(IntegrityError):
            session.execute(Conversation.__table__.insert().values(
                id=new_identifier(), patient_id=new_identifier(),
            ))
            session.commit()
        session.rollback()
