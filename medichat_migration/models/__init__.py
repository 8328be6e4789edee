"""
Target store models.

Importing this package registers every table on ``db.metadata`` so the
migration engine, integrity checks and schema creation see the full graph.
"""

from .base import BaseModel, IdentifierType, JSONType, TimestampMixin, db, new_identifier, utcnow
from .user import Allergy, MedicalHistory, Medication, PatientMedicalInfo, User
from .conversation import Attachment, Conversation, Message, Prescription, Symptom
from .audit import ActivityLog

__all__ = [
    'db',
    'BaseModel',
    'IdentifierType',
    'JSONType',
    'TimestampMixin',
    'new_identifier',
    'utcnow',
    'User',
    'PatientMedicalInfo',
    'Allergy',
    'Medication',
    'MedicalHistory',
    'Conversation',
    'Message',
    'Symptom',
    'Attachment',
    'Prescription',
    'ActivityLog',
]
