"""
Conversation models: chatbot visits and the records nested inside them.

Messages, symptoms, attachments and prescriptions are embedded arrays in the
source conversation document and become child tables keyed by
conversations.id.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from .base import BaseModel, IdentifierType, TimestampMixin, utcnow


class Conversation(BaseModel, TimestampMixin):
    """A patient visit, optionally answered by a doctor."""

    __tablename__ = 'conversations'

    patient_id = Column(IdentifierType, ForeignKey('users.id'), nullable=False, index=True)
    doctor_id = Column(IdentifierType, ForeignKey('users.id'), nullable=True, index=True)
    visit_number = Column(Integer, nullable=False, default=1)
    status = Column(String(30), nullable=False, default='in_progress')
    ai_summary = Column(Text, nullable=True)

    # Flattened doctor response
    diagnosis = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    referrals = Column(Text, nullable=True)
    call_to_office = Column(Boolean, nullable=False, default=False)
    doctor_notes = Column(Text, nullable=True)
    responded_at = Column(DateTime, nullable=True)

    patient_notified = Column(Boolean, nullable=False, default=False)
    archived_by_patient = Column(Boolean, nullable=False, default=False)
    archived_by_doctor = Column(Boolean, nullable=False, default=False)
    conversation_ended_at = Column(DateTime, nullable=True)


class Message(BaseModel):
    __tablename__ = 'messages'

    conversation_id = Column(IdentifierType, ForeignKey('conversations.id', ondelete='CASCADE'),
                             nullable=False, index=True)
    role = Column(String(20), nullable=False, default='user')
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Symptom(BaseModel):
    __tablename__ = 'symptoms'

    conversation_id = Column(IdentifierType, ForeignKey('conversations.id', ondelete='CASCADE'),
                             nullable=False, index=True)
    symptom = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    severity = Column(String(50), nullable=True)
    duration = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Attachment(BaseModel):
    __tablename__ = 'attachments'

    conversation_id = Column(IdentifierType, ForeignKey('conversations.id', ondelete='CASCADE'),
                             nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_type = Column(String(50), nullable=True)
    mime_type = Column(String(100), nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=utcnow)


class Prescription(BaseModel, TimestampMixin):
    """
    Medication prescribed in a doctor response.

    doctor_id is nullable: a conversation without an assigned doctor yields
    prescriptions with no issuing doctor rather than a substituted one.
    """

    __tablename__ = 'prescriptions'

    conversation_id = Column(IdentifierType, ForeignKey('conversations.id', ondelete='CASCADE'),
                             nullable=False, index=True)
    patient_id = Column(IdentifierType, ForeignKey('users.id'), nullable=False, index=True)
    doctor_id = Column(IdentifierType, ForeignKey('users.id'), nullable=True, index=True)
    medication_name = Column(String(255), nullable=False)
    dosage = Column(String(255), nullable=False)
    frequency = Column(String(255), nullable=False)
    duration = Column(String(255), nullable=False)
    status = Column(String(30), nullable=False, default='active')
