"""
Entity specs: field-mapping tables for every migrated entity type.

Source field names follow the MongoDB documents written by the platform;
target column names follow the relational schema. Absent optional values map
to NULL; the literal defaults below are the schema's own defaults for rows
created by the platform.
"""

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from bson import ObjectId

from ..models import (
    ActivityLog,
    Allergy,
    Attachment,
    Conversation,
    MedicalHistory,
    Medication,
    Message,
    PatientMedicalInfo,
    Prescription,
    Symptom,
    User,
    new_identifier,
    utcnow,
)
from ..utils.logging import get_logger
from .entity import ChildSpec, EntitySpec, FieldMapping, RecordContext

logger = get_logger('medichat_migration.entities')


# ==================== FIELD SOURCES ====================

def parent_id(context: RecordContext) -> Any:
    """Target identifier of the already-inserted parent record."""
    return context.parent_id


def parent_field(path: str):
    """Read a field from the parent's source document."""
    def getter(context: RecordContext) -> Any:
        return context.parent.get(path) if context.parent else None
    return getter


def falsy_as_absent(path: str):
    """Treat 0/False as absent so the column default applies."""
    def getter(context: RecordContext) -> Any:
        return context.get(path) or None
    return getter


def element_value(context: RecordContext) -> Any:
    """The record itself, for arrays of plain strings."""
    return context.document


def medication_name(context: RecordContext) -> Any:
    """Medication entries are plain names or mappings with a name."""
    document = context.document
    if isinstance(document, Mapping):
        return document.get('name') or document.get('medication')
    return document


def prescribing_doctor(context: RecordContext) -> Any:
    """
    Issuing doctor of a prescription: the conversation's doctor.

    Conversations without a doctor yield prescriptions with no issuing
    doctor; the patient is never substituted.
    """
    doctor = context.parent.get('doctor') if context.parent else None
    if doctor is None:
        logger.warning(
            "prescription_without_doctor",
            conversation_id=context.parent_id,
            source_id=context.source_id,
        )
    return doctor


def json_compatible(path: str):
    """Read a free-form field and convert ObjectIds and datetimes for JSON storage."""
    def getter(context: RecordContext) -> Any:
        return _to_json(context.get(path))
    return getter


def _to_json(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    return value


def is_patient(context: RecordContext) -> bool:
    return context.get('role') == 'patient'


def itself(context: RecordContext) -> list:
    """The medical profile is carried on the user document itself."""
    return [context.document]


def subdocument_id() -> FieldMapping:
    """Keyed sub-documents keep their remapped key; others get a fresh one."""
    return FieldMapping('id', '_id', default=new_identifier, required=True, remap=True)


# ==================== ACCOUNTS ====================

PATIENT_INFO_SPEC = EntitySpec(
    name='patient_info',
    model=PatientMedicalInfo,
    fields=(
        FieldMapping('id', default=new_identifier, required=True),
        FieldMapping('patient_id', parent_id, required=True),
        FieldMapping('assigned_doctor_id', 'assignedDoctor', remap=True),
        FieldMapping('blood_type', 'bloodType'),
        FieldMapping('emergency_contact_name', 'emergencyContacts.0.name'),
        FieldMapping('emergency_contact_phone', 'emergencyContacts.0.phone'),
        FieldMapping('emergency_contact_relationship', 'emergencyContacts.0.relationship'),
        FieldMapping('insurance_provider', 'insuranceProvider'),
        FieldMapping('insurance_policy_number', 'insurancePolicyNumber'),
        FieldMapping('insurance_group_number', 'insuranceGroupNumber'),
        FieldMapping('preferred_language', 'preferredLanguage', default='English'),
        FieldMapping('created_at', 'createdAt', default=utcnow),
        FieldMapping('updated_at', 'updatedAt', default=utcnow),
    ),
    label='Patient Medical Info',
)

ALLERGY_SPEC = EntitySpec(
    name='allergies',
    model=Allergy,
    fields=(
        FieldMapping('id', default=new_identifier, required=True),
        FieldMapping('patient_id', parent_id, required=True),
        FieldMapping('allergen', element_value, required=True),
        FieldMapping('allergen_type', default='other'),
        FieldMapping('severity', default='moderate'),
        FieldMapping('created_at', default=utcnow),
        FieldMapping('updated_at', default=utcnow),
    ),
)

MEDICATION_SPEC = EntitySpec(
    name='medications',
    model=Medication,
    fields=(
        FieldMapping('id', default=new_identifier, required=True),
        FieldMapping('patient_id', parent_id, required=True),
        FieldMapping('medication_name', medication_name, required=True),
        FieldMapping('dosage', 'dosage'),
        FieldMapping('frequency', 'frequency'),
        FieldMapping('is_active', default=True),
        FieldMapping('created_at', default=utcnow),
        FieldMapping('updated_at', default=utcnow),
    ),
)

MEDICAL_HISTORY_SPEC = EntitySpec(
    name='medical_history',
    model=MedicalHistory,
    fields=(
        subdocument_id(),
        FieldMapping('patient_id', parent_id, required=True),
        FieldMapping('condition', 'condition', default='Unknown'),
        FieldMapping('diagnosed_date', 'diagnosedDate'),
        FieldMapping('notes', 'notes'),
        FieldMapping('is_active', default=True),
        FieldMapping('created_at', default=utcnow),
        FieldMapping('updated_at', default=utcnow),
    ),
)

USER_SPEC = EntitySpec(
    name='users',
    model=User,
    fields=(
        FieldMapping('id', '_id', required=True, remap=True),
        FieldMapping('email', 'email', required=True),
        FieldMapping('password_hash', 'password', required=True),
        FieldMapping('role', 'role', required=True),
        FieldMapping('first_name', 'firstName', required=True),
        FieldMapping('last_name', 'lastName', required=True),
        FieldMapping('phone', 'phone'),
        FieldMapping('date_of_birth', 'dateOfBirth'),
        FieldMapping('specialization', 'specialization'),
        FieldMapping('license_number', 'licenseNumber'),
        FieldMapping('is_active', 'isActive', default=True),
        FieldMapping('email_verified', 'emailVerified', default=False),
        FieldMapping('created_at', 'createdAt', default=utcnow),
        FieldMapping('updated_at', 'updatedAt', default=utcnow),
        FieldMapping('last_login_at', 'lastLoginAt'),
    ),
    children=(
        ChildSpec(PATIENT_INFO_SPEC, extract=itself, applies=is_patient),
        ChildSpec(ALLERGY_SPEC, extract=lambda context: context.get('allergies'), applies=is_patient),
        ChildSpec(MEDICATION_SPEC, extract=lambda context: context.get('currentMedications'),
                  applies=is_patient),
        ChildSpec(MEDICAL_HISTORY_SPEC, extract=lambda context: context.get('medicalHistory'),
                  applies=is_patient),
    ),
)


# ==================== CONVERSATIONS ====================

MESSAGE_SPEC = EntitySpec(
    name='messages',
    model=Message,
    fields=(
        subdocument_id(),
        FieldMapping('conversation_id', parent_id, required=True),
        FieldMapping('role', 'role', default='user'),
        FieldMapping('content', 'content', required=True),
        FieldMapping('created_at', 'timestamp', default=utcnow),
    ),
)

SYMPTOM_SPEC = EntitySpec(
    name='symptoms',
    model=Symptom,
    fields=(
        subdocument_id(),
        FieldMapping('conversation_id', parent_id, required=True),
        FieldMapping('symptom', 'symptom', default='Unknown'),
        FieldMapping('location', 'location'),
        FieldMapping('severity', 'severity'),
        FieldMapping('duration', 'duration'),
        FieldMapping('notes', 'notes'),
        FieldMapping('created_at', default=utcnow),
    ),
)

ATTACHMENT_SPEC = EntitySpec(
    name='attachments',
    model=Attachment,
    fields=(
        subdocument_id(),
        FieldMapping('conversation_id', parent_id, required=True),
        FieldMapping('filename', 'filename', required=True),
        FieldMapping('original_name', 'originalName', required=True),
        FieldMapping('file_path', 'path', required=True),
        FieldMapping('file_type', 'fileType'),
        FieldMapping('mime_type', 'mimeType'),
        FieldMapping('uploaded_at', 'uploadDate', default=utcnow),
    ),
)

PRESCRIPTION_SPEC = EntitySpec(
    name='prescriptions',
    model=Prescription,
    fields=(
        subdocument_id(),
        FieldMapping('conversation_id', parent_id, required=True),
        FieldMapping('patient_id', parent_field('patient'), required=True, remap=True),
        FieldMapping('doctor_id', prescribing_doctor, remap=True),
        FieldMapping('medication_name', 'medication', default='Unknown'),
        FieldMapping('dosage', 'dosage', default='As directed'),
        FieldMapping('frequency', 'frequency', default='As directed'),
        FieldMapping('duration', 'duration', default='Until finished'),
        FieldMapping('status', default='active'),
        FieldMapping('created_at', parent_field('doctorResponse.respondedAt'), default=utcnow),
        FieldMapping('updated_at', parent_field('doctorResponse.respondedAt'), default=utcnow),
    ),
)

CONVERSATION_SPEC = EntitySpec(
    name='conversations',
    model=Conversation,
    fields=(
        FieldMapping('id', '_id', required=True, remap=True),
        FieldMapping('patient_id', 'patient', required=True, remap=True),
        FieldMapping('doctor_id', 'doctor', remap=True),
        FieldMapping('visit_number', falsy_as_absent('visitNumber'), default=1),
        FieldMapping('status', 'status', default='in_progress'),
        FieldMapping('ai_summary', 'aiSummary'),
        FieldMapping('diagnosis', 'doctorResponse.diagnosis'),
        FieldMapping('recommendations', 'doctorResponse.recommendations'),
        FieldMapping('referrals', 'doctorResponse.referrals'),
        FieldMapping('call_to_office', 'doctorResponse.callToOffice', default=False),
        FieldMapping('doctor_notes', 'doctorResponse.notes'),
        FieldMapping('responded_at', 'doctorResponse.respondedAt'),
        FieldMapping('patient_notified', 'patientNotified', default=False),
        FieldMapping('archived_by_patient', 'archivedByPatient', default=False),
        FieldMapping('archived_by_doctor', 'archivedByDoctor', default=False),
        FieldMapping('conversation_ended_at', 'conversationEndedAt'),
        FieldMapping('created_at', 'createdAt', default=utcnow),
        FieldMapping('updated_at', 'updatedAt', default=utcnow),
    ),
    children=(
        ChildSpec(MESSAGE_SPEC, extract=lambda context: context.get('messages')),
        ChildSpec(SYMPTOM_SPEC, extract=lambda context: context.get('symptoms')),
        ChildSpec(ATTACHMENT_SPEC, extract=lambda context: context.get('attachments')),
        ChildSpec(PRESCRIPTION_SPEC, extract=lambda context: context.get('doctorResponse.prescriptions')),
    ),
)


# ==================== AUDIT LOGS ====================

ACTIVITY_LOG_SPEC = EntitySpec(
    name='activity_logs',
    model=ActivityLog,
    fields=(
        FieldMapping('id', '_id', required=True, remap=True),
        FieldMapping('user_id', 'user', remap=True),
        FieldMapping('user_role', 'userRole'),
        FieldMapping('user_email', 'userEmail'),
        FieldMapping('action', 'action', required=True),
        FieldMapping('resource_type', 'resourceType'),
        FieldMapping('resource_id', 'resourceId', remap=True),
        FieldMapping('method', 'method'),
        FieldMapping('endpoint', 'endpoint'),
        FieldMapping('ip_address', 'ipAddress', default='0.0.0.0'),
        FieldMapping('user_agent', 'userAgent'),
        FieldMapping('status', 'status', default='success'),
        FieldMapping('status_code', 'statusCode'),
        FieldMapping('description', 'description'),
        FieldMapping('metadata', json_compatible('metadata')),
        FieldMapping('error_message', 'error.message'),
        FieldMapping('error_stack', 'error.stack'),
        FieldMapping('error_code', 'error.code'),
        FieldMapping('duration_ms', 'duration'),
        FieldMapping('severity', 'severity', default='info'),
        FieldMapping('created_at', 'createdAt', default=utcnow),
    ),
    label='Activity Logs',
)
