"""
Account models: users and the patient medical records nested under them.

The source store keeps allergies, medications and history entries as arrays
inside the user document; here each becomes its own table foreign-keyed to
users.id.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text

from .base import BaseModel, IdentifierType, TimestampMixin


class User(BaseModel, TimestampMixin):
    """Platform account: patient, doctor or admin."""

    __tablename__ = 'users'

    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    date_of_birth = Column(DateTime, nullable=True)
    specialization = Column(String(255), nullable=True)
    license_number = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(DateTime, nullable=True)


class PatientMedicalInfo(BaseModel, TimestampMixin):
    """One-to-one medical profile for patient accounts."""

    __tablename__ = 'patient_medical_info'

    patient_id = Column(IdentifierType, ForeignKey('users.id', ondelete='CASCADE'),
                        unique=True, nullable=False)
    assigned_doctor_id = Column(IdentifierType, ForeignKey('users.id'), nullable=True)
    blood_type = Column(String(5), nullable=True)
    emergency_contact_name = Column(String(255), nullable=True)
    emergency_contact_phone = Column(String(50), nullable=True)
    emergency_contact_relationship = Column(String(100), nullable=True)
    insurance_provider = Column(String(255), nullable=True)
    insurance_policy_number = Column(String(100), nullable=True)
    insurance_group_number = Column(String(100), nullable=True)
    preferred_language = Column(String(50), nullable=False, default='English')


class Allergy(BaseModel, TimestampMixin):
    __tablename__ = 'allergies'

    patient_id = Column(IdentifierType, ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    allergen = Column(String(255), nullable=False)
    allergen_type = Column(String(50), nullable=False, default='other')
    severity = Column(String(50), nullable=False, default='moderate')


class Medication(BaseModel, TimestampMixin):
    __tablename__ = 'medications'

    patient_id = Column(IdentifierType, ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    medication_name = Column(String(255), nullable=False)
    dosage = Column(String(255), nullable=True)
    frequency = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class MedicalHistory(BaseModel, TimestampMixin):
    __tablename__ = 'medical_history'

    patient_id = Column(IdentifierType, ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    condition = Column(String(255), nullable=False)
    diagnosed_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
