"""
Activity log model for the platform's audit trail.

Activity logs are independent of the conversation graph; the only foreign key
is the optional acting user. resource_id is remapped but deliberately not a
foreign key since it may point at any table.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from .base import BaseModel, IdentifierType, JSONType, utcnow


class ActivityLog(BaseModel):
    __tablename__ = 'activity_logs'

    user_id = Column(IdentifierType, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    user_role = Column(String(20), nullable=True)
    user_email = Column(String(255), nullable=True)

    action = Column(String(100), nullable=False)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(IdentifierType, nullable=True)

    method = Column(String(10), nullable=True)
    endpoint = Column(String(500), nullable=True)
    ip_address = Column(String(45), nullable=False, default='0.0.0.0')
    user_agent = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default='success')
    status_code = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    metadata_json = Column('metadata', JSONType, nullable=True)

    error_message = Column(Text, nullable=True)
    error_stack = Column(Text, nullable=True)
    error_code = Column(String(100), nullable=True)
    duration_ms = Column(Integer, nullable=True)
    severity = Column(String(20), nullable=False, default='info')
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('idx_activity_logs_user_time', 'user_id', 'created_at'),
        Index('idx_activity_logs_action_time', 'action', 'created_at'),
    )
