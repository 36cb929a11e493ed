from uuid import uuid4
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text, Uuid

from app.db.base import Base
from app.utils.timezone import utcnow


class Alert(Base):
    """
    Caregiver/patient-facing alert.
    Shared with the platform's other alert producers; this service writes
    motion_inactivity_detected and fall_escalation_required alerts.
    """
    __tablename__ = "alerts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    patient_id = Column(Uuid, nullable=False, index=True)
    alert_type = Column(String(50), nullable=False, index=True)
    severity = Column(String(20), nullable=False, default="medium")  # low | medium | high | critical
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="active", index=True)  # active | acknowledged | resolved | false_alarm
    motion_device_id = Column(Uuid, nullable=True, index=True)
    inactivity_session_id = Column(Uuid, nullable=True, index=True)
    notified_caregivers = Column(JSON, nullable=False, default=list)  # snapshot at creation
    notification_sent_at = Column(DateTime, nullable=True)
    requires_acknowledgment = Column(Boolean, nullable=False, default=True)
    escalation_countdown_minutes = Column(Integer, nullable=True)
    acknowledged_by = Column(Uuid, nullable=True)
    acknowledged_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True, index=True)
    resolved_by = Column(Uuid, nullable=True)
    resolution_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
