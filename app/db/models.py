from sqlalchemy import Boolean, Column, DateTime, String, Uuid

from app.db.base import Base
from app.utils.timezone import utcnow
from app.devices.models import Device
from app.motion_events.models import MotionEvent
from app.inactivity.models import InactivitySession
from app.alerts.models import Alert


class CareRelationship(Base):
    """
    Caregiver/patient links - owned by another service.
    Defined here for read-only queries (alert fan-out).
    """
    __tablename__ = "care_relationships"
    __table_args__ = {'extend_existing': True}

    id = Column(Uuid, primary_key=True)
    patient_id = Column(Uuid, nullable=False, index=True)
    caregiver_id = Column(Uuid, nullable=False, index=True)
    relationship_type = Column(String(50), nullable=True)
    can_receive_alerts = Column(Boolean, nullable=False, default=True)
    status = Column(String(20), nullable=False, default="active")  # active | inactive | pending
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class Patient(Base):
    """
    Patients table - owned by another service.
    Defined here for read-only queries (naming the patient in escalations).
    """
    __tablename__ = "patients"
    __table_args__ = {'extend_existing': True}

    id = Column(Uuid, primary_key=True)
    full_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)


__all__ = [
    "Base",
    "Device",
    "MotionEvent",
    "InactivitySession",
    "Alert",
    "CareRelationship",
    "Patient",
]
