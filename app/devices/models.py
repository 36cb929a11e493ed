from uuid import uuid4
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid

from app.db.base import Base
from app.utils.timezone import utcnow

DEFAULT_SENSITIVITY_SECONDS = 30
DEFAULT_ESCALATION_MINUTES = 10


class Device(Base):
    """Ambient motion sensor registered to a patient"""
    __tablename__ = "devices"

    id = Column(Uuid, primary_key=True, default=uuid4)
    patient_id = Column(Uuid, nullable=False, index=True)
    external_id = Column(String(100), unique=True, nullable=False, index=True)  # sensor MAC / provider id
    name = Column(String(255), nullable=False)
    device_type = Column(String(50), nullable=False, default="WoPresence")
    location = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    sensitivity_seconds = Column(Integer, nullable=False, default=DEFAULT_SENSITIVITY_SECONDS)  # 10-300
    escalation_minutes = Column(Integer, nullable=False, default=DEFAULT_ESCALATION_MINUTES)  # 5-60
    last_event_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
