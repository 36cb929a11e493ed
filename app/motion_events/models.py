from uuid import uuid4
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Uuid

from app.db.base import Base
from app.utils.timezone import utcnow


class MotionEvent(Base):
    """
    Append-only audit record of every presence change received.
    Only the processed flag is ever updated.
    """
    __tablename__ = "motion_events"

    id = Column(Uuid, primary_key=True, default=uuid4)
    device_id = Column(Uuid, ForeignKey("devices.id"), nullable=False, index=True)
    patient_id = Column(Uuid, nullable=False, index=True)
    external_id = Column(String(100), nullable=False)
    event_type = Column(String(50), nullable=False, default="changeReport")
    detection_state = Column(String(20), nullable=False, index=True)  # DETECTED | NOT_DETECTED
    sensor_timestamp = Column(DateTime, nullable=True)
    recorded_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    raw_payload = Column(JSON, nullable=True)
    processed = Column(Boolean, nullable=False, default=False)
