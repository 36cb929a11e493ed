from uuid import uuid4
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Uuid

from app.db.base import Base
from app.utils.timezone import utcnow


class InactivitySession(Base):
    """
    One continuous inactivity episode for a device.

    Thresholds are copied from the device when the session opens so later
    config edits never alter an in-flight session. At most one row per device
    may have resolved_at NULL; the partial unique index below enforces it.
    """
    __tablename__ = "inactivity_sessions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    device_id = Column(Uuid, ForeignKey("devices.id"), nullable=False, index=True)
    patient_id = Column(Uuid, nullable=False, index=True)
    started_at = Column(DateTime, nullable=False)
    threshold_seconds = Column(Integer, nullable=False)
    escalation_minutes = Column(Integer, nullable=False)
    alert_created_at = Column(DateTime, nullable=True)
    check_in_sent_at = Column(DateTime, nullable=True)
    check_in_response_at = Column(DateTime, nullable=True)
    escalation_sent_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default="monitoring", index=True)
    resolution_method = Column(String(30), nullable=True)
    related_alert_id = Column(Uuid, nullable=True)
    resolved_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index(
            "uq_inactivity_sessions_open_device",
            "device_id",
            unique=True,
            postgresql_where=resolved_at.is_(None),
            sqlite_where=resolved_at.is_(None),
        ),
    )
