from uuid import UUID
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class AlertResponse(BaseModel):
    """Alert response"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_id: UUID
    alert_type: str
    severity: str  # low | medium | high | critical
    title: Optional[str] = None
    description: Optional[str] = None
    status: str  # active | acknowledged | resolved | false_alarm
    motion_device_id: Optional[UUID] = None
    inactivity_session_id: Optional[UUID] = None
    notified_caregivers: List[UUID] = []
    notification_sent_at: Optional[datetime] = None
    acknowledged_by: Optional[UUID] = None
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    created_at: datetime


class AlertListResponse(BaseModel):
    """Alerts for a patient"""
    alerts: List[AlertResponse]
    count: int
