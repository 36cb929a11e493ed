from uuid import UUID
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CheckInResponseRequest(BaseModel):
    """Patient reply relayed by a messaging channel adapter"""
    patient_id: UUID
    response_text: Optional[str] = Field(None, max_length=2000)


class CheckInResponseResult(BaseModel):
    """Outcome of recording a patient reply"""
    session_id: UUID
    alert_id: Optional[UUID] = None
    message: str


class DismissSessionRequest(BaseModel):
    """Request to close a session by hand"""
    false_alarm: bool = False
    notes: Optional[str] = None


class SweepResult(BaseModel):
    """Counts from one threshold sweep"""
    alerts_created: int
    check_ins_sent: int
    escalations_sent: int
    checked_at: datetime


class InactivitySessionResponse(BaseModel):
    """Inactivity session response"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    device_id: UUID
    patient_id: UUID
    started_at: datetime
    threshold_seconds: int
    escalation_minutes: int
    alert_created_at: Optional[datetime] = None
    check_in_sent_at: Optional[datetime] = None
    check_in_response_at: Optional[datetime] = None
    escalation_sent_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    status: str  # monitoring | check_in_sent | escalated | resolved | false_alarm
    resolution_method: Optional[str] = None
    related_alert_id: Optional[UUID] = None


class InactivitySessionListResponse(BaseModel):
    """List of inactivity sessions"""
    sessions: List[InactivitySessionResponse]
    count: int
