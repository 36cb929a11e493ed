from enum import Enum
from uuid import UUID
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class DetectionState(str, Enum):
    """Presence state reported by a sensor"""
    DETECTED = "DETECTED"
    NOT_DETECTED = "NOT_DETECTED"


class IngestAction(str, Enum):
    """What ingesting an event did to the device's monitoring"""
    MOTION_DETECTED = "motion_detected"
    MONITORING_STARTED = "monitoring_started"
    MONITORING_ONGOING = "monitoring_ongoing"


class IngestMotionEventRequest(BaseModel):
    """Normalized presence-change event from the webhook receiver"""
    external_id: str = Field(..., min_length=1, max_length=100)
    detection_state: DetectionState
    sensor_timestamp: Optional[datetime] = None
    raw_payload: Optional[Dict[str, Any]] = None


class IngestResult(BaseModel):
    """Outcome of ingesting one event"""
    action: IngestAction
    event_id: UUID
    session_id: Optional[UUID] = None
    inactivity_resolved: bool = False


class MotionEventResponse(BaseModel):
    """Motion event audit record"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    device_id: UUID
    patient_id: UUID
    external_id: str
    detection_state: str
    sensor_timestamp: Optional[datetime] = None
    recorded_at: datetime
    processed: bool


class MotionEventListResponse(BaseModel):
    """Recent motion events for a device"""
    events: List[MotionEventResponse]
    count: int


class SwitchBotContext(BaseModel):
    """`context` block of a SwitchBot change report"""
    deviceType: str
    deviceMac: str
    detectionState: Optional[str] = None
    timeOfSample: Optional[int] = None  # epoch milliseconds


class SwitchBotWebhookPayload(BaseModel):
    """SwitchBot webhook body"""
    model_config = ConfigDict(extra="allow")

    eventType: str
    eventVersion: str
    context: SwitchBotContext
