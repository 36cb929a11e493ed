from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class RegisterDeviceRequest(BaseModel):
    """Request to register a motion sensor for a patient"""
    patient_id: UUID
    external_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    location: str | None = None
    sensitivity_seconds: int = Field(30, description="Inactivity threshold in seconds (10-300)")
    escalation_minutes: int = Field(10, description="Minutes without check-in response before escalating (5-60)")


class UpdateThresholdsRequest(BaseModel):
    """Request to change a device's thresholds (applies to sessions opened afterwards)"""
    sensitivity_seconds: int | None = None
    escalation_minutes: int | None = None


class DeviceResponse(BaseModel):
    """Device response"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_id: UUID
    external_id: str
    name: str
    device_type: str
    location: str | None = None
    is_active: bool
    sensitivity_seconds: int
    escalation_minutes: int
    last_event_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class DeviceListResponse(BaseModel):
    """Devices registered to a patient"""
    devices: list[DeviceResponse]
    count: int
