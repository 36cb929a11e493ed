"""Mapping of SwitchBot webhook payloads to normalized motion events"""
from datetime import datetime, timezone
from typing import Optional

from app.motion_events.schemas import (
    DetectionState,
    IngestMotionEventRequest,
    SwitchBotWebhookPayload,
)

MOTION_SENSOR_DEVICE_TYPE = "WoPresence"


class InvalidSwitchBotPayload(ValueError):
    """Raised when a motion sensor report is missing required fields"""


def to_motion_event(payload: SwitchBotWebhookPayload) -> Optional[IngestMotionEventRequest]:
    """
    Convert a SwitchBot change report into a normalized event.

    Returns None for devices other than motion sensors (SwitchBot reports
    every device on the account to the same webhook).
    """
    context = payload.context
    if context.deviceType != MOTION_SENSOR_DEVICE_TYPE:
        return None

    if context.detectionState not in (DetectionState.DETECTED.value, DetectionState.NOT_DETECTED.value):
        raise InvalidSwitchBotPayload(f"Invalid detectionState: {context.detectionState}")
    if context.timeOfSample is None:
        raise InvalidSwitchBotPayload("Missing timeOfSample")

    return IngestMotionEventRequest(
        external_id=context.deviceMac,
        detection_state=DetectionState(context.detectionState),
        sensor_timestamp=datetime.fromtimestamp(context.timeOfSample / 1000, tz=timezone.utc),
        raw_payload=payload.model_dump(),
    )
