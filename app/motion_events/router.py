import logging
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import JWTPayload, check_permission, verify_token
from app.db.postgres import get_db
from app.motion_events.schemas import (
    IngestMotionEventRequest,
    IngestResult,
    MotionEventListResponse,
    MotionEventResponse,
    SwitchBotWebhookPayload,
)
from app.motion_events.service import EventIngestor
from app.motion_events.switchbot import InvalidSwitchBotPayload, to_motion_event

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/motion-events",
    tags=["motion-events"],
)


@router.post("/", response_model=IngestResult)
async def ingest_motion_event(
    request: IngestMotionEventRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Ingest a normalized presence-change event.

    Workflow:
    1. Validates the device exists and is active
    2. Stores the event in the audit log
    3. Opens, keeps or resolves the device's inactivity session

    Required permission: motion-event:create (INTEGRATOR, ADMIN roles)
    """
    check_permission(jwt_payload, "motion-event:create")

    ingestor = EventIngestor(db)
    result = await ingestor.ingest(
        external_id=request.external_id,
        detection_state=request.detection_state,
        sensor_timestamp=request.sensor_timestamp,
        raw_payload=request.raw_payload,
    )
    return IngestResult(**result)


@router.post("/switchbot")
async def ingest_switchbot_event(
    payload: SwitchBotWebhookPayload,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Ingest a SwitchBot webhook report. Reports from non-motion devices are ignored.

    Required permission: motion-event:create (INTEGRATOR, ADMIN roles)
    """
    check_permission(jwt_payload, "motion-event:create")

    try:
        event = to_motion_event(payload)
    except InvalidSwitchBotPayload as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if event is None:
        logger.info(f"Ignoring non-motion sensor event from {payload.context.deviceType} ({payload.context.deviceMac})")
        return {"success": True, "message": "Event ignored (not a motion sensor)"}

    ingestor = EventIngestor(db)
    result = await ingestor.ingest(
        external_id=event.external_id,
        detection_state=event.detection_state,
        sensor_timestamp=event.sensor_timestamp,
        raw_payload=event.raw_payload,
    )
    return {"success": True, "message": "Motion event processed", "data": IngestResult(**result)}


@router.get("/", response_model=MotionEventListResponse)
async def list_motion_events(
    device_id: UUID = Query(...),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Recent audit events for a device.

    Required permission: motion-event:read (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "motion-event:read")

    ingestor = EventIngestor(db)
    events = await ingestor.list_events(device_id, limit=limit)
    return MotionEventListResponse(
        events=[MotionEventResponse.model_validate(event) for event in events],
        count=len(events),
    )
