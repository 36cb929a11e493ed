from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.alerts.schemas import AlertListResponse, AlertResponse
from app.alerts.service import AlertService
from app.auth.middleware import JWTPayload, check_permission, verify_token
from app.db.postgres import get_db

router = APIRouter(
    prefix="/alerts",
    tags=["alerts"],
)


@router.get("/", response_model=AlertListResponse)
async def list_alerts(
    patient_id: UUID = Query(...),
    active_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    List a patient's alerts, newest first.

    Required permission: alert:read (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "alert:read")

    service = AlertService(db)
    alerts = await service.list_for_patient(patient_id, active_only=active_only, limit=limit)

    return AlertListResponse(
        alerts=[AlertResponse.model_validate(alert) for alert in alerts],
        count=len(alerts),
    )


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(
    alert_id: UUID,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Get alert details.

    Required permission: alert:read (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "alert:read")

    service = AlertService(db)
    alert = await service.get_alert(alert_id)
    return AlertResponse.model_validate(alert)


@router.put("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(
    alert_id: UUID,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Acknowledge an active alert.

    Required permission: alert:update (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "alert:update")

    service = AlertService(db)
    alert = await service.acknowledge(alert_id, caregiver_id=jwt_payload.user_id)
    return AlertResponse.model_validate(alert)
