from uuid import UUID
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.alerts.notifier import Notifier, get_notifier
from app.alerts.permissions import PermissionOracle, get_permission_oracle
from app.auth.middleware import JWTPayload, check_permission, verify_token
from app.db.postgres import get_db
from app.inactivity.evaluator import ThresholdEvaluator
from app.inactivity.exceptions import UnauthorizedPatientResponseException
from app.inactivity.responses import ResponseRecorder
from app.inactivity.schemas import (
    CheckInResponseRequest,
    CheckInResponseResult,
    DismissSessionRequest,
    InactivitySessionListResponse,
    InactivitySessionResponse,
    SweepResult,
)
from app.inactivity.service import InactivitySessionService

router = APIRouter(
    prefix="/inactivity",
    tags=["inactivity"],
)

# Roles allowed to relay replies on behalf of any patient
RELAY_ROLES = {"INTEGRATOR", "ADMIN"}


def validate_responder(jwt_payload: JWTPayload, patient_id: UUID) -> None:
    """Patients may only answer their own check-ins"""
    if RELAY_ROLES.intersection(jwt_payload.roles):
        return
    if patient_id != jwt_payload.user_id:
        raise UnauthorizedPatientResponseException()


@router.post("/sweep", response_model=SweepResult)
async def run_sweep(
    db: AsyncSession = Depends(get_db),
    permission_oracle: PermissionOracle = Depends(get_permission_oracle),
    notifier: Notifier = Depends(get_notifier),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Run one threshold sweep. Safe to call redundantly or late.

    Required permission: inactivity:sweep (SCHEDULER, ADMIN roles)
    """
    check_permission(jwt_payload, "inactivity:sweep")

    evaluator = ThresholdEvaluator(db, permission_oracle, notifier)
    result = await evaluator.run_sweep()
    return SweepResult(**result)


@router.post("/check-in-response", response_model=CheckInResponseResult)
async def record_check_in_response(
    request: CheckInResponseRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Record a patient's reply to a check-in.

    Returns 404 when no check-in is awaiting a reply (for example a
    caregiver already closed it).

    Patients may only answer their own check-ins; INTEGRATOR and ADMIN
    may relay a reply for any patient.

    Required permission: check-in:respond (INTEGRATOR, PATIENT, ADMIN roles)
    """
    check_permission(jwt_payload, "check-in:respond")
    validate_responder(jwt_payload, request.patient_id)

    recorder = ResponseRecorder(db)
    result = await recorder.record_response(
        patient_id=request.patient_id,
        response_text=request.response_text,
    )
    return CheckInResponseResult(**result)


@router.get("/sessions", response_model=InactivitySessionListResponse)
async def list_sessions(
    device_id: Optional[UUID] = Query(None),
    patient_id: Optional[UUID] = Query(None),
    open_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    List inactivity sessions, newest first.

    Required permission: inactivity:read (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "inactivity:read")

    service = InactivitySessionService(db)
    sessions = await service.list_sessions(
        device_id=device_id,
        patient_id=patient_id,
        open_only=open_only,
        limit=limit,
    )
    return InactivitySessionListResponse(
        sessions=[InactivitySessionResponse.model_validate(session) for session in sessions],
        count=len(sessions),
    )


@router.get("/sessions/{session_id}", response_model=InactivitySessionResponse)
async def get_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Get inactivity session details.

    Required permission: inactivity:read (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "inactivity:read")

    service = InactivitySessionService(db)
    session = await service.get_session(session_id)
    return InactivitySessionResponse.model_validate(session)


@router.put("/sessions/{session_id}/dismiss", response_model=InactivitySessionResponse)
async def dismiss_session(
    session_id: UUID,
    request: DismissSessionRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Close an open session by hand (caregiver or admin).

    Required permission: inactivity:dismiss (CAREGIVER, ADMIN roles)
    """
    check_permission(jwt_payload, "inactivity:dismiss")

    service = InactivitySessionService(db)
    session = await service.dismiss(
        session_id,
        dismissed_by=jwt_payload.user_id,
        as_admin="ADMIN" in jwt_payload.roles,
        false_alarm=request.false_alarm,
        notes=request.notes,
    )
    return InactivitySessionResponse.model_validate(session)
