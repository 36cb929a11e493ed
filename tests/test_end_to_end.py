import pytest
from datetime import datetime, timedelta

from app.alerts.notifier import MessageKind
from app.alerts.repository import AlertRepository
from app.inactivity.repository import InactivitySessionRepository
from app.motion_events.schemas import DetectionState, IngestAction
from app.motion_events.service import EventIngestor

T0 = datetime(2026, 1, 5, 8, 0, 0)


@pytest.mark.asyncio
async def test_unanswered_check_in_escalates_then_motion_resolves(
    db_session, device_factory, caregiver_factory, patient_factory, evaluator, notifier
):
    patient_id = await patient_factory("Henk Bakker")
    device = await device_factory(patient_id=patient_id, sensitivity_seconds=30, escalation_minutes=5, location="Living room")
    caregiver_id = await caregiver_factory(patient_id)
    ingestor = EventIngestor(db_session)
    sessions = InactivitySessionRepository(db_session)

    opened = await ingestor.ingest(device.external_id, DetectionState.NOT_DETECTED, now=T0)
    assert opened["action"] == IngestAction.MONITORING_STARTED
    session_id = opened["session_id"]

    first = await evaluator.run_sweep(now=T0 + timedelta(seconds=35))
    assert first["check_ins_sent"] == 1
    session = await sessions.get_by_id(session_id)
    assert session.status == "check_in_sent"
    assert notifier.calls[-1][2] == MessageKind.CHECK_IN

    second = await evaluator.run_sweep(now=T0 + timedelta(minutes=5, seconds=36))
    assert second["escalations_sent"] == 1
    session = await sessions.get_by_id(session_id)
    assert session.status == "escalated"
    alert_id, caregiver_ids, kind = notifier.calls[-1]
    assert kind == MessageKind.ESCALATION
    assert caregiver_ids == [caregiver_id]

    resolved = await ingestor.ingest(device.external_id, DetectionState.DETECTED, now=T0 + timedelta(minutes=6))
    assert resolved["inactivity_resolved"] is True

    session = await sessions.get_by_id(session_id)
    assert session.status == "resolved"
    assert session.resolution_method == "motion_resumed"

    alerts = await AlertRepository(db_session).get_by_session(session_id)
    assert [a.severity for a in alerts] == ["medium", "critical"]
    assert alerts[1].id == alert_id
    assert "Henk Bakker" in alerts[1].description
    assert "Living room" in alerts[1].description
    assert all(a.status == "resolved" for a in alerts)

    quiet = await evaluator.run_sweep(now=T0 + timedelta(minutes=30))
    assert quiet["alerts_created"] == 0
    assert len(notifier.calls) == 2
