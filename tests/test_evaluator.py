import threading
import pytest
from httpx import AsyncClient
from datetime import datetime, timedelta

from app.alerts.dispatcher import ESCALATION_ALERT_TYPE, INACTIVITY_ALERT_TYPE
from app.alerts.notifier import MessageKind
from app.alerts.permissions import CareRelationshipPermissionOracle
from app.alerts.repository import AlertRepository
from app.devices.service import DeviceRegistry
from app.inactivity.evaluator import SessionSnapshot, ThresholdEvaluator
from app.inactivity.repository import InactivitySessionRepository
from app.motion_events.schemas import DetectionState
from app.motion_events.service import EventIngestor
from app.utils.timezone import utcnow

T0 = datetime(2026, 1, 5, 8, 0, 0)


async def open_session(db_session, device, now=T0):
    result = await EventIngestor(db_session).ingest(device.external_id, DetectionState.NOT_DETECTED, now=now)
    return result["session_id"]


@pytest.mark.asyncio
async def test_no_alert_before_threshold(db_session, device_factory, evaluator, notifier):
    device = await device_factory(sensitivity_seconds=30)
    session_id = await open_session(db_session, device)

    result = await evaluator.run_sweep(now=T0 + timedelta(seconds=29))

    assert result["alerts_created"] == 0
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.status == "monitoring"
    assert session.alert_created_at is None
    assert notifier.calls == []


@pytest.mark.asyncio
async def test_check_in_after_threshold(db_session, device_factory, caregiver_factory, evaluator, notifier):
    device = await device_factory(sensitivity_seconds=30, escalation_minutes=10, location="Bedroom")
    caregiver_id = await caregiver_factory(device.patient_id)
    session_id = await open_session(db_session, device)
    now = T0 + timedelta(seconds=31)

    result = await evaluator.run_sweep(now=now)

    assert result["alerts_created"] == 1
    assert result["check_ins_sent"] == 1
    assert result["escalations_sent"] == 0
    assert result["checked_at"] == now

    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.status == "check_in_sent"
    assert session.alert_created_at == now
    assert session.check_in_sent_at == now

    alerts = await AlertRepository(db_session).get_by_session(session_id)
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.id == session.related_alert_id
    assert alert.alert_type == INACTIVITY_ALERT_TYPE
    assert alert.severity == "medium"
    assert alert.title == "Motion Inactivity Detected"
    assert alert.description == "No motion detected in Bedroom for 30 seconds. Initiating check-in protocol."
    assert alert.escalation_countdown_minutes == 10
    assert alert.notified_caregivers == [str(caregiver_id)]
    assert alert.notification_sent_at == now

    assert notifier.calls == [(alert.id, [caregiver_id], MessageKind.CHECK_IN)]


@pytest.mark.asyncio
async def test_repeated_sweeps_create_one_check_in(db_session, device_factory, evaluator, notifier):
    device = await device_factory()
    session_id = await open_session(db_session, device)

    for offset in (31, 32, 45, 60):
        await evaluator.run_sweep(now=T0 + timedelta(seconds=offset))

    alerts = await AlertRepository(db_session).get_by_session(session_id)
    assert len(alerts) == 1
    assert notifier.kinds() == [MessageKind.CHECK_IN]


@pytest.mark.asyncio
async def test_no_escalation_before_window(db_session, device_factory, evaluator, notifier):
    device = await device_factory(sensitivity_seconds=30, escalation_minutes=10)
    session_id = await open_session(db_session, device)
    check_in_at = T0 + timedelta(seconds=31)
    await evaluator.run_sweep(now=check_in_at)

    result = await evaluator.run_sweep(now=check_in_at + timedelta(minutes=9))

    assert result["escalations_sent"] == 0
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.status == "check_in_sent"
    assert session.escalation_sent_at is None


@pytest.mark.asyncio
async def test_escalation_fires_exactly_once(
    db_session, device_factory, caregiver_factory, patient_factory, evaluator, notifier
):
    patient_id = await patient_factory("Maria Jansen")
    device = await device_factory(patient_id=patient_id, sensitivity_seconds=30, escalation_minutes=10)
    caregiver_id = await caregiver_factory(patient_id)
    session_id = await open_session(db_session, device)
    check_in_at = T0 + timedelta(seconds=31)
    await evaluator.run_sweep(now=check_in_at)

    escalated = 0
    for _ in range(5):
        result = await evaluator.run_sweep(now=check_in_at + timedelta(minutes=11))
        escalated += result["escalations_sent"]

    assert escalated == 1
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.status == "escalated"
    assert session.escalation_sent_at == check_in_at + timedelta(minutes=11)
    assert session.resolved_at is None

    alerts = await AlertRepository(db_session).get_by_session(session_id)
    assert [a.alert_type for a in alerts] == [INACTIVITY_ALERT_TYPE, ESCALATION_ALERT_TYPE]
    escalation = alerts[1]
    assert escalation.severity == "critical"
    assert escalation.title == "URGENT: No Response to Fall Detection Check-In"
    assert escalation.description.startswith("Maria Jansen has not responded to check-in after 10 minutes")
    assert escalation.notified_caregivers == [str(caregiver_id)]
    assert notifier.kinds() == [MessageKind.CHECK_IN, MessageKind.ESCALATION]


@pytest.mark.asyncio
async def test_escalation_uses_generic_name_without_patient_record(db_session, device_factory, evaluator):
    device = await device_factory(sensitivity_seconds=30, escalation_minutes=5)
    session_id = await open_session(db_session, device)
    await evaluator.run_sweep(now=T0 + timedelta(seconds=31))
    await evaluator.run_sweep(now=T0 + timedelta(minutes=6))

    alerts = await AlertRepository(db_session).get_by_session(session_id)
    assert alerts[-1].description.startswith("Patient has not responded")


@pytest.mark.asyncio
async def test_threshold_and_escalation_not_taken_in_same_sweep(db_session, device_factory, evaluator):
    device = await device_factory(sensitivity_seconds=30, escalation_minutes=5)
    session_id = await open_session(db_session, device)

    # A late first sweep only raises the check-in; escalation waits for the window after it
    result = await evaluator.run_sweep(now=T0 + timedelta(hours=1))

    assert result["check_ins_sent"] == 1
    assert result["escalations_sent"] == 0
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.status == "check_in_sent"


@pytest.mark.asyncio
async def test_stale_snapshot_does_not_fire_twice(db_session, device_factory, evaluator, notifier):
    device = await device_factory()
    await open_session(db_session, device)
    rows = await InactivitySessionRepository(db_session).list_open_on_active_devices()
    snapshot = SessionSnapshot.from_rows(*rows[0])
    now = T0 + timedelta(seconds=31)

    first = await evaluator._send_check_in(snapshot, now)
    second = await evaluator._send_check_in(snapshot, now)

    assert first is not None
    assert second is None
    alerts = await AlertRepository(db_session).get_by_session(snapshot.id)
    assert len(alerts) == 1
    assert len(notifier.calls) == 1


@pytest.mark.asyncio
async def test_sweep_after_motion_does_nothing(db_session, device_factory, evaluator, notifier):
    device = await device_factory()
    await open_session(db_session, device)
    await EventIngestor(db_session).ingest(device.external_id, DetectionState.DETECTED, now=T0 + timedelta(seconds=10))

    result = await evaluator.run_sweep(now=T0 + timedelta(minutes=30))

    assert result["alerts_created"] == 0
    assert notifier.calls == []


@pytest.mark.asyncio
async def test_deactivated_device_skipped_but_session_kept(db_session, device_factory, evaluator, notifier):
    device = await device_factory()
    session_id = await open_session(db_session, device)
    await DeviceRegistry(db_session).deactivate(device.id)

    result = await evaluator.run_sweep(now=T0 + timedelta(minutes=5))

    assert result["alerts_created"] == 0
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.resolved_at is None
    assert session.status == "monitoring"


@pytest.mark.asyncio
async def test_delivery_failure_keeps_alert(db_session, device_factory, failing_notifier):
    device = await device_factory()
    session_id = await open_session(db_session, device)
    evaluator = ThresholdEvaluator(db_session, CareRelationshipPermissionOracle(db_session), failing_notifier)

    result = await evaluator.run_sweep(now=T0 + timedelta(seconds=31))

    assert result["alerts_created"] == 1
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.status == "check_in_sent"
    alerts = await AlertRepository(db_session).get_by_session(session_id)
    assert len(alerts) == 1
    assert alerts[0].status == "active"
    assert alerts[0].notification_sent_at is None


@pytest.mark.asyncio
async def test_thresholds_frozen_at_session_start(db_session, device_factory, evaluator):
    device = await device_factory(sensitivity_seconds=30, escalation_minutes=10)
    session_id = await open_session(db_session, device)
    await DeviceRegistry(db_session).update_thresholds(device.id, sensitivity_seconds=300, escalation_minutes=60)

    result = await evaluator.run_sweep(now=T0 + timedelta(seconds=31))

    assert result["check_ins_sent"] == 1
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.threshold_seconds == 30
    assert session.escalation_minutes == 10


@pytest.mark.asyncio
async def test_caregivers_without_alert_permission_not_notified(
    db_session, device_factory, caregiver_factory, evaluator, notifier
):
    device = await device_factory()
    allowed = await caregiver_factory(device.patient_id)
    await caregiver_factory(device.patient_id, can_receive_alerts=False)
    await caregiver_factory(device.patient_id, status="inactive")
    await open_session(db_session, device)

    await evaluator.run_sweep(now=T0 + timedelta(seconds=31))

    _, caregiver_ids, _ = notifier.calls[0]
    assert caregiver_ids == [allowed]


@pytest.mark.asyncio
async def test_sweep_endpoint(client: AsyncClient, authorized, auth_headers, device_factory, db_session):
    device = await device_factory()
    await open_session(db_session, device, now=utcnow() - timedelta(minutes=1))

    response = await client.post("/inactivity/sweep", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["alerts_created"] == 1
    assert data["check_ins_sent"] == 1
    assert data["escalations_sent"] == 0
    assert "checked_at" in data


class ThreadRecordingNotifier:
    """Notifier that records which thread performed the hand-off"""

    def __init__(self):
        self.threads = []

    def notify(self, alert_id, caregiver_ids, message_kind):
        self.threads.append(threading.get_ident())


@pytest.mark.asyncio
async def test_delivery_runs_off_the_event_loop(db_session, device_factory):
    device = await device_factory()
    session_id = await open_session(db_session, device)
    notifier = ThreadRecordingNotifier()
    evaluator = ThresholdEvaluator(db_session, CareRelationshipPermissionOracle(db_session), notifier)

    await evaluator.run_sweep(now=T0 + timedelta(seconds=31))

    assert len(notifier.threads) == 1
    assert notifier.threads[0] != threading.get_ident()
    alerts = await AlertRepository(db_session).get_by_session(session_id)
    assert alerts[0].notification_sent_at is not None
