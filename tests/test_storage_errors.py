import pytest
from httpx import AsyncClient
from datetime import datetime, timedelta
from sqlalchemy import Update
from sqlalchemy.exc import OperationalError

from app.db.exceptions import TransientStorageException
from app.db.repository import BaseRepository
from app.inactivity.repository import InactivitySessionRepository
from app.motion_events.schemas import DetectionState
from app.motion_events.service import EventIngestor

T0 = datetime(2026, 1, 5, 8, 0, 0)


def database_locked():
    return OperationalError("UPDATE", {}, Exception("database is locked"))


def fail_updates(monkeypatch, db_session, times=None):
    """Make guarded UPDATEs fail as if the database were locked"""
    real_execute = db_session.execute
    failures = []

    async def execute(stmt, *args, **kwargs):
        if isinstance(stmt, Update) and (times is None or len(failures) < times):
            failures.append(stmt)
            raise database_locked()
        return await real_execute(stmt, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", execute)
    return failures


@pytest.mark.asyncio
async def test_commit_maps_operational_error(db_session, monkeypatch):
    async def locked_commit():
        raise database_locked()

    monkeypatch.setattr(db_session, "commit", locked_commit)

    with pytest.raises(TransientStorageException) as exc:
        await BaseRepository(db_session).commit("alert insert")
    assert exc.value.status_code == 503
    assert "alert insert" in exc.value.detail


@pytest.mark.asyncio
async def test_sweep_skips_session_on_storage_error_and_retries_next_sweep(
    db_session, device_factory, evaluator, notifier, monkeypatch
):
    device = await device_factory(sensitivity_seconds=30)
    result = await EventIngestor(db_session).ingest(device.external_id, DetectionState.NOT_DETECTED, now=T0)
    session_id = result["session_id"]
    failures = fail_updates(monkeypatch, db_session, times=1)

    first = await evaluator.run_sweep(now=T0 + timedelta(seconds=31))

    assert len(failures) == 1
    assert first["check_ins_sent"] == 0
    assert notifier.calls == []
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.status == "monitoring"
    assert session.alert_created_at is None

    second = await evaluator.run_sweep(now=T0 + timedelta(seconds=40))

    assert second["check_ins_sent"] == 1
    assert len(notifier.calls) == 1
    session = await InactivitySessionRepository(db_session).get_by_id(session_id)
    assert session.status == "check_in_sent"


@pytest.mark.asyncio
async def test_ingest_endpoint_returns_503_on_storage_error(
    client: AsyncClient, authorized, auth_headers, db_session, device_factory, monkeypatch
):
    device = await device_factory()
    external_id = device.external_id
    fail_updates(monkeypatch, db_session)

    response = await client.post(
        "/motion-events/",
        json={"external_id": external_id, "detection_state": "NOT_DETECTED"},
        headers=auth_headers,
    )

    assert response.status_code == 503
    assert "retry" in response.json()["detail"]
