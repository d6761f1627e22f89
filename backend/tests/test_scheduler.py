from __future__ import annotations

import datetime as dt
import threading

import pytest
from sqlalchemy import select

from app.core.config import Settings
from app.core.db.models import User, UserSession
from app.core.scheduler import JOBS, Scheduler
from app.core.security.sessions import cleanup_expired_sessions
from app.domain.facilities.enums import CovenantStatus
from app.domain.facilities.models import Covenant
from app.shared.utils import utcnow


@pytest.fixture()
def scheduler(session_factory):
    s = Scheduler(session_factory, Settings(scheduler_timezone="UTC"))
    yield s
    s.stop()


def test_jobs_registered_on_start(scheduler):
    scheduler.start()
    try:
        assert scheduler.running
        assert sorted(scheduler.job_ids) == ["covenant_sweep", "session_cleanup", "urgent_sweep"]
        job = scheduler._scheduler.get_job("urgent_sweep")
        assert job.max_instances == 1
        assert job.coalesce is True
    finally:
        scheduler.stop()
    assert not scheduler.running


def test_independent_instances(session_factory):
    a = Scheduler(session_factory)
    b = Scheduler(session_factory)
    a.start()
    try:
        assert a.running
        assert not b.running
    finally:
        a.stop()


def test_run_now_covenant_sweep(scheduler, db_session, users, make_facility, make_covenant):
    covenant = make_covenant(make_facility(ltv_ratio=16.2))

    stats = scheduler.run_now("covenant_sweep").result(timeout=10)

    assert stats == {"total_checked": 1, "breaches_detected": 1, "failed": 0}
    db_session.expire_all()
    stored = db_session.execute(select(Covenant).where(Covenant.id == covenant.id)).scalar_one()
    assert stored.status is CovenantStatus.BREACH


def test_run_now_unknown_job(scheduler):
    with pytest.raises(KeyError):
        scheduler.run_now("nope")


def test_job_failure_is_contained(scheduler, monkeypatch):
    def _boom(session_factory):
        raise RuntimeError("db unavailable")

    monkeypatch.setitem(JOBS, "session_cleanup", _boom)
    assert scheduler.run_now("session_cleanup").result(timeout=10) is None

    monkeypatch.undo()
    assert scheduler.run_now("session_cleanup").result(timeout=10) == {"removed": 0}


def test_same_job_does_not_overlap(scheduler, monkeypatch):
    started = threading.Event()
    release = threading.Event()

    def _slow(session_factory):
        started.set()
        release.wait(timeout=10)
        return {"ok": True}

    monkeypatch.setitem(JOBS, "urgent_sweep", _slow)
    first = scheduler.run_now("urgent_sweep")
    assert started.wait(timeout=10)
    second = scheduler.run_now("urgent_sweep")
    assert second.result(timeout=10) is None
    release.set()
    assert first.result(timeout=10) == {"ok": True}


def test_cleanup_expired_sessions(db_session, users):
    now = utcnow()
    user = users["gp1"]
    db_session.add_all(
        [
            UserSession(user_id=user.id, token_hash="old", expires_at=now - dt.timedelta(hours=1)),
            UserSession(user_id=user.id, token_hash="fresh", expires_at=now + dt.timedelta(hours=1)),
        ]
    )
    db_session.commit()

    assert cleanup_expired_sessions(db_session, now=now) == 1
    remaining = db_session.execute(select(UserSession.token_hash)).scalars().all()
    assert remaining == ["fresh"]
    assert db_session.get(User, user.id) is not None
