from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from app.domain.notifications.enums import NotificationPriority, NotificationType
from app.domain.notifications.models import Notification


def _note(db_session, user, title="Covenant Warning", is_read=False) -> Notification:
    note = Notification(
        user_id=user.id,
        type=NotificationType.COVENANT_WARNING,
        title=title,
        message="Warning: ltv_ratio covenant is approaching breach threshold.",
        priority=NotificationPriority.HIGH,
        is_read=is_read,
    )
    db_session.add(note)
    db_session.commit()
    return note


def test_list_only_own(client: TestClient, db_session, users, headers_for):
    mine = _note(db_session, users["gp1"])
    _note(db_session, users["gp2"])

    r = client.get("/notifications", headers=headers_for(users["gp1"]))
    assert r.status_code == 200
    assert [n["id"] for n in r.json()] == [str(mine.id)]


def test_mark_read_and_unread_filter(client: TestClient, db_session, users, headers_for):
    first = _note(db_session, users["ops"], "one")
    _note(db_session, users["ops"], "two")
    ops = headers_for(users["ops"])

    r = client.patch(f"/notifications/{first.id}/read", headers=ops)
    assert r.status_code == 200
    assert r.json()["is_read"] is True

    r = client.get("/notifications?unread_only=true", headers=ops)
    assert [n["title"] for n in r.json()] == ["two"]


def test_mark_all_read_only_touches_own(client: TestClient, db_session, users, headers_for):
    _note(db_session, users["ops"])
    _note(db_session, users["ops"])
    _note(db_session, users["ops"], is_read=True)
    other = _note(db_session, users["admin"])

    r = client.post("/notifications/mark-all-read", headers=headers_for(users["ops"]))
    assert r.status_code == 200
    assert r.json() == {"updated": 2}

    db_session.refresh(other)
    assert other.is_read is False


def test_cannot_touch_someone_elses_notification(client: TestClient, db_session, users, headers_for):
    theirs = _note(db_session, users["gp2"])
    gp1 = headers_for(users["gp1"])

    assert client.patch(f"/notifications/{theirs.id}/read", headers=gp1).status_code == 404
    assert client.delete(f"/notifications/{theirs.id}", headers=gp1).status_code == 404
    assert client.delete(f"/notifications/{uuid.uuid4()}", headers=gp1).status_code == 404


def test_delete(client: TestClient, db_session, users, headers_for):
    note = _note(db_session, users["gp1"])
    gp1 = headers_for(users["gp1"])

    assert client.delete(f"/api/notifications/{note.id}", headers=gp1).status_code == 204
    assert client.get("/notifications", headers=gp1).json() == []
