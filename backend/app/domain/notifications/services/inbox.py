from __future__ import annotations

import uuid

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.security.auth import Actor
from app.domain.notifications.models import Notification
from app.shared.exceptions import NotFound


def list_notifications(
    db: Session,
    *,
    actor: Actor,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Notification]:
    if actor.user_uuid is None:
        return []
    stmt = select(Notification).where(Notification.user_id == actor.user_uuid)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit)
    return list(db.execute(stmt).scalars().all())


def _owned(db: Session, notification_id: uuid.UUID, actor: Actor) -> Notification:
    notification = db.get(Notification, notification_id)
    # Someone else's notification is indistinguishable from a missing one.
    if notification is None or notification.user_id != actor.user_uuid:
        raise NotFound("Notification not found")
    return notification


def mark_read(db: Session, notification_id: uuid.UUID, *, actor: Actor) -> Notification:
    notification = _owned(db, notification_id, actor)
    if not notification.is_read:
        notification.is_read = True
        notification.updated_by = actor.actor_id
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, *, actor: Actor) -> int:
    if actor.user_uuid is None:
        return 0
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == actor.user_uuid, Notification.is_read.is_(False))
        .values(is_read=True, updated_by=actor.actor_id)
    )
    db.commit()
    return result.rowcount or 0


def delete_notification(db: Session, notification_id: uuid.UUID, *, actor: Actor) -> None:
    notification = _owned(db, notification_id, actor)
    db.delete(notification)
    db.commit()
