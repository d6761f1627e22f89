from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.core.db.session import get_db
from app.core.security.auth import Actor
from app.core.security.dependencies import get_actor
from app.domain.notifications.schemas import MarkAllReadOut, NotificationOut
from app.domain.notifications.services import inbox

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=10_000),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> list[NotificationOut]:
    return inbox.list_notifications(db, actor=actor, unread_only=unread_only, limit=limit, offset=offset)


@router.post("/mark-all-read", response_model=MarkAllReadOut)
def mark_all_read(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> MarkAllReadOut:
    return MarkAllReadOut(updated=inbox.mark_all_read(db, actor=actor))


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> NotificationOut:
    return inbox.mark_read(db, notification_id, actor=actor)


@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> Response:
    inbox.delete_notification(db, notification_id, actor=actor)
    return Response(status_code=204)
