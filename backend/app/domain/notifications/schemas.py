from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, ConfigDict

from app.domain.notifications.enums import NotificationPriority, NotificationType


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    related_entity_type: str | None
    related_entity_id: str | None
    action_url: str | None
    priority: NotificationPriority
    is_read: bool
    created_at: dt.datetime


class MarkAllReadOut(BaseModel):
    updated: int
