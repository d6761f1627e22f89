from __future__ import annotations

from enum import Enum


class NotificationType(str, Enum):
    COVENANT_BREACH = "covenant_breach"
    COVENANT_WARNING = "covenant_warning"
    COVENANT_STATUS_CHANGE = "covenant_status_change"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
