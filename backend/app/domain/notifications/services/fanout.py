from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.db.models import User
from app.core.middleware.audit import get_logger
from app.domain.facilities.enums import CovenantStatus
from app.domain.facilities.models import Covenant, Facility
from app.domain.notifications.enums import NotificationPriority, NotificationType
from app.domain.notifications.models import Notification
from app.shared.enums import STAFF_ROLES

logger = get_logger(__name__)


@dataclass(frozen=True)
class FanoutPlan:
    notification_type: NotificationType
    priority: NotificationPriority
    include_owner: bool


def plan_fanout(
    previous_status: CovenantStatus,
    new_status: CovenantStatus,
    *,
    breach_notified: bool,
) -> FanoutPlan | None:
    """
    Decide whether a status change is actionable and for whom.

    A breach fans out at most once per episode (until the covenant is
    compliant again), so a breach is only actionable while unnotified.
    """
    if new_status is CovenantStatus.BREACH:
        if breach_notified:
            return None
        return FanoutPlan(NotificationType.COVENANT_BREACH, NotificationPriority.URGENT, include_owner=True)

    if new_status is CovenantStatus.WARNING and previous_status is not CovenantStatus.WARNING:
        if previous_status is CovenantStatus.COMPLIANT:
            return FanoutPlan(NotificationType.COVENANT_WARNING, NotificationPriority.HIGH, include_owner=False)
        # breach -> warning: improving, informational only
        return FanoutPlan(NotificationType.COVENANT_STATUS_CHANGE, NotificationPriority.NORMAL, include_owner=False)

    return None


def staff_recipients(db: Session) -> list[uuid.UUID]:
    stmt = (
        select(User.id)
        .where(User.role.in_([r.value for r in STAFF_ROLES]), User.is_active.is_(True))
        .order_by(User.created_at.asc(), User.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def _render(plan: FanoutPlan, covenant: Covenant, facility: Facility, previous_status: CovenantStatus) -> tuple[str, str]:
    covenant_type = covenant.covenant_type.value
    values = f"Current value: {covenant.current_value}, Threshold: {covenant.threshold_value}."
    if plan.notification_type is NotificationType.COVENANT_BREACH:
        return (
            "Covenant Breach Detected",
            f"URGENT: {covenant_type} covenant has been breached for facility {facility.fund_name}. "
            f"{values} Immediate action required.",
        )
    if plan.notification_type is NotificationType.COVENANT_WARNING:
        return (
            "Covenant Warning",
            f"Warning: {covenant_type} covenant is approaching breach threshold for facility "
            f"{facility.fund_name}. {values}",
        )
    return (
        "Covenant Status Changed",
        f"{covenant_type} covenant for facility {facility.fund_name} moved from "
        f"{previous_status.value} to {covenant.status.value}. {values}",
    )


def notify_transition(
    db: Session,
    *,
    covenant: Covenant,
    facility: Facility,
    previous_status: CovenantStatus,
) -> list[Notification]:
    """
    Persist per-recipient notifications for a covenant whose new status is
    already committed. Sets ``breach_notified`` in the same commit as the
    breach notifications.
    """
    plan = plan_fanout(previous_status, covenant.status, breach_notified=covenant.breach_notified)
    if plan is None:
        return []

    recipients = staff_recipients(db)
    if plan.include_owner and facility.gp_user_id is not None and facility.gp_user_id not in recipients:
        recipients.append(facility.gp_user_id)

    title, message = _render(plan, covenant, facility, previous_status)
    created: list[Notification] = []
    for user_id in recipients:
        notification = Notification(
            user_id=user_id,
            type=plan.notification_type,
            title=title,
            message=message,
            related_entity_type="covenant",
            related_entity_id=str(covenant.id),
            action_url=f"/operations/covenant-monitoring?facilityId={facility.id}",
            priority=plan.priority,
            is_read=False,
            created_by="system",
            updated_by="system",
        )
        db.add(notification)
        created.append(notification)

    if plan.notification_type is NotificationType.COVENANT_BREACH:
        covenant.breach_notified = True

    db.commit()
    logger.info(
        "notifications.fanout",
        covenant_id=str(covenant.id),
        notification_type=plan.notification_type.value,
        recipients=len(created),
    )
    return created
