"""
Ownership-based access policy for facility-scoped operations.

Every facility endpoint goes through :func:`authorize`; role-only checks for
portfolio-wide endpoints go through :func:`is_staff_role`. Keeping both here
avoids per-endpoint drift in who may do what.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from app.shared.enums import STAFF_ROLES, Role

REASON_NOT_FOUND = "not_found"
REASON_UNASSIGNED = "unassigned"
REASON_WRONG_OWNER = "wrong_owner"
REASON_ROLE = "role"


@dataclass(frozen=True)
class AccessDecision:
    allow: bool
    status_code: int
    message: str
    reason: str | None = None
    error: str | None = None


def _parse_role(actor_role: Any) -> Role | None:
    try:
        return Role(actor_role)
    except ValueError:
        return None


def is_staff_role(actor_role: Any) -> bool:
    return _parse_role(actor_role) in STAFF_ROLES


def authorize(
    resource_owner_ref: uuid.UUID | str | None,
    actor_id: str,
    actor_role: Any,
    action: str = "access",
    *,
    resource_exists: bool = True,
) -> AccessDecision:
    """Decide whether ``actor_id`` acting as ``actor_role`` may ``action`` a facility.

    Existence is checked before ownership so a missing facility is always a 404,
    whatever the role. Unknown roles are denied.
    """
    if not resource_exists:
        return AccessDecision(
            allow=False,
            status_code=404,
            message="Facility not found",
            reason=REASON_NOT_FOUND,
            error="Facility not found",
        )

    role = _parse_role(actor_role)
    if role in STAFF_ROLES:
        return AccessDecision(allow=True, status_code=200, message="ok")

    if role is Role.GP:
        if resource_owner_ref is None or str(resource_owner_ref) == "":
            return AccessDecision(
                allow=False,
                status_code=403,
                message=(
                    f"This facility must be assigned to a GP user before you can {action}. "
                    "Please contact operations."
                ),
                reason=REASON_UNASSIGNED,
                error="Forbidden: Facility ownership not assigned",
            )
        if str(resource_owner_ref) != str(actor_id):
            return AccessDecision(
                allow=False,
                status_code=403,
                message=f"You can only {action} your own facilities",
                reason=REASON_WRONG_OWNER,
                error="Forbidden: You do not have access to this facility",
            )
        return AccessDecision(allow=True, status_code=200, message="ok")

    return AccessDecision(
        allow=False,
        status_code=403,
        message="Your role is not permitted to perform this action",
        reason=REASON_ROLE,
        error="Forbidden: Insufficient role",
    )
