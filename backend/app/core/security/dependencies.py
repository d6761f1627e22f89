from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable

from fastapi import Depends, HTTPException, Path, Request, status
from sqlalchemy.orm import Session

from app.core.db.session import get_db
from app.core.middleware.audit import set_actor
from app.core.security.access import authorize
from app.core.security.auth import Actor, actor_from_request
from app.domain.facilities.models.facilities import Facility
from app.shared.enums import STAFF_ROLES, Role
from app.shared.exceptions import NotAuthorized, NotFound


def get_actor(request: Request) -> Actor:
    try:
        actor = actor_from_request(request)
    except Exception:
        # Bad header JSON, bad token, inactive user: all look the same to the caller.
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    set_actor(actor.actor_id, [actor.role])
    return actor


def get_facility_id(facility_id: uuid.UUID = Path(...)) -> uuid.UUID:
    return facility_id


def require_roles(required: Iterable[Role] = STAFF_ROLES) -> Callable[[Actor], Actor]:
    required_values = {r.value for r in required}

    def _dep(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in required_values:
            raise NotAuthorized("Insufficient role", reason="role")
        return actor

    return _dep


def ensure_facility_access(facility: Facility | None, actor: Actor, action: str = "access") -> Facility:
    decision = authorize(
        facility.gp_user_id if facility is not None else None,
        actor.actor_id,
        actor.role,
        action,
        resource_exists=facility is not None,
    )
    if decision.allow:
        return facility
    if decision.status_code == status.HTTP_404_NOT_FOUND:
        raise NotFound(decision.message)
    raise NotAuthorized(decision.error or "Forbidden", reason=decision.reason or "role", message=decision.message)


def require_facility_access(action: str = "access") -> Callable[..., Facility]:
    """Resolve the facility in the path and run it through the ownership policy."""

    def _dep(
        facility_id: uuid.UUID = Depends(get_facility_id),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
    ) -> Facility:
        return ensure_facility_access(db.get(Facility, facility_id), actor, action)

    return _dep
