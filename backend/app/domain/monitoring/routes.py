from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.db.session import get_db
from app.core.middleware.audit import get_request_id
from app.core.security.auth import Actor
from app.core.security.dependencies import (
    ensure_facility_access,
    get_actor,
    require_facility_access,
    require_roles,
)
from app.domain.facilities import service as facilities_service
from app.domain.facilities.models import Facility
from app.domain.monitoring.schemas import (
    BatchRunOut,
    BreachSummaryOut,
    CovenantCheckRequest,
    CovenantCheckResultOut,
    JobRunOut,
)
from app.domain.monitoring.services import covenant_monitor
from app.shared.exceptions import NotAuthorized, NotFound

router = APIRouter(tags=["monitoring"])


@router.post("/covenants/{covenant_id}/check", response_model=CovenantCheckResultOut)
def check_covenant(
    covenant_id: uuid.UUID,
    payload: CovenantCheckRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
) -> CovenantCheckResultOut:
    covenant = facilities_service.get_covenant(db, covenant_id)
    ensure_facility_access(covenant.facility, actor, "check covenants for")
    # Supplying a measured value is an operator action, even for the owning GP.
    if not actor.is_staff:
        raise NotAuthorized("Insufficient role", reason="role")
    result = covenant_monitor.check_covenant(db, covenant.id, payload.current_value, actor_id=actor.actor_id)
    return CovenantCheckResultOut.model_validate(result)


@router.post("/facilities/{facility_id}/covenants/check", response_model=BatchRunOut)
def check_facility_covenants(
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("check covenants for")),
    actor: Actor = Depends(get_actor),
) -> BatchRunOut:
    report = covenant_monitor.check_facility_covenants(db, facility.id, actor_id=actor.actor_id)
    return BatchRunOut.model_validate(report)


@router.get("/facilities/{facility_id}/breach-summary", response_model=BreachSummaryOut)
def breach_summary(
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("view covenants for")),
) -> BreachSummaryOut:
    return BreachSummaryOut.model_validate(covenant_monitor.covenant_breach_summary(db, facility.id))


@router.post("/monitoring/covenants/run", response_model=BatchRunOut)
def run_covenant_checks(
    mode: Literal["due", "all"] = Query("due"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles()),
) -> BatchRunOut:
    report = covenant_monitor.run_covenant_checks(
        db, mode=mode, actor_id=actor.actor_id, request_id=get_request_id()
    )
    return BatchRunOut.model_validate(report)


@router.post("/monitoring/jobs/{name}/run", response_model=JobRunOut, status_code=202)
def run_job(
    name: str,
    request: Request,
    _actor: Actor = Depends(require_roles()),
) -> JobRunOut:
    scheduler = request.app.state.scheduler
    if name not in scheduler.job_ids:
        raise NotFound(f"Unknown job: {name}")
    scheduler.run_now(name)
    return JobRunOut(job=name)
