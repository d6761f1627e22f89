from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.db.session import get_db
from app.core.security.auth import Actor
from app.core.security.dependencies import get_actor, require_facility_access, require_roles
from app.domain.facilities import service
from app.domain.facilities.models import Facility
from app.domain.facilities.schemas.cash_flows import CashFlowCreate, CashFlowOut, CashFlowUpdate
from app.domain.facilities.schemas.common import Page
from app.domain.facilities.schemas.covenants import CovenantCreate, CovenantOut, CovenantUpdate
from app.domain.facilities.schemas.facilities import FacilityCreate, FacilityOut, FacilityUpdate
from app.domain.monitoring.services.covenant_monitor import reevaluate_covenant

router = APIRouter(prefix="/facilities", tags=["facilities"])


def _limit(limit: int = Query(50, ge=1, le=200)) -> int:
    return limit


def _offset(offset: int = Query(0, ge=0, le=10_000)) -> int:
    return offset


@router.get("", response_model=Page[FacilityOut])
def list_facilities(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
    limit: int = Depends(_limit),
    offset: int = Depends(_offset),
) -> Page[FacilityOut]:
    items = service.list_facilities(db, actor=actor, limit=limit, offset=offset)
    return Page(items=items, limit=limit, offset=offset)


@router.post("", response_model=FacilityOut, status_code=201)
def create_facility(
    payload: FacilityCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles()),
) -> FacilityOut:
    return service.create_facility(db, actor=actor, data=payload)


@router.get("/{facility_id}", response_model=FacilityOut)
def get_facility(facility: Facility = Depends(require_facility_access("view"))) -> FacilityOut:
    return facility


@router.patch("/{facility_id}", response_model=FacilityOut)
def update_facility(
    payload: FacilityUpdate,
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("update")),
    actor: Actor = Depends(require_roles()),
) -> FacilityOut:
    return service.update_facility(db, facility=facility, actor=actor, data=payload)


@router.get("/{facility_id}/covenants", response_model=list[CovenantOut])
def list_covenants(
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("view covenants for")),
) -> list[CovenantOut]:
    return service.list_covenants(db, facility_id=facility.id)


@router.post("/{facility_id}/covenants", response_model=CovenantOut, status_code=201)
def create_covenant(
    payload: CovenantCreate,
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("add covenants to")),
    actor: Actor = Depends(require_roles()),
) -> CovenantOut:
    covenant = service.create_covenant(db, facility=facility, actor=actor, data=payload)
    if reevaluate_covenant(db, covenant, actor_id=actor.actor_id) is not None:
        db.refresh(covenant)
    return covenant


@router.get("/{facility_id}/covenants/{covenant_id}", response_model=CovenantOut)
def get_covenant(
    covenant_id: uuid.UUID,
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("view covenants for")),
) -> CovenantOut:
    return service.get_covenant(db, covenant_id, facility_id=facility.id)


@router.patch("/{facility_id}/covenants/{covenant_id}", response_model=CovenantOut)
def update_covenant(
    covenant_id: uuid.UUID,
    payload: CovenantUpdate,
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("update covenants for")),
    actor: Actor = Depends(require_roles()),
) -> CovenantOut:
    covenant = service.get_covenant(db, covenant_id, facility_id=facility.id)
    covenant = service.update_covenant(db, covenant=covenant, actor=actor, data=payload)
    # A threshold edit must not leave a stale status behind.
    reevaluate_covenant(db, covenant, actor_id=actor.actor_id)
    db.refresh(covenant)
    return covenant


@router.get("/{facility_id}/cash-flows", response_model=list[CashFlowOut])
def list_cash_flows(
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("view cash flows for")),
) -> list[CashFlowOut]:
    return service.list_cash_flows(db, facility_id=facility.id)


@router.post("/{facility_id}/cash-flows", response_model=CashFlowOut, status_code=201)
def create_cash_flow(
    payload: CashFlowCreate,
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("add cash flows to")),
    actor: Actor = Depends(require_roles()),
) -> CashFlowOut:
    return service.create_cash_flow(db, facility=facility, actor=actor, data=payload)


@router.patch("/{facility_id}/cash-flows/{cash_flow_id}", response_model=CashFlowOut)
def update_cash_flow(
    cash_flow_id: uuid.UUID,
    payload: CashFlowUpdate,
    db: Session = Depends(get_db),
    facility: Facility = Depends(require_facility_access("update cash flows for")),
    actor: Actor = Depends(require_roles()),
) -> CashFlowOut:
    return service.update_cash_flow(db, facility=facility, cash_flow_id=cash_flow_id, actor=actor, data=payload)
