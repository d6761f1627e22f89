from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.db.audit import write_audit_event
from app.core.security.access import is_staff_role
from app.core.security.auth import Actor
from app.domain.facilities.models import CashFlow, Covenant, Facility
from app.domain.facilities.schemas.cash_flows import CashFlowCreate, CashFlowUpdate
from app.domain.facilities.schemas.covenants import CovenantCreate, CovenantUpdate
from app.domain.facilities.schemas.facilities import FacilityCreate, FacilityUpdate
from app.domain.monitoring.sources import default_source_for
from app.shared.enums import Role
from app.shared.exceptions import NotAuthorized, NotFound
from app.shared.utils import sa_model_to_dict, utcnow


def list_facilities(db: Session, *, actor: Actor, limit: int, offset: int) -> list[Facility]:
    stmt = select(Facility).order_by(Facility.created_at.asc(), Facility.id.asc())
    if not is_staff_role(actor.role):
        if actor.role != Role.GP.value:
            raise NotAuthorized("Insufficient role", reason="role")
        # GPs only ever see facilities assigned to them.
        if actor.user_uuid is None:
            return []
        stmt = stmt.where(Facility.gp_user_id == actor.user_uuid)
    return list(db.execute(stmt.offset(offset).limit(limit)).scalars().all())


def create_facility(db: Session, *, actor: Actor, data: FacilityCreate) -> Facility:
    facility = Facility(
        **data.model_dump(),
        created_by=actor.actor_id,
        updated_by=actor.actor_id,
    )
    db.add(facility)
    db.flush()

    write_audit_event(
        db,
        actor_id=actor.actor_id,
        actor_roles=[actor.role],
        action="facility.create",
        entity_type="facility",
        entity_id=facility.id,
        before=None,
        after=sa_model_to_dict(facility),
    )
    db.commit()
    db.refresh(facility)
    return facility


def update_facility(db: Session, *, facility: Facility, actor: Actor, data: FacilityUpdate) -> Facility:
    before = sa_model_to_dict(facility)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(facility, key, value)
    facility.updated_by = actor.actor_id
    db.flush()

    write_audit_event(
        db,
        actor_id=actor.actor_id,
        actor_roles=[actor.role],
        action="facility.update",
        entity_type="facility",
        entity_id=facility.id,
        before=before,
        after=sa_model_to_dict(facility),
    )
    db.commit()
    db.refresh(facility)
    return facility


def list_covenants(db: Session, *, facility_id: uuid.UUID) -> list[Covenant]:
    stmt = select(Covenant).where(Covenant.facility_id == facility_id).order_by(Covenant.created_at.asc())
    return list(db.execute(stmt).scalars().all())


def get_covenant(db: Session, covenant_id: uuid.UUID, *, facility_id: uuid.UUID | None = None) -> Covenant:
    covenant = db.get(Covenant, covenant_id)
    if covenant is None or (facility_id is not None and covenant.facility_id != facility_id):
        raise NotFound("Covenant not found")
    return covenant


def create_covenant(db: Session, *, facility: Facility, actor: Actor, data: CovenantCreate) -> Covenant:
    covenant = Covenant(
        facility_id=facility.id,
        covenant_type=data.covenant_type,
        threshold_operator=data.threshold_operator,
        threshold_value=data.threshold_value,
        warning_band_pct=data.warning_band_pct,
        measurement_source=data.measurement_source or default_source_for(data.covenant_type),
        current_value=data.current_value,
        check_frequency=data.check_frequency,
        # New covenants are due on the next sweep unless told otherwise.
        next_check_date=data.next_check_date or utcnow(),
        created_by=actor.actor_id,
        updated_by=actor.actor_id,
    )
    db.add(covenant)
    db.flush()

    write_audit_event(
        db,
        actor_id=actor.actor_id,
        actor_roles=[actor.role],
        action="covenant.create",
        entity_type="covenant",
        entity_id=covenant.id,
        before=None,
        after=sa_model_to_dict(covenant),
    )
    db.commit()
    db.refresh(covenant)
    return covenant


def update_covenant(db: Session, *, covenant: Covenant, actor: Actor, data: CovenantUpdate) -> Covenant:
    before = sa_model_to_dict(covenant)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(covenant, key, value)
    covenant.updated_by = actor.actor_id
    db.flush()

    write_audit_event(
        db,
        actor_id=actor.actor_id,
        actor_roles=[actor.role],
        action="covenant.update",
        entity_type="covenant",
        entity_id=covenant.id,
        before=before,
        after=sa_model_to_dict(covenant),
    )
    db.commit()
    db.refresh(covenant)
    return covenant


def list_cash_flows(db: Session, *, facility_id: uuid.UUID) -> list[CashFlow]:
    stmt = select(CashFlow).where(CashFlow.facility_id == facility_id).order_by(CashFlow.due_date.asc())
    return list(db.execute(stmt).scalars().all())


def create_cash_flow(db: Session, *, facility: Facility, actor: Actor, data: CashFlowCreate) -> CashFlow:
    cash_flow = CashFlow(
        facility_id=facility.id,
        **data.model_dump(),
        created_by=actor.actor_id,
        updated_by=actor.actor_id,
    )
    db.add(cash_flow)
    db.flush()

    write_audit_event(
        db,
        actor_id=actor.actor_id,
        actor_roles=[actor.role],
        action="cash_flow.create",
        entity_type="cash_flow",
        entity_id=cash_flow.id,
        before=None,
        after=sa_model_to_dict(cash_flow),
    )
    db.commit()
    db.refresh(cash_flow)
    return cash_flow


def update_cash_flow(
    db: Session, *, facility: Facility, cash_flow_id: uuid.UUID, actor: Actor, data: CashFlowUpdate
) -> CashFlow:
    cash_flow = db.get(CashFlow, cash_flow_id)
    if cash_flow is None or cash_flow.facility_id != facility.id:
        raise NotFound("Cash flow not found")

    before = sa_model_to_dict(cash_flow)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(cash_flow, key, value)
    cash_flow.updated_by = actor.actor_id
    db.flush()

    write_audit_event(
        db,
        actor_id=actor.actor_id,
        actor_roles=[actor.role],
        action="cash_flow.update",
        entity_type="cash_flow",
        entity_id=cash_flow.id,
        before=before,
        after=sa_model_to_dict(cash_flow),
    )
    db.commit()
    db.refresh(cash_flow)
    return cash_flow
