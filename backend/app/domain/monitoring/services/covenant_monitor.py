"""
Covenant monitoring driver.

Runs the evaluator over due covenants (or every covenant), persists each new
status before any notification goes out, and keeps going when a single
covenant cannot be evaluated.

Auditability:
- every evaluation writes an audit event (actor ``system`` for scheduled runs)
Idempotency:
- re-running with unchanged data yields the same statuses and no second
  breach notification (``breach_notified``)
"""

from __future__ import annotations

import datetime as dt
import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Literal

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db.audit import write_audit_event
from app.core.middleware.audit import get_logger
from app.domain.facilities.enums import CovenantStatus
from app.domain.facilities.models import Covenant, Facility
from app.domain.monitoring.evaluator import evaluate, next_check_date
from app.domain.monitoring.sources import Manual, resolve, source_for
from app.domain.notifications.services.fanout import notify_transition
from app.shared.exceptions import CovenantEvaluationError, NotFound
from app.shared.utils import sa_model_to_dict, utcnow

logger = get_logger(__name__)

RunMode = Literal["due", "all"]

SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class CovenantCheckResult:
    covenant_id: uuid.UUID
    facility_id: uuid.UUID
    previous_status: CovenantStatus
    new_status: CovenantStatus
    current_value: float
    threshold_value: float
    breach_detected: bool
    notifications_sent: int = 0

    @property
    def is_urgent(self) -> bool:
        return self.breach_detected or (
            self.previous_status is CovenantStatus.COMPLIANT and self.new_status is CovenantStatus.WARNING
        )


@dataclass(frozen=True)
class CovenantCheckFailure:
    covenant_id: uuid.UUID
    error: str


@dataclass(frozen=True)
class BatchRunReport:
    mode: str
    checked_count: int
    results: list[CovenantCheckResult] = field(default_factory=list)
    failures: list[CovenantCheckFailure] = field(default_factory=list)

    @property
    def total_checked(self) -> int:
        return self.checked_count

    @property
    def breaches_detected(self) -> int:
        return sum(1 for r in self.results if r.breach_detected)


def _record_evaluation(
    db: Session,
    covenant: Covenant,
    facility: Facility,
    value: float,
    *,
    now: dt.datetime,
    actor_id: str,
    request_id: str | None,
    reschedule: bool = True,
) -> CovenantCheckResult:
    band = covenant.warning_band_pct if covenant.warning_band_pct is not None else settings.covenant_warning_band_pct
    evaluation = evaluate(covenant.threshold_operator, covenant.threshold_value, value, band)
    if evaluation is None:
        raise CovenantEvaluationError(f"Covenant {covenant.id} has no current value")

    previous_status = covenant.status
    # A breach counts once per episode, matching the fan-out.
    breach_detected = evaluation.breached and not covenant.breach_notified

    before = sa_model_to_dict(covenant)
    covenant.current_value = value
    covenant.status = evaluation.status
    if reschedule:
        covenant.last_checked = now
        covenant.next_check_date = next_check_date(covenant.check_frequency, now)
    covenant.updated_by = actor_id
    if evaluation.status is CovenantStatus.COMPLIANT:
        # Episode over: a later breach notifies again.
        covenant.breach_notified = False
    db.flush()

    write_audit_event(
        db,
        actor_id=actor_id,
        request_id=request_id,
        action="covenant.evaluated" if reschedule else "covenant.rederived",
        entity_type="covenant",
        entity_id=covenant.id,
        before=before,
        after=sa_model_to_dict(covenant),
    )
    # Status must be durable before anyone is told about it.
    db.commit()

    sent = 0
    try:
        sent = len(notify_transition(db, covenant=covenant, facility=facility, previous_status=previous_status))
    except Exception as exc:
        # Status stays committed; breach_notified is still False so the next run retries.
        db.rollback()
        logger.error("covenant_monitor.notify.failed", covenant_id=str(covenant.id), error=str(exc))

    logger.info(
        "covenant_monitor.check.done",
        covenant_id=str(covenant.id),
        previous_status=previous_status.value,
        new_status=evaluation.status.value,
        current_value=value,
    )
    return CovenantCheckResult(
        covenant_id=covenant.id,
        facility_id=facility.id,
        previous_status=previous_status,
        new_status=evaluation.status,
        current_value=value,
        threshold_value=covenant.threshold_value,
        breach_detected=breach_detected,
        notifications_sent=sent,
    )


def _check_with_source(
    db: Session,
    covenant_id: uuid.UUID,
    *,
    now: dt.datetime,
    actor_id: str,
    request_id: str | None,
) -> CovenantCheckResult:
    covenant = db.get(Covenant, covenant_id)
    if covenant is None:
        raise CovenantEvaluationError(f"Covenant {covenant_id} disappeared during the run")
    facility = covenant.facility
    if facility is None:
        raise CovenantEvaluationError(f"Facility {covenant.facility_id} not found")

    value = resolve(source_for(covenant), facility)
    if value is None:
        raise CovenantEvaluationError(f"Covenant {covenant.id} has no current value source")
    return _record_evaluation(db, covenant, facility, value, now=now, actor_id=actor_id, request_id=request_id)


def _run(
    db: Session,
    covenant_ids: list[uuid.UUID],
    *,
    mode: str,
    now: dt.datetime,
    actor_id: str,
    request_id: str | None,
) -> BatchRunReport:
    results: list[CovenantCheckResult] = []
    failures: list[CovenantCheckFailure] = []

    for covenant_id in covenant_ids:
        try:
            results.append(_check_with_source(db, covenant_id, now=now, actor_id=actor_id, request_id=request_id))
        except Exception as exc:
            # One bad covenant never aborts the batch; its previous status is kept.
            db.rollback()
            failures.append(CovenantCheckFailure(covenant_id=covenant_id, error=str(exc)))
            logger.warning("covenant_monitor.check.failed", covenant_id=str(covenant_id), error=str(exc))

    report = BatchRunReport(mode=mode, checked_count=len(results), results=results, failures=failures)
    logger.info(
        "covenant_monitor.run.done",
        mode=mode,
        total_checked=report.total_checked,
        breaches_detected=report.breaches_detected,
        failed=len(failures),
    )
    return report


def select_covenant_ids(db: Session, *, now: dt.datetime, mode: RunMode = "due") -> list[uuid.UUID]:
    stmt = select(Covenant.id).order_by(Covenant.next_check_date.asc(), Covenant.id.asc())
    if mode == "due":
        # Never-scheduled covenants count as due.
        stmt = stmt.where(or_(Covenant.next_check_date.is_(None), Covenant.next_check_date <= now))
    elif mode != "all":
        raise ValueError(f"Unknown run mode: {mode!r}")
    return list(db.execute(stmt).scalars().all())


def run_covenant_checks(
    db: Session,
    *,
    now: dt.datetime | None = None,
    mode: RunMode = "due",
    actor_id: str = SYSTEM_ACTOR,
    request_id: str | None = "scheduler",
) -> BatchRunReport:
    now = now or utcnow()
    ids = select_covenant_ids(db, now=now, mode=mode)
    logger.info("covenant_monitor.run.start", mode=mode, due=len(ids))
    return _run(db, ids, mode=mode, now=now, actor_id=actor_id, request_id=request_id)


def run_urgent_checks(
    db: Session,
    *,
    now: dt.datetime | None = None,
    actor_id: str = SYSTEM_ACTOR,
    request_id: str | None = "scheduler",
) -> BatchRunReport:
    """Same sweep as the daily run, reported only for new breaches and compliant->warning moves."""
    report = run_covenant_checks(db, now=now, mode="due", actor_id=actor_id, request_id=request_id)
    urgent = [r for r in report.results if r.is_urgent]
    if urgent:
        logger.warning("covenant_monitor.urgent", count=len(urgent))
    return replace(report, mode="urgent", results=urgent)


def check_covenant(
    db: Session,
    covenant_id: uuid.UUID,
    current_value: float,
    *,
    actor_id: str,
    now: dt.datetime | None = None,
) -> CovenantCheckResult:
    """Manual, out-of-schedule check with an operator-supplied value."""
    covenant = db.get(Covenant, covenant_id)
    if covenant is None:
        raise NotFound("Covenant not found")
    facility = covenant.facility
    if facility is None:
        raise NotFound("Facility not found")
    value = resolve(Manual(value=current_value), facility)
    return _record_evaluation(db, covenant, facility, value, now=now or utcnow(), actor_id=actor_id, request_id=None)


def check_facility_covenants(
    db: Session,
    facility_id: uuid.UUID,
    *,
    actor_id: str,
    now: dt.datetime | None = None,
) -> BatchRunReport:
    ids = list(
        db.execute(select(Covenant.id).where(Covenant.facility_id == facility_id).order_by(Covenant.id.asc()))
        .scalars()
        .all()
    )
    return _run(db, ids, mode="facility", now=now or utcnow(), actor_id=actor_id, request_id=None)


def reevaluate_covenant(db: Session, covenant: Covenant, *, actor_id: str) -> CovenantCheckResult | None:
    """
    Re-derive status after a covenant is created or edited.

    The value comes from the covenant's measurement source, falling back to
    the stored value when the source has nothing. This is not a scheduled
    check: ``last_checked`` and ``next_check_date`` are left as they are.
    No-op when no finite value is available.
    """
    facility = covenant.facility
    value = resolve(source_for(covenant), facility)
    if value is None:
        value = covenant.current_value
    if value is None or not math.isfinite(value):
        return None
    return _record_evaluation(
        db, covenant, facility, value, now=utcnow(), actor_id=actor_id, request_id=None, reschedule=False
    )


@dataclass(frozen=True)
class BreachSummary:
    total: int
    compliant: int
    warning: int
    breach: int
    breaches: list[Covenant]


def covenant_breach_summary(db: Session, facility_id: uuid.UUID) -> BreachSummary:
    covenants = list(db.execute(select(Covenant).where(Covenant.facility_id == facility_id)).scalars().all())
    return BreachSummary(
        total=len(covenants),
        compliant=sum(1 for c in covenants if c.status is CovenantStatus.COMPLIANT),
        warning=sum(1 for c in covenants if c.status is CovenantStatus.WARNING),
        breach=sum(1 for c in covenants if c.status is CovenantStatus.BREACH),
        breaches=[c for c in covenants if c.status is CovenantStatus.BREACH],
    )
