from __future__ import annotations

import datetime as dt
from collections.abc import Sequence
from typing import Any

from app.domain.facilities.enums import CashFlowStatus, FacilityStatus
from app.domain.facilities.models import CashFlow, Facility
from app.shared.utils import as_utc, pct

_REALIZED = (CashFlowStatus.PAID, CashFlowStatus.PARTIAL)


def _realized_split(cash_flow: CashFlow) -> tuple[float, float]:
    """Split a paid amount into (interest, principal); interest is settled first."""
    paid = cash_flow.paid_amount or 0.0
    interest = min(paid, cash_flow.interest_due or 0.0)
    return interest, paid - interest


def _holding_years(facilities: Sequence[Facility], today: dt.date) -> float:
    starts = [as_utc(f.created_at).date() for f in facilities if f.created_at is not None]
    if not starts:
        return 1.0
    return max((today - min(starts)).days / 365.0, 1.0)


def portfolio_roi(
    facilities: Sequence[Facility],
    cash_flows: Sequence[CashFlow],
    *,
    today: dt.date,
) -> dict[str, Any]:
    invested = [f for f in facilities if f.status is not FacilityStatus.PENDING]
    invested_ids = {f.id for f in invested}
    interest = principal = 0.0
    for cash_flow in cash_flows:
        if cash_flow.status not in _REALIZED or cash_flow.facility_id not in invested_ids:
            continue
        i, p = _realized_split(cash_flow)
        interest += i
        principal += p

    total_invested = sum(f.principal_amount or 0.0 for f in invested)
    roi = pct(interest, total_invested)
    return {
        "total_invested": total_invested,
        "total_interest_earned": interest,
        "total_principal_repaid": principal,
        "roi": roi,
        "annualized_roi": roi / _holding_years(invested, today),
    }


def default_metrics(facilities: Sequence[Facility], cash_flows: Sequence[CashFlow]) -> dict[str, Any]:
    defaulted = [f for f in facilities if f.status is FacilityStatus.DEFAULTED]
    defaulted_ids = {f.id for f in defaulted}
    defaulted_amount = sum(f.outstanding_balance or 0.0 for f in defaulted)
    recovered = sum(
        c.paid_amount or 0.0 for c in cash_flows if c.facility_id in defaulted_ids and c.status in _REALIZED
    )
    return {
        "total_facilities": len(facilities),
        "defaulted_facilities": len(defaulted),
        "default_rate": pct(len(defaulted), len(facilities)),
        "total_defaulted_amount": defaulted_amount,
        "total_recovered_amount": recovered,
        "recovery_rate": pct(recovered, defaulted_amount),
        "net_loss": max(defaulted_amount - recovered, 0.0),
    }


def performance_by_status(facilities: Sequence[Facility]) -> dict[str, dict[str, Any]]:
    out: dict[str, dict[str, Any]] = {}
    for status in FacilityStatus:
        members = [f for f in facilities if f.status is status]
        out[status.value] = {
            "count": len(members),
            "total_principal": sum(f.principal_amount or 0.0 for f in members),
            "total_outstanding": sum(f.outstanding_balance or 0.0 for f in members),
            "percentage": pct(len(members), len(facilities)),
        }
    return out


def performance_metrics(
    facilities: Sequence[Facility],
    cash_flows: Sequence[CashFlow],
    *,
    today: dt.date,
) -> dict[str, Any]:
    return {
        "portfolio_roi": portfolio_roi(facilities, cash_flows, today=today),
        "default_metrics": default_metrics(facilities, cash_flows),
        "performance_by_status": performance_by_status(facilities),
    }
