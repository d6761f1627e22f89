from __future__ import annotations

import datetime as dt
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from app.core.config import Settings
from app.domain.analytics.enums import RiskLevel
from app.domain.analytics.services.concentration import top_n_concentration
from app.domain.analytics.services.snapshot import PortfolioSnapshot
from app.domain.facilities.enums import CashFlowStatus, CovenantStatus, FacilityStatus
from app.domain.facilities.models import CashFlow, Covenant, Facility
from app.shared.utils import pct


@dataclass(frozen=True)
class RiskWeights:
    """Points each input contributes at a ratio of 1.0. Defaults are the dashboard calibration."""

    breach: float = 50.0
    overdue_count: float = 30.0
    overdue_amount: float = 20.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RiskWeights":
        return cls(
            breach=settings.risk_weight_breach,
            overdue_count=settings.risk_weight_overdue_count,
            overdue_amount=settings.risk_weight_overdue_amount,
        )


def _ratio(part: float, whole: float) -> float:
    if not whole or whole <= 0:
        return 0.0
    return min(max(part / whole, 0.0), 1.0)


def risk_score(
    breach_ratio: float,
    overdue_count_ratio: float,
    overdue_amount_ratio: float,
    weights: RiskWeights = RiskWeights(),
) -> float:
    """Weighted 0-100 score; each ratio is clamped to [0, 1] before weighting."""
    score = (
        min(max(breach_ratio, 0.0), 1.0) * weights.breach
        + min(max(overdue_count_ratio, 0.0), 1.0) * weights.overdue_count
        + min(max(overdue_amount_ratio, 0.0), 1.0) * weights.overdue_amount
    )
    return min(max(score, 0.0), 100.0)


def classify_risk(score: float) -> RiskLevel:
    if score < 20:
        return RiskLevel.LOW
    if score < 40:
        return RiskLevel.MEDIUM
    if score < 70:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def portfolio_overview(facilities: Sequence[Facility]) -> dict[str, Any]:
    active = [f for f in facilities if f.status is FacilityStatus.ACTIVE]
    ltvs = [f.ltv_ratio for f in active if f.ltv_ratio is not None]
    rates = [f.interest_rate for f in active if f.interest_rate is not None]
    return {
        "total_facilities": len(facilities),
        "active_facilities": len(active),
        "total_principal_amount": sum(f.principal_amount or 0.0 for f in active),
        "total_outstanding_balance": sum(f.outstanding_balance or 0.0 for f in active),
        "avg_ltv_ratio": sum(ltvs) / len(ltvs) if ltvs else 0.0,
        "avg_interest_rate": sum(rates) / len(rates) if rates else 0.0,
    }


def status_distribution(facilities: Sequence[Facility]) -> dict[str, int]:
    counts = Counter(f.status.value for f in facilities)
    return {status.value: counts.get(status.value, 0) for status in FacilityStatus}


def covenant_health(covenants: Sequence[Covenant]) -> dict[str, Any]:
    total = len(covenants)
    compliant = sum(1 for c in covenants if c.status is CovenantStatus.COMPLIANT)
    warning = sum(1 for c in covenants if c.status is CovenantStatus.WARNING)
    breach = sum(1 for c in covenants if c.status is CovenantStatus.BREACH)
    return {
        "total": total,
        "compliant": compliant,
        "warning": warning,
        "breach": breach,
        "compliant_percentage": pct(compliant, total),
        "warning_percentage": pct(warning, total),
        "breach_percentage": pct(breach, total),
    }


def _outstanding_due(cash_flow: CashFlow) -> float:
    return max((cash_flow.total_due or 0.0) - (cash_flow.paid_amount or 0.0), 0.0)


def payment_performance(cash_flows: Sequence[CashFlow]) -> dict[str, Any]:
    total = len(cash_flows)
    paid = [c for c in cash_flows if c.status is CashFlowStatus.PAID]
    overdue = [c for c in cash_flows if c.status is CashFlowStatus.OVERDUE]
    scheduled = [c for c in cash_flows if c.status is CashFlowStatus.SCHEDULED]
    partial = [c for c in cash_flows if c.status is CashFlowStatus.PARTIAL]
    return {
        "total_cash_flows": total,
        "paid_count": len(paid),
        "overdue_count": len(overdue),
        "scheduled_count": len(scheduled),
        "partial_count": len(partial),
        "paid_percentage": pct(len(paid), total),
        "overdue_percentage": pct(len(overdue), total),
        "scheduled_percentage": pct(len(scheduled), total),
        "total_paid": sum(c.paid_amount or 0.0 for c in paid),
        "total_overdue": sum(_outstanding_due(c) for c in overdue),
        "total_scheduled": sum(c.total_due or 0.0 for c in scheduled),
    }


def upcoming_maturities(facilities: Sequence[Facility], *, today: dt.date, window_days: int = 90) -> int:
    horizon = today + dt.timedelta(days=window_days)
    return sum(
        1
        for f in facilities
        if f.status is FacilityStatus.ACTIVE and f.maturity_date is not None and today <= f.maturity_date <= horizon
    )


def portfolio_summary(
    snapshot: PortfolioSnapshot,
    *,
    today: dt.date,
    weights: RiskWeights = RiskWeights(),
    top_n: int = 5,
    maturity_window_days: int = 90,
) -> dict[str, Any]:
    overview = portfolio_overview(snapshot.facilities)
    health = covenant_health(snapshot.covenants)
    payments = payment_performance(snapshot.cash_flows)

    score = risk_score(
        _ratio(health["breach"], health["total"]),
        _ratio(payments["overdue_count"], payments["total_cash_flows"]),
        _ratio(payments["total_overdue"], overview["total_outstanding_balance"]),
        weights,
    )
    ratio, top_exposure = top_n_concentration(
        [f.outstanding_balance or 0.0 for f in snapshot.active_facilities],
        top_n,
    )
    return {
        "overview": overview,
        "status_distribution": status_distribution(snapshot.facilities),
        "covenant_health": health,
        "payment_performance": payments,
        "risk_metrics": {
            "risk_score": round(score, 2),
            "risk_level": classify_risk(score),
            "upcoming_maturities": upcoming_maturities(
                snapshot.facilities, today=today, window_days=maturity_window_days
            ),
            "concentration_ratio": ratio,
            "top_n_exposure": top_exposure,
        },
    }
