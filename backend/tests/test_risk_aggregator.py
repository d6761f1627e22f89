from __future__ import annotations

import datetime as dt
import itertools
import uuid

import pytest

from app.domain.analytics.enums import RiskLevel
from app.domain.analytics.services.risk import (
    RiskWeights,
    classify_risk,
    portfolio_overview,
    portfolio_summary,
    risk_score,
)
from app.domain.analytics.services.snapshot import PortfolioSnapshot, load_snapshot
from app.domain.facilities.enums import CashFlowStatus, CovenantStatus, FacilityStatus
from app.domain.facilities.models import CashFlow, Covenant, Facility

TODAY = dt.date(2025, 6, 30)


def _facility(**kw) -> Facility:
    data = {
        "id": uuid.uuid4(),
        "fund_name": "Fund",
        "principal_amount": 10.0,
        "outstanding_balance": 10.0,
        "interest_rate": 8.0,
        "ltv_ratio": 10.0,
        "status": FacilityStatus.ACTIVE,
    }
    data.update(kw)
    return Facility(**data)


RATIOS = [-0.5, 0.0, 0.25, 0.5, 1.0, 1.5, 3.0]


@pytest.mark.parametrize("breach,count,amount", list(itertools.product(RATIOS, repeat=3)))
def test_risk_score_bounded(breach, count, amount):
    score = risk_score(breach, count, amount)
    assert 0.0 <= score <= 100.0


def test_risk_score_weights():
    assert risk_score(1.0, 0.0, 0.0) == pytest.approx(50.0)
    assert risk_score(0.0, 1.0, 0.0) == pytest.approx(30.0)
    assert risk_score(0.0, 0.0, 1.0) == pytest.approx(20.0)
    assert risk_score(0.5, 0.5, 0.5, RiskWeights(breach=60, overdue_count=20, overdue_amount=20)) == pytest.approx(50)


@pytest.mark.parametrize(
    "score,level",
    [
        (0, RiskLevel.LOW),
        (19.99, RiskLevel.LOW),
        (20, RiskLevel.MEDIUM),
        (39.99, RiskLevel.MEDIUM),
        (40, RiskLevel.HIGH),
        (69.99, RiskLevel.HIGH),
        (70, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
    ],
)
def test_classify_risk(score, level):
    assert classify_risk(score) is level


def test_overview_uses_active_facilities_only():
    facilities = [
        _facility(outstanding_balance=30.0, ltv_ratio=12.0, interest_rate=8.0),
        _facility(outstanding_balance=10.0, ltv_ratio=8.0, interest_rate=10.0),
        _facility(outstanding_balance=99.0, ltv_ratio=50.0, status=FacilityStatus.CLOSED),
    ]
    overview = portfolio_overview(facilities)
    assert overview["total_facilities"] == 3
    assert overview["active_facilities"] == 2
    assert overview["total_outstanding_balance"] == pytest.approx(40.0)
    assert overview["avg_ltv_ratio"] == pytest.approx(10.0)
    assert overview["avg_interest_rate"] == pytest.approx(9.0)


def test_empty_portfolio_is_low_risk():
    summary = portfolio_summary(PortfolioSnapshot(), today=TODAY)
    assert summary["risk_metrics"]["risk_score"] == 0
    assert summary["risk_metrics"]["risk_level"] is RiskLevel.LOW
    assert summary["covenant_health"]["breach_percentage"] == 0
    assert summary["status_distribution"]["active"] == 0


def test_portfolio_summary():
    f1 = _facility(outstanding_balance=60.0, maturity_date=TODAY + dt.timedelta(days=30))
    f2 = _facility(outstanding_balance=40.0, maturity_date=TODAY + dt.timedelta(days=200))
    covenants = [
        Covenant(facility_id=f1.id, status=CovenantStatus.BREACH),
        Covenant(facility_id=f1.id, status=CovenantStatus.COMPLIANT),
        Covenant(facility_id=f2.id, status=CovenantStatus.WARNING),
        Covenant(facility_id=f2.id, status=CovenantStatus.COMPLIANT),
    ]
    cash_flows = [
        CashFlow(facility_id=f1.id, total_due=10.0, paid_amount=0.0, status=CashFlowStatus.OVERDUE),
        CashFlow(facility_id=f1.id, total_due=5.0, paid_amount=5.0, status=CashFlowStatus.PAID),
        CashFlow(facility_id=f2.id, total_due=5.0, paid_amount=0.0, status=CashFlowStatus.SCHEDULED),
        CashFlow(facility_id=f2.id, total_due=5.0, paid_amount=0.0, status=CashFlowStatus.SCHEDULED),
    ]
    summary = portfolio_summary(PortfolioSnapshot([f1, f2], covenants, cash_flows), today=TODAY)

    health = summary["covenant_health"]
    assert (health["compliant"], health["warning"], health["breach"]) == (2, 1, 1)
    assert health["breach_percentage"] == pytest.approx(25.0)

    payments = summary["payment_performance"]
    assert payments["overdue_count"] == 1
    assert payments["total_overdue"] == pytest.approx(10.0)
    assert payments["total_scheduled"] == pytest.approx(10.0)

    # 0.25 * 50 + 0.25 * 30 + 0.10 * 20
    metrics = summary["risk_metrics"]
    assert metrics["risk_score"] == pytest.approx(22.0)
    assert metrics["risk_level"] is RiskLevel.MEDIUM
    assert metrics["upcoming_maturities"] == 1
    assert metrics["concentration_ratio"] == pytest.approx(100.0)
    assert metrics["top_n_exposure"] == pytest.approx(100.0)


def test_load_snapshot_reads_persisted_state(db_session, make_facility, make_covenant):
    facility = make_facility()
    make_covenant(facility)
    snapshot = load_snapshot(db_session)
    assert [f.id for f in snapshot.active_facilities] == [facility.id]
    assert len(snapshot.covenants) == 1
