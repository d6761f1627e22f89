from __future__ import annotations

import datetime as dt

import pytest
from fastapi.testclient import TestClient

from app.domain.facilities.enums import CashFlowStatus, CovenantStatus, FacilityStatus
from app.domain.facilities.models import CashFlow

M = 1_000_000.0


@pytest.fixture()
def portfolio(db_session, make_facility, make_covenant):
    balances = [35 * M, 25 * M, 18 * M, 12 * M, 10 * M, 5 * M]
    facilities = [
        make_facility(fund_name=f"Fund {i}", outstanding_balance=b, principal_amount=b, ltv_ratio=14.0)
        for i, b in enumerate(balances)
    ]
    make_facility(fund_name="Closed Fund", outstanding_balance=90 * M, status=FacilityStatus.CLOSED)
    make_covenant(facilities[0], status=CovenantStatus.BREACH)
    make_covenant(facilities[1])
    db_session.add(
        CashFlow(
            facility_id=facilities[0].id,
            due_date=dt.date(2025, 3, 31),
            interest_due=1 * M,
            total_due=1 * M,
            status=CashFlowStatus.OVERDUE,
        )
    )
    db_session.commit()
    return facilities


@pytest.mark.parametrize(
    "path",
    ["/analytics/portfolio-summary", "/analytics/stress-test", "/analytics/concentration", "/analytics/performance"],
)
def test_analytics_is_staff_only(client: TestClient, users, headers_for, path):
    assert client.get(path, headers=headers_for(users["gp1"])).status_code == 403
    assert client.get(path, headers=headers_for(users["ops"])).status_code == 200


def test_portfolio_summary(client: TestClient, users, headers_for, portfolio):
    r = client.get("/api/analytics/portfolio-summary", headers=headers_for(users["admin"]))
    assert r.status_code == 200
    body = r.json()

    assert body["overview"]["active_facilities"] == 6
    assert body["overview"]["total_outstanding_balance"] == pytest.approx(105 * M)
    assert body["status_distribution"]["closed"] == 1
    assert body["covenant_health"]["breach"] == 1
    assert body["payment_performance"]["overdue_count"] == 1
    assert body["risk_metrics"]["concentration_ratio"] == pytest.approx(95.238, abs=1e-3)
    assert body["risk_metrics"]["top_n_exposure"] == pytest.approx(100 * M)
    # 0.5 * 50 + 1.0 * 30 + (1M / 105M) * 20
    assert body["risk_metrics"]["risk_score"] == pytest.approx(55.19, abs=0.01)
    assert body["risk_metrics"]["risk_level"] == "high"


def test_concentration(client: TestClient, users, headers_for, portfolio):
    body = client.get("/analytics/concentration", headers=headers_for(users["ops"])).json()
    assert body["facility_count"] == 6
    assert body["top_n_concentration_ratio"] == pytest.approx(95.238, abs=1e-3)
    # Shares 33.3/23.8/17.1/11.4/9.5/4.8 percent.
    assert body["concentration_level"] == "moderate"
    assert body["by_sector"]["most_concentrated"]["group"] == "Technology"


def test_stress_test_default_and_custom(client: TestClient, users, headers_for, portfolio):
    ops = headers_for(users["ops"])

    body = client.get("/analytics/stress-test", headers=ops).json()
    assert [s["nav_decline_pct"] for s in body["scenarios"]] == [20.0, 40.0]
    assert body["scenarios"][0]["avg_ltv"] == pytest.approx(17.5)
    # Every modelled facility sits at 14% against a 15% limit.
    assert body["scenarios"][0]["breach_count"] == 6
    assert len(body["recommendations"]) == 6

    r = client.post("/analytics/stress-test", json={"shocks_pct": [5, 10]}, headers=ops)
    assert r.status_code == 200
    assert r.json()["scenarios"][1]["breach_count"] == 6
    assert r.json()["scenarios"][0]["breach_count"] == 0

    assert client.post("/analytics/stress-test", json={"shocks_pct": [100]}, headers=ops).status_code == 422
    assert client.post("/analytics/stress-test", json={"shocks_pct": []}, headers=ops).status_code == 422


def test_performance(client: TestClient, users, headers_for, portfolio):
    body = client.get("/analytics/performance", headers=headers_for(users["ops"])).json()
    assert body["default_metrics"]["total_facilities"] == 7
    assert body["performance_by_status"]["active"]["count"] == 6
    assert body["portfolio_roi"]["total_interest_earned"] == 0
