from __future__ import annotations

import json
import uuid

from fastapi.testclient import TestClient

from app.core.db.audit import get_audit_log
from app.domain.facilities.enums import CovenantStatus


def test_unauthenticated_is_401(client: TestClient):
    assert client.get("/facilities").status_code == 401
    bad = {"X-DEV-ACTOR": "not-json"}
    assert client.get("/facilities", headers=bad).status_code == 401


def test_staff_creates_facility_and_audits(client: TestClient, db_session, users, headers_for):
    r = client.post(
        "/facilities",
        json={
            "fund_name": "Harbor Growth Fund IV",
            "gp_user_id": str(users["gp1"].id),
            "principal_amount": 25_000_000,
            "outstanding_balance": 18_000_000,
            "ltv_ratio": 14.0,
            "status": "active",
        },
        headers=headers_for(users["ops"]),
    )
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "active"
    assert body["gp_user_id"] == str(users["gp1"].id)

    events = get_audit_log(db_session, entity_id=body["id"], entity_type="facility")
    assert [e.action for e in events] == ["facility.create"]
    assert events[0].actor_id == str(users["ops"].id)


def test_gp_cannot_create_facility(client: TestClient, users, headers_for):
    r = client.post(
        "/facilities",
        json={"fund_name": "Sneaky Fund", "principal_amount": 1_000_000},
        headers=headers_for(users["gp1"]),
    )
    assert r.status_code == 403
    assert r.json()["reason"] == "role"


def test_gp_sees_only_own_facilities(client: TestClient, users, headers_for, make_facility):
    own = make_facility(fund_name="Own Fund", gp_user_id=users["gp1"].id)
    make_facility(fund_name="Other Fund", gp_user_id=users["gp2"].id)
    make_facility(fund_name="Unassigned Fund", gp_user_id=None)

    r = client.get("/facilities", headers=headers_for(users["gp1"]))
    assert r.status_code == 200
    assert [f["id"] for f in r.json()["items"]] == [str(own.id)]

    r = client.get("/api/facilities", headers=headers_for(users["admin"]))
    assert len(r.json()["items"]) == 3


def test_facility_ownership_rules(client: TestClient, users, headers_for, make_facility):
    own = make_facility(gp_user_id=users["gp1"].id)
    other = make_facility(gp_user_id=users["gp2"].id)
    unassigned = make_facility(gp_user_id=None)
    gp = headers_for(users["gp1"])

    assert client.get(f"/facilities/{own.id}", headers=gp).status_code == 200

    r = client.get(f"/facilities/{other.id}", headers=gp)
    assert r.status_code == 403
    assert r.json()["reason"] == "wrong_owner"
    assert r.json()["message"] == "You can only view your own facilities"

    r = client.get(f"/facilities/{unassigned.id}", headers=gp)
    assert r.status_code == 403
    assert r.json()["reason"] == "unassigned"
    assert "contact operations" in r.json()["message"]

    for headers in (gp, headers_for(users["ops"])):
        assert client.get(f"/facilities/{uuid.uuid4()}", headers=headers).status_code == 404

    assert client.get(f"/facilities/{other.id}", headers=headers_for(users["ops"])).status_code == 200


def test_unknown_role_denied(client: TestClient, users, make_facility):
    facility = make_facility(gp_user_id=users["gp1"].id)
    headers = {"X-DEV-ACTOR": json.dumps({"actor_id": str(users["gp1"].id), "role": "auditor"})}
    assert client.get(f"/facilities/{facility.id}", headers=headers).status_code == 403
    assert client.get("/facilities", headers=headers).status_code == 403


def test_patch_rejects_unknown_fields(client: TestClient, users, headers_for, make_facility):
    facility = make_facility()
    ops = headers_for(users["ops"])

    r = client.patch(f"/facilities/{facility.id}", json={"is_admin": True}, headers=ops)
    assert r.status_code == 422

    r = client.patch(f"/facilities/{facility.id}", json={"outstanding_balance": 17_000_000}, headers=ops)
    assert r.status_code == 200
    assert r.json()["outstanding_balance"] == 17_000_000


def test_owner_gp_cannot_patch(client: TestClient, users, headers_for, make_facility):
    facility = make_facility(gp_user_id=users["gp1"].id)
    r = client.patch(f"/facilities/{facility.id}", json={"ltv_ratio": 1.0}, headers=headers_for(users["gp1"]))
    assert r.status_code == 403


def test_covenant_crud_and_reevaluation(client: TestClient, users, headers_for, make_facility):
    facility = make_facility(ltv_ratio=13.0, gp_user_id=users["gp1"].id)
    ops = headers_for(users["ops"])

    r = client.post(
        f"/facilities/{facility.id}/covenants",
        json={
            "covenant_type": "ltv_ratio",
            "threshold_operator": "less_than_equal",
            "threshold_value": 15.0,
            "current_value": 13.0,
        },
        headers=ops,
    )
    assert r.status_code == 201
    covenant = r.json()
    assert covenant["status"] == "compliant"
    assert covenant["measurement_source"] == "ltv_from_facility"
    assert covenant["next_check_date"] is not None

    r = client.patch(
        f"/facilities/{facility.id}/covenants/{covenant['id']}",
        json={"status": "compliant"},
        headers=ops,
    )
    assert r.status_code == 422

    # Tightening the threshold re-derives status from the facility's LTV.
    r = client.patch(
        f"/facilities/{facility.id}/covenants/{covenant['id']}",
        json={"threshold_value": 12.0},
        headers=ops,
    )
    assert r.status_code == 200
    assert r.json()["status"] == CovenantStatus.BREACH.value

    r = client.get(f"/facilities/{facility.id}/covenants", headers=headers_for(users["gp1"]))
    assert r.status_code == 200
    assert len(r.json()) == 1

    other = make_facility(fund_name="Elsewhere")
    r = client.get(f"/facilities/{other.id}/covenants/{covenant['id']}", headers=ops)
    assert r.status_code == 404


def test_cash_flows(client: TestClient, users, headers_for, make_facility):
    facility = make_facility()
    ops = headers_for(users["ops"])

    r = client.post(
        f"/facilities/{facility.id}/cash-flows",
        json={"due_date": "2025-09-30", "principal_due": 500_000, "interest_due": 380_000},
        headers=ops,
    )
    assert r.status_code == 201
    cash_flow = r.json()
    assert cash_flow["total_due"] == 880_000
    assert cash_flow["status"] == "scheduled"

    r = client.patch(
        f"/facilities/{facility.id}/cash-flows/{cash_flow['id']}",
        json={"paid_amount": 880_000, "paid_date": "2025-09-29", "status": "paid"},
        headers=ops,
    )
    assert r.status_code == 200
    assert r.json()["status"] == "paid"

    r = client.get(f"/facilities/{facility.id}/cash-flows", headers=ops)
    assert [c["id"] for c in r.json()] == [cash_flow["id"]]


def test_covenant_edits_keep_schedule(client: TestClient, db_session, users, headers_for, make_facility):
    facility = make_facility(ltv_ratio=10.0)
    ops = headers_for(users["ops"])

    r = client.post(
        f"/facilities/{facility.id}/covenants",
        json={
            "covenant_type": "ltv_ratio",
            "threshold_operator": "less_than_equal",
            "threshold_value": 15.0,
            "current_value": 10.0,
            "next_check_date": "2030-01-01T00:00:00Z",
        },
        headers=ops,
    )
    assert r.status_code == 201
    covenant = r.json()
    assert covenant["next_check_date"].startswith("2030-01-01T00:00:00")
    assert covenant["last_checked"] is None

    r = client.patch(
        f"/facilities/{facility.id}/covenants/{covenant['id']}",
        json={"next_check_date": "2031-06-30T00:00:00Z"},
        headers=ops,
    )
    assert r.status_code == 200
    assert r.json()["next_check_date"].startswith("2031-06-30T00:00:00")
    assert r.json()["last_checked"] is None

    r = client.patch(
        f"/facilities/{facility.id}/covenants/{covenant['id']}",
        json={"threshold_value": 11.0},
        headers=ops,
    )
    assert r.json()["status"] == CovenantStatus.WARNING.value
    assert r.json()["next_check_date"].startswith("2031-06-30T00:00:00")
    assert r.json()["last_checked"] is None

    events = get_audit_log(db_session, entity_id=covenant["id"], entity_type="covenant")
    assert "covenant.evaluated" not in [e.action for e in events]
    assert "covenant.rederived" in [e.action for e in events]


def test_threshold_edit_uses_current_facility_ltv(
    client: TestClient, db_session, users, headers_for, make_facility, make_covenant
):
    facility = make_facility(ltv_ratio=10.0)
    covenant = make_covenant(facility, current_value=10.0)

    # Fund-admin data moved on since the last check.
    facility.ltv_ratio = 14.0
    db_session.commit()

    r = client.patch(
        f"/facilities/{facility.id}/covenants/{covenant.id}",
        json={"threshold_value": 13.0},
        headers=headers_for(users["ops"]),
    )
    assert r.status_code == 200
    assert r.json()["status"] == CovenantStatus.BREACH.value
    assert r.json()["current_value"] == 14.0


def test_covenant_rejects_non_finite_numbers(client: TestClient, users, headers_for, make_facility, make_covenant):
    facility = make_facility()
    covenant = make_covenant(facility)
    ops = headers_for(users["ops"])
    base = {"covenant_type": "ltv_ratio", "threshold_operator": "less_than_equal", "threshold_value": 15.0}

    for field, value in [("threshold_value", "NaN"), ("current_value", "Infinity")]:
        r = client.post(f"/facilities/{facility.id}/covenants", json={**base, field: value}, headers=ops)
        assert r.status_code == 422

    r = client.patch(
        f"/facilities/{facility.id}/covenants/{covenant.id}",
        json={"threshold_value": "-Infinity"},
        headers=ops,
    )
    assert r.status_code == 422

    r = client.patch(f"/facilities/{facility.id}", json={"ltv_ratio": "Infinity"}, headers=ops)
    assert r.status_code == 422
