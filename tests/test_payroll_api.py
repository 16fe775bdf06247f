from datetime import date
from decimal import Decimal

from guardops_api.extensions import db
from guardops_api.models.attendance import AttendanceRecord


def _create(client, headers, **over):
    body = {"cycle_name": "March 2026", "start_date": "2026-03-01",
            "end_date": "2026-03-31", "payment_date": "2026-04-05"}
    body.update(over)
    return client.post("/api/v1/payroll/cycles", json=body, headers=headers)


def test_cycle_lifecycle(client, org, make_guard, make_user, headers_for):
    fin = headers_for(make_user("finance_officer"))
    g = make_guard("48000")
    db.session.add(AttendanceRecord(org_id=org.id, guard_id=g.id, attendance_date=date(2026, 3, 3),
                                    status="present", overtime_hours=Decimal("5")))
    db.session.commit()

    r = _create(client, fin)
    assert r.status_code == 201
    cid = r.get_json()["data"]["id"]
    assert r.get_json()["data"]["status"] == "draft"

    # approving a draft is a state error
    assert client.post(f"/api/v1/payroll/cycles/{cid}/approve", headers=fin).status_code == 409

    r = client.post(f"/api/v1/payroll/cycles/{cid}/calculate", headers=fin)
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["status"] == "calculated"
    assert data["total_employees"] == 1
    assert data["total_gross"] == 49000.0

    r = client.get(f"/api/v1/payroll/cycles/{cid}", headers=fin)
    items = r.get_json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["overtime_amount"] == 1000.0
    assert items[0]["net_salary"] == items[0]["gross_salary"] - items[0]["total_deductions"]

    # drafts only
    assert client.patch(f"/api/v1/payroll/cycles/{cid}", json={"cycle_name": "x"},
                        headers=fin).status_code == 409

    r = client.post(f"/api/v1/payroll/cycles/{cid}/approve", headers=fin)
    assert r.status_code == 200
    assert r.get_json()["data"]["approved_at"] is not None

    # no recalculation after approval
    assert client.post(f"/api/v1/payroll/cycles/{cid}/calculate", headers=fin).status_code == 409

    r = client.post(f"/api/v1/payroll/cycles/{cid}/lock", headers=fin)
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "locked"


def test_create_validation(client, admin_headers):
    assert _create(client, admin_headers, cycle_name="").status_code == 422
    assert _create(client, admin_headers, end_date="2026-02-01").status_code == 422
    assert _create(client, admin_headers, start_date="not-a-date").status_code == 422


def test_items_filter_by_guard(client, org, make_guard, admin_headers):
    g1, g2 = make_guard("20000"), make_guard("22000")
    cid = _create(client, admin_headers).get_json()["data"]["id"]
    client.post(f"/api/v1/payroll/cycles/{cid}/calculate", headers=admin_headers)

    r = client.get(f"/api/v1/payroll/cycles/{cid}/items", headers=admin_headers)
    assert r.get_json()["meta"]["total"] == 2
    r = client.get(f"/api/v1/payroll/cycles/{cid}/items?guard_id={g2.id}", headers=admin_headers)
    rows = r.get_json()["data"]
    assert [x["guard_id"] for x in rows] == [g2.id]


def test_delete_draft_only(client, admin_headers):
    cid = _create(client, admin_headers).get_json()["data"]["id"]
    r = client.delete(f"/api/v1/payroll/cycles/{cid}", headers=admin_headers)
    assert r.status_code == 200
    assert client.get(f"/api/v1/payroll/cycles/{cid}", headers=admin_headers).status_code == 404

    cid = _create(client, admin_headers).get_json()["data"]["id"]
    client.post(f"/api/v1/payroll/cycles/{cid}/calculate", headers=admin_headers)
    assert client.delete(f"/api/v1/payroll/cycles/{cid}", headers=admin_headers).status_code == 409


def test_cycles_are_org_scoped(client, other_org, make_user, headers_for, admin_headers):
    cid = _create(client, admin_headers).get_json()["data"]["id"]
    outsider = headers_for(make_user("system_admin", email="root@bravo.example", org_id=other_org.id))
    assert client.get(f"/api/v1/payroll/cycles/{cid}", headers=outsider).status_code == 404
    assert client.get("/api/v1/payroll/cycles", headers=outsider).get_json()["meta"]["total"] == 0


def test_rejected_overtime_never_reaches_calculation(client, make_guard, admin_headers):
    g = make_guard("24000")
    r = client.post("/api/v1/attendance", headers=admin_headers, json={
        "guard_id": g.id, "attendance_date": "2026-03-02", "overtime_hours": "Infinity"})
    assert r.status_code == 422
    r = client.post("/api/v1/attendance", headers=admin_headers, json={
        "guard_id": g.id, "attendance_date": "2026-03-02", "overtime_hours": "2"})
    assert r.status_code == 201

    cid = _create(client, admin_headers).get_json()["data"]["id"]
    r = client.post(f"/api/v1/payroll/cycles/{cid}/calculate", headers=admin_headers)
    assert r.status_code == 200
    assert r.get_json()["data"]["total_gross"] == 24200.0
