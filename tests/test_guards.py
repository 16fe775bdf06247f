from guardops_api.extensions import db
from guardops_api.models.guard import Guard, GuardStatusHistory
from guardops_api.services import guard_service


def _new(client, headers, **over):
    body = {"first_name": "Imran", "last_name": "Khan", "cnic": "35202-1234567-1",
            "phone": "0300-1234567", "gender": "male", "basic_salary": 32000}
    body.update(over)
    return client.post("/api/v1/guards", json=body, headers=headers)


def test_next_guard_code_is_per_org(org, other_org, make_guard):
    assert guard_service.next_guard_code(org.id) == "GRD-00001"
    make_guard(guard_code="GRD-00007")
    make_guard(guard_code="LEGACY-1")
    assert guard_service.next_guard_code(org.id) == "GRD-00008"
    assert guard_service.next_guard_code(other_org.id) == "GRD-00001"


def test_create_and_get(client, admin_headers):
    r = _new(client, admin_headers)
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["guard_code"] == "GRD-00001"
    assert data["status"] == "applicant"
    assert data["basic_salary"] == 32000.0

    r = client.get(f"/api/v1/guards/{data['id']}", headers=admin_headers)
    assert r.get_json()["data"]["full_name"] == "Imran Khan"
    assert r.get_json()["data"]["status_history"] == []


def test_create_validation_and_duplicate_cnic(client, admin_headers):
    assert _new(client, admin_headers, first_name="").status_code == 422
    assert _new(client, admin_headers, basic_salary="lots").status_code == 422
    assert _new(client, admin_headers, gender="robot").status_code == 422
    assert _new(client, admin_headers).status_code == 201
    r = _new(client, admin_headers)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "guard.duplicate_cnic"


def test_status_change_writes_history(client, admin, admin_headers):
    gid = _new(client, admin_headers).get_json()["data"]["id"]
    r = client.post(f"/api/v1/guards/{gid}/status", headers=admin_headers,
                    json={"status": "active", "reason": "training complete"})
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["status"] == "active"
    assert data["employment_start_date"] is not None
    assert data["transition"]["from_status"] == "applicant"

    h = GuardStatusHistory.query.filter_by(guard_id=gid).one()
    assert (h.to_status, h.reason, h.transitioned_by) == ("active", "training complete", admin.id)

    assert client.post(f"/api/v1/guards/{gid}/status", headers=admin_headers,
                       json={"status": "active"}).status_code == 409
    assert client.post(f"/api/v1/guards/{gid}/status", headers=admin_headers,
                       json={"status": "promoted"}).status_code == 422

    client.post(f"/api/v1/guards/{gid}/status", headers=admin_headers, json={"status": "terminated"})
    g = db.session.get(Guard, gid)
    assert g.is_active is False
    assert g.employment_end_date is not None


def test_patch_cannot_set_status(client, admin_headers):
    gid = _new(client, admin_headers).get_json()["data"]["id"]
    r = client.patch(f"/api/v1/guards/{gid}", headers=admin_headers, json={"status": "active"})
    assert r.status_code == 422
    r = client.patch(f"/api/v1/guards/{gid}", headers=admin_headers,
                     json={"city": "Lahore", "basic_salary": "35000.50"})
    assert r.status_code == 200
    assert r.get_json()["data"]["city"] == "Lahore"
    assert r.get_json()["data"]["basic_salary"] == 35000.5


def test_list_filters_and_search(client, make_guard, admin_headers):
    make_guard(first_name="Asif", status="active")
    make_guard(first_name="Bilal", status="suspended")
    make_guard(first_name="Kamran", status="active", is_active=False)

    r = client.get("/api/v1/guards?status=active", headers=admin_headers)
    assert r.get_json()["meta"]["total"] == 2
    r = client.get("/api/v1/guards?q=bil", headers=admin_headers)
    assert [g["first_name"] for g in r.get_json()["data"]] == ["Bilal"]
    r = client.get("/api/v1/guards?is_active=false", headers=admin_headers)
    assert [g["first_name"] for g in r.get_json()["data"]] == ["Kamran"]
    assert client.get("/api/v1/guards?is_active=maybe", headers=admin_headers).status_code == 422
    assert client.get("/api/v1/guards?status=retired", headers=admin_headers).status_code == 422

    r = client.get("/api/v1/guards?size=2&page=2", headers=admin_headers)
    assert r.get_json()["meta"] == {"page": 2, "size": 2, "total": 3}
    assert len(r.get_json()["data"]) == 1


def test_soft_delete_and_counts(client, make_guard, admin_headers):
    g1 = make_guard(status="active")
    make_guard(status="active")
    make_guard(status="applicant")

    r = client.get("/api/v1/guards/counts", headers=admin_headers)
    counts = r.get_json()["data"]
    assert (counts["active"], counts["applicant"], counts["total"]) == (2, 1, 3)

    assert client.delete(f"/api/v1/guards/{g1.id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/v1/guards/{g1.id}", headers=admin_headers).status_code == 404
    assert db.session.get(Guard, g1.id).deleted_at is not None
    r = client.get("/api/v1/guards/counts", headers=admin_headers)
    assert r.get_json()["data"]["active"] == 1


def test_guards_are_org_scoped(client, other_org, make_guard, make_user, headers_for):
    foreign = make_guard(org_id=other_org.id)
    hr = headers_for(make_user("hr_officer"))
    assert client.get(f"/api/v1/guards/{foreign.id}", headers=hr).status_code == 404
    assert client.get("/api/v1/guards", headers=hr).get_json()["meta"]["total"] == 0


def test_delete_needs_delete_permission(client, make_guard, make_user, headers_for):
    g = make_guard()
    hr = headers_for(make_user("hr_officer"))
    assert client.delete(f"/api/v1/guards/{g.id}", headers=hr).status_code == 403


def test_salary_must_be_finite_and_fit_the_column(client, admin_headers):
    for bad in ("NaN", "Infinity", "-Infinity", "sNaN", "1e15", -1, True):
        r = _new(client, admin_headers, basic_salary=bad)
        assert r.status_code == 422, bad
    assert Guard.query.count() == 0

    gid = _new(client, admin_headers).get_json()["data"]["id"]
    r = client.patch(f"/api/v1/guards/{gid}", headers=admin_headers, json={"basic_salary": "Infinity"})
    assert r.status_code == 422
    assert db.session.get(Guard, gid).basic_salary == 32000


def test_cnic_of_deleted_guard_stays_taken(client, admin_headers):
    gid = _new(client, admin_headers, cnic="42101").get_json()["data"]["id"]
    assert client.delete(f"/api/v1/guards/{gid}", headers=admin_headers).status_code == 200

    r = _new(client, admin_headers, cnic="42101")
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "guard.duplicate_cnic"
    assert "GRD-00001" in r.get_json()["error"]["message"]


def test_patch_to_taken_cnic_is_a_conflict(client, admin_headers):
    _new(client, admin_headers, cnic="11111")
    gid = _new(client, admin_headers, cnic="22222").get_json()["data"]["id"]
    r = client.patch(f"/api/v1/guards/{gid}", headers=admin_headers, json={"cnic": "11111"})
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "guard.duplicate_cnic"
    assert db.session.get(Guard, gid).cnic == "22222"
    # keeping its own cnic is fine
    r = client.patch(f"/api/v1/guards/{gid}", headers=admin_headers, json={"cnic": "22222"})
    assert r.status_code == 200
