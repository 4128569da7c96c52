def test_project_crud(client, admin_headers, make_project):
    project = make_project("Tower A", description="Twelve floors")
    pid = project["project_id"]

    resp = client.put(f"/projects/{pid}", json={"status": "COMPLETED"}, headers=admin_headers)
    assert resp.json()["status"] == "COMPLETED"

    resp = client.get("/projects", params={"status": "completed"}, headers=admin_headers)
    assert [p["project_id"] for p in resp.json()] == [pid]

    assert client.delete(f"/projects/{pid}", headers=admin_headers).status_code == 200
    assert client.get(f"/projects/{pid}", headers=admin_headers).status_code == 404


def test_project_name_is_unique(client, admin_headers, make_project):
    make_project("Tower A")
    resp = client.post("/projects", json={"name": "Tower A"}, headers=admin_headers)
    assert resp.status_code == 409


def test_delete_project_with_units_is_refused(client, admin_headers, funded_project):
    pid = funded_project["project"]["project_id"]
    assert client.delete(f"/projects/{pid}", headers=admin_headers).status_code == 400


def test_member_sees_only_own_projects(client, make_project, funded_project, login_as):
    other = make_project("Tower B")
    headers = login_as("alice")

    resp = client.get("/projects", headers=headers)
    assert [p["name"] for p in resp.json()] == ["Tower A"]
    assert client.get(f"/projects/{other['project_id']}", headers=headers).status_code == 403


def test_fiscal_years(client, admin_headers, make_project):
    pid = make_project()["project_id"]
    body = {"year": 2024, "start_date": "2024-01-01", "end_date": "2024-12-31"}

    resp = client.post(f"/projects/{pid}/fiscal-years", json=body, headers=admin_headers)
    assert resp.status_code == 201
    fy_id = resp.json()["fiscal_year_id"]

    resp = client.post(f"/projects/{pid}/fiscal-years", json=body, headers=admin_headers)
    assert resp.status_code == 409

    bad = {**body, "year": 2025, "start_date": "2025-12-31", "end_date": "2025-01-01"}
    resp = client.post(f"/projects/{pid}/fiscal-years", json=bad, headers=admin_headers)
    assert resp.status_code == 422

    resp = client.put(
        f"/projects/{pid}/fiscal-years/{fy_id}", json={"end_date": "2023-06-01"}, headers=admin_headers
    )
    assert resp.status_code == 400

    resp = client.put(
        f"/projects/{pid}/fiscal-years/{fy_id}", json={"is_closed": True}, headers=admin_headers
    )
    assert resp.json()["is_closed"] is True

    assert client.delete(f"/projects/{pid}/fiscal-years/{fy_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/projects/{pid}/fiscal-years", headers=admin_headers).json() == []


# =============================================================================
# Members and shares
# =============================================================================

def test_shares_follow_area(funded_project, installments_of):
    pid = funded_project["project"]["project_id"]

    alice = installments_of(pid, funded_project["alice"]["user_id"])
    bob = installments_of(pid, funded_project["bob"]["user_id"])

    assert [i["share_amount"] for i in alice] == [600.0, 1200.0]
    assert [i["share_amount"] for i in bob] == [400.0, 800.0]
    assert alice[0]["status"] == "OVERDUE"
    assert alice[1]["status"] == "PENDING"


def test_new_member_rescales_shares(client, admin_headers, funded_project, make_user, add_member, installments_of):
    pid = funded_project["project"]["project_id"]
    carol = make_user("carol")
    member = add_member(pid, carol["user_id"], "A-3", 100)
    assert member["total_share"] == 1500.0

    alice = installments_of(pid, funded_project["alice"]["user_id"])
    bob = installments_of(pid, funded_project["bob"]["user_id"])
    assert alice[0]["share_amount"] == 300.0
    assert bob[0]["share_amount"] == 200.0

    resp = client.get(f"/finance/projects/{pid}/users", headers=admin_headers)
    assert len(resp.json()) == 3


def test_customized_share_survives_rescale(client, admin_headers, funded_project, make_user, add_member, installments_of):
    pid = funded_project["project"]["project_id"]
    alice_id = funded_project["alice"]["user_id"]
    first = installments_of(pid, alice_id)[0]

    resp = client.put(
        f"/finance/user-installments/{first['user_installment_id']}",
        json={"share_amount": 550},
        headers=admin_headers,
    )
    assert resp.json()["is_customized"] is True

    carol = make_user("carol")
    add_member(pid, carol["user_id"], "A-3", 100)

    assert installments_of(pid, alice_id)[0]["share_amount"] == 550.0


def test_add_member_rejections(client, admin_headers, funded_project, make_user):
    pid = funded_project["project"]["project_id"]
    url = f"/finance/projects/{pid}/users"
    admin_id = client.get("/auth/me", headers=admin_headers).json()["user_id"]
    idle = make_user("idle", is_active=False)
    carol = make_user("carol")

    cases = [
        {"user_id": admin_id, "unit_number": "X", "area": 10},
        {"user_id": idle["user_id"], "unit_number": "X", "area": 10},
        {"user_id": funded_project["alice"]["user_id"], "unit_number": "X", "area": 10},
        {"user_id": carol["user_id"], "unit_number": "A-1", "area": 10},
    ]
    for body in cases:
        assert client.post(url, json=body, headers=admin_headers).status_code == 400

    resp = client.get(f"/users/available-for-project/{pid}", headers=admin_headers)
    assert [u["username"] for u in resp.json()] == ["carol"]


def test_update_member_area(client, admin_headers, funded_project, installments_of):
    pid = funded_project["project"]["project_id"]
    bob_id = funded_project["bob"]["user_id"]

    resp = client.put(f"/finance/projects/{pid}/users/{bob_id}", json={"area": 140}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["area"] == 140.0

    # 60 / 140 of a 200 total
    assert installments_of(pid, funded_project["alice"]["user_id"])[0]["share_amount"] == 300.0
    assert installments_of(pid, bob_id)[0]["share_amount"] == 700.0


def test_remove_member_with_payments_needs_force(client, admin_headers, funded_project, installments_of):
    pid = funded_project["project"]["project_id"]
    bob_id = funded_project["bob"]["user_id"]

    client.post(
        f"/finance/projects/{pid}/payments",
        json={"user_id": bob_id, "amount": 100, "payment_date": "2020-01-02"},
        headers=admin_headers,
    )

    url = f"/finance/projects/{pid}/users/{bob_id}"
    assert client.delete(url, headers=admin_headers).status_code == 400

    resp = client.delete(url, params={"force": True}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["deleted_payments"] == 1

    # alice now carries the whole project
    assert installments_of(pid, funded_project["alice"]["user_id"])[0]["share_amount"] == 1000.0
