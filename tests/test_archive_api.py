import pytest


@pytest.fixture
def ids(client, admin_headers, funded_project):
    pid = funded_project["project"]["project_id"]
    client.post(
        f"/finance/projects/{pid}/payments",
        json={"user_id": funded_project["bob"]["user_id"], "amount": 100, "payment_date": "2020-01-02"},
        headers=admin_headers,
    )
    return {
        "pid": pid,
        "alice": funded_project["alice"]["user_id"],
        "bob": funded_project["bob"]["user_id"],
    }


# =============================================================================
# Users
# =============================================================================

def test_archive_user_rescales_remaining_shares(client, admin_headers, ids, installments_of):
    resp = client.post(f"/archive/users/{ids['bob']}", headers=admin_headers)
    assert resp.status_code == 201

    assert client.get(f"/users/{ids['bob']}", headers=admin_headers).status_code == 404
    assert [i["share_amount"] for i in installments_of(ids["pid"], ids["alice"])] == [1000.0, 2000.0]

    listing = client.get("/archive/users", headers=admin_headers).json()
    item = listing["items"][0]
    assert item["username"] == "bob"
    assert item["unit_count"] == 1
    assert item["installment_count"] == 2
    assert item["total_paid"] == 100.0
    assert listing["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}


def test_archived_user_cannot_login(client, admin_headers, ids):
    client.post(f"/archive/users/{ids['bob']}", headers=admin_headers)
    resp = client.post("/auth/login", json={"username": "bob", "password": "secret123"})
    assert resp.status_code == 401


def test_restore_user(client, admin_headers, ids, installments_of, login_as):
    archived_id = client.post(f"/archive/users/{ids['bob']}", headers=admin_headers).json()["archived_user_id"]

    resp = client.post(f"/archive/users/{archived_id}/restore", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["skipped_units"] == []

    bob_id = body["user_id"]
    bob = installments_of(ids["pid"], bob_id)
    assert [i["share_amount"] for i in bob] == [400.0, 800.0]
    assert bob[0]["paid_amount"] == 100.0
    assert bob[0]["definition_id"] is not None
    assert installments_of(ids["pid"], ids["alice"])[0]["share_amount"] == 600.0

    login_as("bob")
    assert client.get("/archive/users", headers=admin_headers).json()["items"] == []


def test_restore_user_name_conflict(client, admin_headers, ids, make_user):
    archived_id = client.post(f"/archive/users/{ids['bob']}", headers=admin_headers).json()["archived_user_id"]
    make_user("bob")
    resp = client.post(f"/archive/users/{archived_id}/restore", headers=admin_headers)
    assert resp.status_code == 409


def test_restore_user_skips_taken_unit(client, admin_headers, ids, make_user, add_member):
    archived_id = client.post(f"/archive/users/{ids['bob']}", headers=admin_headers).json()["archived_user_id"]
    carol = make_user("carol")
    add_member(ids["pid"], carol["user_id"], "A-2", 40)

    body = client.post(f"/archive/users/{archived_id}/restore", headers=admin_headers).json()
    assert [s["unit_number"] for s in body["skipped_units"]] == ["A-2"]


def test_admin_cannot_be_archived(client, admin_headers):
    me = client.get("/auth/me", headers=admin_headers).json()
    assert client.post(f"/archive/users/{me['user_id']}", headers=admin_headers).status_code == 400


# =============================================================================
# Projects
# =============================================================================

def test_archive_and_restore_project(client, admin_headers, ids, installments_of):
    resp = client.post(f"/archive/projects/{ids['pid']}", headers=admin_headers)
    assert resp.status_code == 201
    archived_id = resp.json()["archived_project_id"]

    assert client.get(f"/projects/{ids['pid']}", headers=admin_headers).status_code == 404

    item = client.get("/archive/projects", params={"search": "tower"}, headers=admin_headers).json()["items"][0]
    assert item["unit_count"] == 2
    assert item["definition_count"] == 2
    assert item["payment_count"] == 1

    body = client.post(f"/archive/projects/{archived_id}/restore", headers=admin_headers).json()
    assert body["skipped_units"] == []
    new_pid = body["project_id"]

    alice = installments_of(new_pid, ids["alice"])
    assert [(i["title"], i["share_amount"]) for i in alice] == [("Down payment", 600.0), ("Final", 1200.0)]
    assert installments_of(new_pid, ids["bob"])[0]["paid_amount"] == 100.0

    defs = client.get(f"/finance/projects/{new_pid}/installment-definitions", headers=admin_headers).json()
    assert [d["order_no"] for d in defs] == [1, 2]


def test_restore_project_skips_missing_users(client, admin_headers, ids):
    archived_id = client.post(f"/archive/projects/{ids['pid']}", headers=admin_headers).json()["archived_project_id"]
    assert client.delete(f"/users/{ids['bob']}", headers=admin_headers).status_code == 200

    body = client.post(f"/archive/projects/{archived_id}/restore", headers=admin_headers).json()
    assert [s["unit_number"] for s in body["skipped_units"]] == ["A-2"]


def test_restore_project_name_conflict(client, admin_headers, ids, make_project):
    archived_id = client.post(f"/archive/projects/{ids['pid']}", headers=admin_headers).json()["archived_project_id"]
    make_project("Tower A")
    assert client.post(f"/archive/projects/{archived_id}/restore", headers=admin_headers).status_code == 409


def test_purge_archived_project(client, admin_headers, ids):
    archived_id = client.post(f"/archive/projects/{ids['pid']}", headers=admin_headers).json()["archived_project_id"]
    assert client.delete(f"/archive/projects/{archived_id}", headers=admin_headers).status_code == 200
    assert client.get("/archive/projects", headers=admin_headers).json()["items"] == []
    assert client.delete(f"/archive/projects/{archived_id}", headers=admin_headers).status_code == 404
