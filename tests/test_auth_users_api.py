from app.models.user_model import User


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_and_me(client, admin_headers):
    resp = client.get("/auth/me", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "ADMIN"


def test_login_wrong_password(client):
    resp = client.post("/auth/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 401


def test_inactive_user_cannot_login(client, make_user):
    make_user("sleepy", is_active=False)
    resp = client.post("/auth/login", json={"username": "sleepy", "password": "secret123"})
    assert resp.status_code == 403


def test_requests_without_token_are_rejected(client):
    assert client.get("/users").status_code == 401
    assert client.get("/users", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_member_cannot_use_admin_routes(client, make_user, login_as):
    make_user("alice")
    headers = login_as("alice")
    assert client.get("/users", headers=headers).status_code == 403


def test_create_user_duplicate(client, admin_headers, make_user):
    make_user("alice")
    resp = client.post(
        "/users", json={"username": "alice", "password": "secret123"}, headers=admin_headers
    )
    assert resp.status_code == 409


def test_list_users_filters(client, admin_headers, make_user):
    make_user("alice", role="BUYER", first_name="Alice")
    make_user("carl", role="CONTRACTOR")

    resp = client.get("/users", params={"role": "contractor"}, headers=admin_headers)
    assert [u["username"] for u in resp.json()] == ["carl"]

    resp = client.get("/users", params={"search": "ali"}, headers=admin_headers)
    assert [u["username"] for u in resp.json()] == ["alice"]


def test_update_user_password(client, admin_headers, make_user, login_as):
    user = make_user("alice")
    resp = client.put(
        f"/users/{user['user_id']}",
        json={"password": "new-pass", "phone": "555-1234"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["phone"] == "555-1234"
    login_as("alice", "new-pass")


def test_admin_cannot_delete_self(client, admin_headers):
    me = client.get("/auth/me", headers=admin_headers).json()
    resp = client.delete(f"/users/{me['user_id']}", headers=admin_headers)
    assert resp.status_code == 400


def test_delete_user_with_unit_is_refused(client, admin_headers, make_user, make_project, add_member):
    project = make_project()
    alice = make_user("alice")
    add_member(project["project_id"], alice["user_id"], "A-1", 50)

    resp = client.delete(f"/users/{alice['user_id']}", headers=admin_headers)
    assert resp.status_code == 400


def test_delete_user(client, admin_headers, make_user):
    user = make_user("alice")
    assert client.delete(f"/users/{user['user_id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/users/{user['user_id']}", headers=admin_headers).status_code == 404


def test_activities_are_logged(client, admin_headers, make_user):
    make_user("alice")
    resp = client.get("/activities", params={"entity_type": "USER"}, headers=admin_headers)
    assert resp.status_code == 200
    actions = {a["action"] for a in resp.json()}
    assert {"LOGIN", "CREATE"} <= actions


def test_settings_seeded_and_patched(client, admin_headers):
    resp = client.get("/settings", headers=admin_headers)
    keys = {s["key"] for s in resp.json()}
    assert {"DEFAULT_DAILY_PENALTY", "DEFAULT_PENALTY_GRACE_DAYS"} <= keys

    resp = client.patch(
        "/settings", json={"key": "default_daily_penalty", "value": "15"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["value"] == "15"


def test_login_with_unreadable_stored_hash_is_401(client, db, make_user):
    carol = make_user("carol")
    user = db.query(User).filter(User.user_id == carol["user_id"]).first()
    user.password_hash = "pbkdf2:sha256:abc$AA==$AA=="
    db.commit()

    resp = client.post("/auth/login", json={"username": "carol", "password": "secret123"})
    assert resp.status_code == 401
