import pytest


@pytest.fixture
def project_id(make_project):
    return make_project("Ledger Tower")["project_id"]


@pytest.fixture
def coded_project(client, admin_headers, project_id):
    resp = client.post(
        "/accounting/coding/import-default", json={"project_id": project_id}, headers=admin_headers
    )
    assert resp.status_code == 201, resp.text
    return project_id


def _document(client, headers, project_id, day, lines, status="PERMANENT", number=None):
    body = {
        "project_id": project_id,
        "document_date": day,
        "status": status,
        "entries": [
            {"account_code": code, "debit": debit, "credit": credit}
            for code, debit, credit in lines
        ],
    }
    if number:
        body["document_number"] = number
    return client.post("/accounting/documents", json=body, headers=headers)


@pytest.fixture
def booked_project(client, admin_headers, coded_project):
    pid = coded_project
    assert _document(client, admin_headers, pid, "2024-01-10", [("110101", 1000, 0), ("4101", 0, 1000)]).status_code == 201
    assert _document(client, admin_headers, pid, "2024-02-05", [("8101", 300, 0), ("110101", 0, 300)]).status_code == 201
    assert _document(
        client, admin_headers, pid, "2024-02-20", [("8101", 50, 0), ("110101", 0, 50)], status="TEMPORARY"
    ).status_code == 201
    return pid


# =============================================================================
# Coding
# =============================================================================

def test_initialize_base_groups(client, admin_headers, project_id):
    body = {"project_id": project_id}
    first = client.post("/accounting/coding/initialize", json=body, headers=admin_headers).json()
    assert first["groups_created"] == 5
    again = client.post("/accounting/coding/initialize", json=body, headers=admin_headers).json()
    assert again["groups_created"] == 0


def test_import_default_tree(client, admin_headers, coded_project):
    tree = client.get(
        "/accounting/coding/tree", params={"project_id": coded_project}, headers=admin_headers
    ).json()
    groups = tree["groups"]
    assert len(groups) == 9
    assert sum(len(g["classes"]) for g in groups) == 17

    cash = groups[0]["classes"][0]
    assert cash["full_code"] == "11"
    assert cash["sub_classes"][0]["details"][0]["full_code"] == "110101"

    resp = client.post(
        "/accounting/coding/import-default", json={"project_id": coded_project}, headers=admin_headers
    )
    assert resp.status_code == 400


def test_resolve_code(client, admin_headers, coded_project):
    resp = client.get(
        "/accounting/coding/resolve",
        params={"project_id": coded_project, "code": "110101"},
        headers=admin_headers,
    )
    body = resp.json()
    assert body["level"] == "detail"
    assert body["class_name"] == "Cash"
    assert body["name"] == "Project A cash"
    assert body["nature"] == "DEBIT"

    params = {"project_id": coded_project, "code": "119901"}
    assert client.get("/accounting/coding/resolve", params=params, headers=admin_headers).status_code == 404
    params["code"] = "123"
    assert client.get("/accounting/coding/resolve", params=params, headers=admin_headers).status_code == 400


def test_next_code(client, admin_headers, coded_project):
    tree = client.get(
        "/accounting/coding/tree", params={"project_id": coded_project}, headers=admin_headers
    ).json()
    group_id = tree["groups"][0]["id"]

    resp = client.get(
        "/accounting/coding/next-code",
        params={"level": "class", "parent_id": group_id},
        headers=admin_headers,
    )
    assert resp.json()["next_code"] == "4"

    resp = client.get(
        "/accounting/coding/next-code",
        params={"level": "group", "project_id": coded_project},
        headers=admin_headers,
    )
    assert resp.status_code == 400


def test_manual_coding_crud(client, admin_headers, project_id):
    resp = client.post(
        "/accounting/coding/groups",
        json={"project_id": project_id, "code": "1", "name": "Assets"},
        headers=admin_headers,
    )
    assert resp.status_code == 201
    group_id = resp.json()["id"]

    dup = client.post(
        "/accounting/coding/groups",
        json={"project_id": project_id, "code": "1", "name": "Again"},
        headers=admin_headers,
    )
    assert dup.status_code == 409

    bad = client.post(
        "/accounting/coding/classes",
        json={"group_id": group_id, "code": "12", "name": "Too long"},
        headers=admin_headers,
    )
    assert bad.status_code == 400

    cls = client.post(
        "/accounting/coding/classes",
        json={"group_id": group_id, "code": "1", "name": "Cash", "nature": "DEBIT"},
        headers=admin_headers,
    ).json()
    sub = client.post(
        "/accounting/coding/subclasses",
        json={"class_id": cls["id"], "code": "1", "name": "Petty cash"},
        headers=admin_headers,
    ).json()
    assert sub["full_code"] == "1101"

    detail = client.post(
        "/accounting/coding/details",
        json={"sub_class_id": sub["id"], "code": "3", "name": "Site office"},
        headers=admin_headers,
    ).json()
    assert detail["full_code"] == "110103"

    resp = client.put(
        f"/accounting/coding/details/{detail['id']}", json={"name": "Site office cash"}, headers=admin_headers
    )
    assert resp.json()["name"] == "Site office cash"

    # parents with children stay
    assert client.delete(f"/accounting/coding/subclasses/{sub['id']}", headers=admin_headers).status_code == 400
    assert client.delete(f"/accounting/coding/details/{detail['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/accounting/coding/subclasses/{sub['id']}", headers=admin_headers).status_code == 200


def test_protected_default_cannot_be_deleted(client, admin_headers, coded_project):
    tree = client.get(
        "/accounting/coding/tree", params={"project_id": coded_project}, headers=admin_headers
    ).json()
    detail_id = tree["groups"][0]["classes"][0]["sub_classes"][0]["details"][0]["id"]
    assert client.delete(f"/accounting/coding/details/{detail_id}", headers=admin_headers).status_code == 400


def test_remove_default_keeps_custom_accounts(client, admin_headers, coded_project):
    tree = client.get(
        "/accounting/coding/tree", params={"project_id": coded_project}, headers=admin_headers
    ).json()
    group_id = tree["groups"][0]["id"]
    client.post(
        "/accounting/coding/classes",
        json={"group_id": group_id, "code": "9", "name": "Deposits"},
        headers=admin_headers,
    )

    resp = client.delete(
        "/accounting/coding/import-default", params={"project_id": coded_project}, headers=admin_headers
    )
    assert resp.status_code == 200

    groups = client.get(
        "/accounting/coding/tree", params={"project_id": coded_project}, headers=admin_headers
    ).json()["groups"]
    assert [g["code"] for g in groups] == ["1"]
    assert [c["name"] for c in groups[0]["classes"]] == ["Deposits"]


# =============================================================================
# Documents
# =============================================================================

def test_document_numbering_and_names(client, admin_headers, booked_project):
    resp = client.get(
        "/accounting/documents/next-number", params={"project_id": booked_project}, headers=admin_headers
    )
    assert resp.json()["next_number"] == "4"

    docs = client.get(
        "/accounting/documents", params={"project_id": booked_project}, headers=admin_headers
    ).json()
    assert [d["document_number"] for d in docs] == ["1", "2", "3"]
    first = docs[0]
    assert first["total_debit"] == 1000.0
    assert first["entries"][0]["account_name"] == "Project A cash"
    assert first["entries"][1]["account_nature"] == "CREDIT"


@pytest.mark.parametrize(
    "lines",
    [
        [("110101", 100, 0)],
        [("110101", 100, 0), ("4101", 0, 90)],
        [("110101", 100, 100), ("4101", 0, 0)],
    ],
)
def test_invalid_documents_are_rejected(client, admin_headers, coded_project, lines):
    resp = _document(client, admin_headers, coded_project, "2024-01-01", lines)
    assert resp.status_code == 400


def test_duplicate_document_number(client, admin_headers, booked_project):
    resp = _document(
        client, admin_headers, booked_project, "2024-03-01",
        [("110101", 10, 0), ("4101", 0, 10)], number="2",
    )
    assert resp.status_code == 409


def test_only_temporary_documents_change(client, admin_headers, booked_project):
    docs = client.get(
        "/accounting/documents", params={"project_id": booked_project}, headers=admin_headers
    ).json()
    permanent, temporary = docs[0], docs[2]

    assert client.delete(f"/accounting/documents/{permanent['document_id']}", headers=admin_headers).status_code == 400
    resp = client.put(
        f"/accounting/documents/{permanent['document_id']}", json={"description": "x"}, headers=admin_headers
    )
    assert resp.status_code == 400

    resp = client.put(
        f"/accounting/documents/{temporary['document_id']}",
        json={"entries": [
            {"account_code": "8101", "debit": 75},
            {"account_code": "110101", "credit": 75},
        ]},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["total_credit"] == 75.0
    assert len(resp.json()["entries"]) == 2

    resp = client.patch(
        f"/accounting/documents/{temporary['document_id']}/status",
        json={"status": "PERMANENT"},
        headers=admin_headers,
    )
    assert resp.json()["status"] == "PERMANENT"


def test_delete_temporary_document(client, admin_headers, booked_project):
    docs = client.get(
        "/accounting/documents",
        params={"project_id": booked_project, "status": "temporary"},
        headers=admin_headers,
    ).json()
    assert len(docs) == 1
    resp = client.delete(f"/accounting/documents/{docs[0]['document_id']}", headers=admin_headers)
    assert resp.status_code == 200


# =============================================================================
# Books
# =============================================================================

def test_daybook_uses_permanent_documents(client, admin_headers, booked_project):
    book = client.get(
        "/accounting/books/daybook", params={"project_id": booked_project}, headers=admin_headers
    ).json()
    assert len(book["rows"]) == 4
    assert book["total_debit"] == 1300.0
    assert book["is_balanced"] is True


def test_general_ledger_with_opening_balance(client, admin_headers, booked_project):
    ledger = client.get(
        "/accounting/books/general-ledger",
        params={"project_id": booked_project, "class_code": "11", "date_from": "2024-02-01"},
        headers=admin_headers,
    ).json()
    assert ledger["class_name"] == "Cash"
    assert ledger["opening_balance"] == 1000.0
    assert ledger["closing_balance"] == 700.0
    assert ledger["balance_nature"] == "DEBIT"
    assert [d["code"] for d in ledger["details"]] == ["110101", "110102"]


def test_subsidiary_and_detail_ledgers(client, admin_headers, booked_project):
    resp = client.get(
        "/accounting/books/subsidiary-ledger",
        params={"project_id": booked_project, "codes": "1101,4101"},
        headers=admin_headers,
    )
    ledgers = {l["code"]: l for l in resp.json()["ledgers"]}
    assert ledgers["1101"]["closing_balance"] == 700.0
    assert ledgers["4101"]["closing_balance"] == -1000.0
    assert ledgers["4101"]["balance_nature"] == "CREDIT"

    resp = client.get(
        "/accounting/books/detail-ledger",
        params={"project_id": booked_project, "codes": "1101"},
        headers=admin_headers,
    )
    assert resp.status_code == 400

    resp = client.get(
        "/accounting/books/detail-ledger", params={"project_id": booked_project}, headers=admin_headers
    )
    assert [l["code"] for l in resp.json()["ledgers"]] == ["110101"]


def test_trial_balance(client, admin_headers, booked_project):
    tb = client.get(
        "/accounting/books/trial-balance", params={"project_id": booked_project}, headers=admin_headers
    ).json()
    assert [r["code"] for r in tb["rows"]] == ["11", "41", "81"]
    assert tb["totals"]["debit"] == 1300.0
    assert tb["totals"]["credit"] == 1300.0
    assert tb["is_balanced"] is True

    tb = client.get(
        "/accounting/books/trial-balance",
        params={"project_id": booked_project, "columns": 4, "date_from": "2024-02-01"},
        headers=admin_headers,
    ).json()
    assert tb["totals"]["closing_debit"] == 1000.0
    assert tb["totals"]["closing_credit"] == 1000.0

    resp = client.get(
        "/accounting/books/trial-balance",
        params={"project_id": booked_project, "columns": 3},
        headers=admin_headers,
    )
    assert resp.status_code == 400
