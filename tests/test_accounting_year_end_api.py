import pytest


def _document(client, headers, project_id, day, lines, fiscal_year_id=None, status="PERMANENT"):
    body = {
        "project_id": project_id,
        "document_date": day,
        "status": status,
        "entries": [
            {"account_code": code, "debit": debit, "credit": credit}
            for code, debit, credit in lines
        ],
    }
    if fiscal_year_id is not None:
        body["fiscal_year_id"] = fiscal_year_id
    return client.post("/accounting/documents", json=body, headers=headers)


def _fiscal_year(client, headers, project_id, year):
    resp = client.post(
        f"/projects/{project_id}/fiscal-years",
        json={"year": year, "start_date": f"{year}-01-01", "end_date": f"{year}-12-31"},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["fiscal_year_id"]


@pytest.fixture
def books(client, admin_headers, make_project):
    """Capital 1000 into cash, 300 spent; fiscal years 2024 and 2025."""
    pid = make_project("Ledger Tower")["project_id"]
    resp = client.post("/accounting/coding/import-default", json={"project_id": pid}, headers=admin_headers)
    assert resp.status_code == 201

    fy2024 = _fiscal_year(client, admin_headers, pid, 2024)
    fy2025 = _fiscal_year(client, admin_headers, pid, 2025)

    assert _document(
        client, admin_headers, pid, "2024-01-10", [("110101", 1000, 0), ("4101", 0, 1000)], fy2024
    ).status_code == 201
    assert _document(
        client, admin_headers, pid, "2024-02-05", [("8101", 300, 0), ("110101", 0, 300)], fy2024
    ).status_code == 201
    return {"pid": pid, "fy2024": fy2024, "fy2025": fy2025}


def _close_2024(client, headers, books):
    return client.post(
        "/accounting/closing-entry",
        json={"project_id": books["pid"], "fiscal_year_id": books["fy2024"]},
        headers=headers,
    )


def _fiscal_years(client, headers, pid):
    resp = client.get(f"/projects/{pid}/fiscal-years", headers=headers)
    return {fy["fiscal_year_id"]: fy for fy in resp.json()}


# =============================================================================
# Closing entry
# =============================================================================

def test_closing_balances_preview(client, admin_headers, books):
    resp = client.get(
        "/accounting/closing-entry/balances",
        params={"project_id": books["pid"], "fiscal_year_id": books["fy2024"]},
        headers=admin_headers,
    )
    body = resp.json()
    accounts = {a["account_code"]: a for a in body["accounts"]}

    assert accounts["110101"]["balance"] == 700.0
    assert accounts["110101"]["carried_forward"] is True
    assert accounts["8101"]["carried_forward"] is False
    assert body["total_debit"] == body["total_credit"] == 1000.0
    assert body["is_balanced"] is True


def test_closing_entry_closes_the_year(client, admin_headers, books):
    resp = _close_2024(client, admin_headers, books)
    assert resp.status_code == 201, resp.text
    doc = resp.json()
    assert doc["status"] == "PERMANENT"
    assert doc["document_date"] == "2024-12-31"
    assert doc["total_debit"] == doc["total_credit"] == 1000.0

    fy = _fiscal_years(client, admin_headers, books["pid"])[books["fy2024"]]
    assert fy["is_closed"] is True
    assert fy["is_active"] is False
    assert fy["closing_document_id"] == doc["document_id"]

    # every account is back to zero
    tb = client.get(
        "/accounting/books/trial-balance",
        params={"project_id": books["pid"], "level": "detail"},
        headers=admin_headers,
    ).json()
    assert all(r["balance_debit"] == r["balance_credit"] == 0 for r in tb["rows"])


def test_closed_year_is_locked(client, admin_headers, books):
    doc_id = _close_2024(client, admin_headers, books).json()["document_id"]

    assert _close_2024(client, admin_headers, books).status_code == 400

    resp = _document(
        client, admin_headers, books["pid"], "2024-06-01", [("110101", 10, 0), ("4101", 0, 10)], books["fy2024"]
    )
    assert resp.status_code == 400

    resp = client.patch(
        f"/accounting/documents/{doc_id}/status", json={"status": "TEMPORARY"}, headers=admin_headers
    )
    assert resp.status_code == 400


def test_closing_without_balances_is_refused(client, admin_headers, make_project):
    pid = make_project("Empty Tower")["project_id"]
    fy = _fiscal_year(client, admin_headers, pid, 2024)
    resp = client.post(
        "/accounting/closing-entry", json={"project_id": pid, "fiscal_year_id": fy}, headers=admin_headers
    )
    assert resp.status_code == 400


def test_closing_date_must_fall_in_the_year(client, admin_headers, books):
    resp = client.post(
        "/accounting/closing-entry",
        json={"project_id": books["pid"], "fiscal_year_id": books["fy2024"], "document_date": "2025-01-05"},
        headers=admin_headers,
    )
    assert resp.status_code == 400


# =============================================================================
# Opening entry
# =============================================================================

def test_opening_suggestion_follows_previous_closing(client, admin_headers, books):
    _close_2024(client, admin_headers, books)

    body = client.get(
        "/accounting/opening-entry/balances",
        params={"project_id": books["pid"], "fiscal_year_id": books["fy2025"]},
        headers=admin_headers,
    ).json()

    assert body["previous_fiscal_year_id"] == books["fy2024"]
    lines = {l["account_code"]: (l["debit"], l["credit"]) for l in body["lines"]}
    assert lines == {"110101": (700.0, 0.0), "4101": (0.0, 1000.0)}
    assert body["difference"] == -300.0
    assert body["is_balanced"] is False


def test_opening_entry_once_per_year(client, admin_headers, books):
    _close_2024(client, admin_headers, books)
    body = {
        "project_id": books["pid"],
        "fiscal_year_id": books["fy2025"],
        "entries": [
            {"account_code": "110101", "debit": 700},
            {"account_code": "4101", "credit": 1000},
            {"account_code": "4202", "debit": 300},
        ],
    }

    resp = client.post("/accounting/opening-entry", json=body, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    doc = resp.json()
    assert doc["document_date"] == "2025-01-01"
    assert doc["fiscal_year_id"] == books["fy2025"]
    assert doc["entries"][2]["account_name"] == "Accumulated losses"

    fy = _fiscal_years(client, admin_headers, books["pid"])[books["fy2025"]]
    assert fy["opening_document_id"] == doc["document_id"]
    assert fy["is_closed"] is False

    resp = client.post("/accounting/opening-entry", json=body, headers=admin_headers)
    assert resp.status_code == 409


def test_unbalanced_opening_entry_is_rejected(client, admin_headers, books):
    body = {
        "project_id": books["pid"],
        "fiscal_year_id": books["fy2025"],
        "entries": [
            {"account_code": "110101", "debit": 700},
            {"account_code": "4101", "credit": 1000},
        ],
    }
    resp = client.post("/accounting/opening-entry", json=body, headers=admin_headers)
    assert resp.status_code == 400

    fy = _fiscal_years(client, admin_headers, books["pid"])[books["fy2025"]]
    assert fy["opening_document_id"] is None


# =============================================================================
# Fiscal year scope
# =============================================================================

def test_document_fiscal_year_must_belong_to_project(client, admin_headers, books, make_project):
    other = make_project("Other Tower")["project_id"]
    other_fy = _fiscal_year(client, admin_headers, other, 2024)

    lines = [("110101", 10, 0), ("4101", 0, 10)]
    assert _document(client, admin_headers, books["pid"], "2024-03-01", lines, other_fy).status_code == 400
    assert _document(client, admin_headers, books["pid"], "2024-03-01", lines, 99999).status_code == 400


def test_books_filter_by_fiscal_year(client, admin_headers, books):
    _document(
        client, admin_headers, books["pid"], "2025-02-01", [("110101", 50, 0), ("4101", 0, 50)], books["fy2025"]
    )
    pid = books["pid"]

    everything = client.get("/accounting/books/daybook", params={"project_id": pid}, headers=admin_headers).json()
    assert len(everything["rows"]) == 6

    only_2025 = client.get(
        "/accounting/books/daybook",
        params={"project_id": pid, "fiscal_year_id": books["fy2025"]},
        headers=admin_headers,
    ).json()
    assert len(only_2025["rows"]) == 2
    assert only_2025["total_debit"] == 50.0

    tb = client.get(
        "/accounting/books/trial-balance",
        params={"project_id": pid, "fiscal_year_id": books["fy2024"]},
        headers=admin_headers,
    ).json()
    assert tb["totals"]["debit"] == 1300.0


# =============================================================================
# Balance sheet
# =============================================================================

def test_balance_sheet(client, admin_headers, books):
    sheet = client.get(
        "/accounting/books/balance-sheet", params={"project_id": books["pid"]}, headers=admin_headers
    ).json()

    assert sheet["current_assets"]["rows"] == [{"code": "11", "name": "Cash", "balance": 700.0}]
    assert sheet["equity"]["total"] == 1000.0
    assert sheet["period_result"] == -300.0
    assert sheet["total_assets"] == 700.0
    assert sheet["total_liabilities_and_equity"] == 700.0
    assert sheet["is_balanced"] is True


# =============================================================================
# Common descriptions
# =============================================================================

def test_common_descriptions(client, admin_headers, books):
    base = "/accounting/common-descriptions"
    pid = books["pid"]

    first = client.post(base, json={"project_id": pid, "text": "Monthly rent"}, headers=admin_headers)
    assert first.status_code == 201
    second = client.post(base, json={"project_id": pid, "text": "Bank fees"}, headers=admin_headers)
    assert second.status_code == 201

    dup = client.post(base, json={"project_id": pid, "text": "Bank fees"}, headers=admin_headers)
    assert dup.status_code == 409

    first_id = first.json()["description_id"]
    assert client.post(f"{base}/{first_id}/use", headers=admin_headers).json()["usage_count"] == 1

    listed = client.get(base, params={"project_id": pid}, headers=admin_headers).json()
    assert [d["text"] for d in listed] == ["Monthly rent", "Bank fees"]

    resp = client.put(f"{base}/{first_id}", json={"text": "Office rent"}, headers=admin_headers)
    assert resp.json()["text"] == "Office rent"

    assert client.delete(f"{base}/{first_id}", headers=admin_headers).status_code == 200
    assert client.delete(f"{base}/{first_id}", headers=admin_headers).status_code == 404
