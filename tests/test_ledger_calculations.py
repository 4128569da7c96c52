from datetime import date
from decimal import Decimal

import pytest

from app.utils.ledger_calculations import (
    balance_nature,
    running_balance,
    validate_document_entries,
    validate_journal_balance,
    build_ledger,
    build_daybook,
    build_trial_balance,
    account_balances,
    closing_lines,
    opening_lines,
    build_balance_sheet,
)


def _line(doc_id, number, day, code, debit=0, credit=0):
    return {
        "document_id": doc_id,
        "document_number": number,
        "document_date": day,
        "document_description": f"doc {number}",
        "entry_id": None,
        "account_code": code,
        "account_name": code,
        "description": None,
        "debit": debit,
        "credit": credit,
    }


@pytest.fixture
def entries():
    rows = [
        _line(1, "1", date(2024, 1, 10), "110101", debit=1000),
        _line(1, "1", date(2024, 1, 10), "4101", credit=1000),
        _line(2, "2", date(2024, 2, 5), "8101", debit=300),
        _line(2, "2", date(2024, 2, 5), "110101", credit=300),
    ]
    for i, r in enumerate(rows, start=1):
        r["entry_id"] = i
    return rows


def test_balance_nature():
    assert balance_nature(5) == "DEBIT"
    assert balance_nature(-5) == "CREDIT"
    assert balance_nature(0) == "ZERO"


def test_running_balance_credit_nature():
    rows = running_balance([{"debit": 0, "credit": 100}, {"debit": 30, "credit": 0}], nature="CREDIT")
    assert [r["balance"] for r in rows] == [Decimal("100.00"), Decimal("70.00")]


def test_journal_balance_tolerance():
    assert validate_journal_balance([{"debit": "100.00"}, {"credit": "99.995"}])["is_balanced"]
    assert not validate_journal_balance([{"debit": 100}, {"credit": 99}])["is_balanced"]


def test_document_entries_valid():
    result = validate_document_entries(
        [{"account_code": "110101", "debit": 50}, {"account_code": "4101", "credit": 50}]
    )
    assert result["total_debit"] == Decimal("50.00")


@pytest.mark.parametrize(
    "lines",
    [
        [{"account_code": "110101", "debit": 50}],
        [{"account_code": "", "debit": 50}, {"account_code": "4101", "credit": 50}],
        [{"account_code": "110101", "debit": 50, "credit": 50}, {"account_code": "4101", "credit": 0}],
        [{"account_code": "110101", "debit": 50}, {"account_code": "4101", "credit": 40}],
    ],
)
def test_document_entries_invalid(lines):
    with pytest.raises(ValueError):
        validate_document_entries(lines)


def test_ledger_with_opening_balance(entries):
    ledger = build_ledger(entries, ["11"], date_from=date(2024, 2, 1))
    assert ledger["opening_balance"] == Decimal("1000.00")
    assert ledger["total_credit"] == Decimal("300.00")
    assert ledger["closing_balance"] == Decimal("700.00")
    assert ledger["balance_nature"] == "DEBIT"
    assert [r["balance"] for r in ledger["rows"]] == [Decimal("700.00")]


def test_daybook_is_balanced(entries):
    book = build_daybook(entries)
    assert len(book["rows"]) == 4
    assert book["is_balanced"]
    assert book["total_debit"] == Decimal("1300.00")


def test_daybook_date_range(entries):
    book = build_daybook(entries, date_from=date(2024, 2, 1))
    assert {r["document_number"] for r in book["rows"]} == {"2"}


def test_trial_balance_two_columns(entries):
    accounts = [{"code": "11", "name": "Cash"}, {"code": "41", "name": "Capital"},
                {"code": "81", "name": "Costs"}, {"code": "21", "name": "Payables"}]
    tb = build_trial_balance(accounts, entries)
    assert [r["code"] for r in tb["rows"]] == ["11", "41", "81"]
    assert tb["totals"]["debit"] == Decimal("1300.00")
    assert tb["totals"]["credit"] == Decimal("1300.00")
    assert tb["is_balanced"]

    cash = tb["rows"][0]
    assert cash["balance_debit"] == Decimal("700.00")
    assert cash["balance_nature"] == "DEBIT"


def test_trial_balance_four_columns(entries):
    accounts = [{"code": "11", "name": "Cash"}, {"code": "41", "name": "Capital"}, {"code": "81", "name": "Costs"}]
    tb = build_trial_balance(accounts, entries, date_from=date(2024, 2, 1), columns=4)
    cash = tb["rows"][0]
    assert cash["opening_debit"] == Decimal("1000.00")
    assert cash["period_credit"] == Decimal("300.00")
    assert cash["closing_debit"] == Decimal("700.00")
    assert tb["totals"]["closing_debit"] == Decimal("1000.00")
    assert tb["totals"]["closing_credit"] == Decimal("1000.00")
    assert tb["is_balanced"]


def test_trial_balance_include_zero(entries):
    tb = build_trial_balance([{"code": "21", "name": "Payables"}], entries, include_zero=True)
    assert len(tb["rows"]) == 1


def test_trial_balance_rejects_other_columns(entries):
    with pytest.raises(ValueError):
        build_trial_balance([], entries, columns=3)


# =============================================================================
# Year end
# =============================================================================

def test_account_balances_drop_settled_accounts(entries):
    settled = entries + [
        _line(3, "3", date(2024, 3, 1), "3101", debit=50),
        _line(3, "3", date(2024, 3, 1), "3101", credit=50),
    ]
    balances = {b["account_code"]: b for b in account_balances(settled)}

    assert set(balances) == {"110101", "4101", "8101"}
    assert balances["110101"]["balance"] == Decimal("700.00")
    assert balances["4101"]["balance_nature"] == "CREDIT"
    assert balances["110101"]["carried_forward"] is True
    assert balances["8101"]["carried_forward"] is False


def test_account_balances_stop_at_date(entries):
    balances = account_balances(entries, date_to=date(2024, 1, 31))
    assert [b["account_code"] for b in balances] == ["110101", "4101"]


def test_closing_lines_zero_every_account(entries):
    lines = closing_lines(account_balances(entries))
    by_code = {l["account_code"]: (l["debit"], l["credit"]) for l in lines}

    assert by_code == {
        "110101": (Decimal("0"), Decimal("700.00")),
        "4101": (Decimal("1000.00"), Decimal("0")),
        "8101": (Decimal("0"), Decimal("300.00")),
    }
    assert validate_journal_balance(lines)["is_balanced"]
    assert account_balances(entries + [dict(l, document_date=date(2024, 12, 31)) for l in lines]) == []


def test_opening_lines_reverse_carried_accounts(entries):
    lines = opening_lines(closing_lines(account_balances(entries)))
    by_code = {l["account_code"]: (l["debit"], l["credit"]) for l in lines}

    # the expense was closed, so the year's loss is left for the user to post
    assert by_code == {
        "110101": (Decimal("700.00"), Decimal("0")),
        "4101": (Decimal("0"), Decimal("1000.00")),
    }
    assert validate_journal_balance(lines)["difference"] == Decimal("-300.00")


def test_balance_sheet_includes_unclosed_result(entries):
    accounts = [
        {"code": "11", "name": "Cash"},
        {"code": "31", "name": "Payables"},
        {"code": "41", "name": "Capital"},
        {"code": "81", "name": "Expenses"},
    ]
    sheet = build_balance_sheet(accounts, entries)

    assert sheet["current_assets"]["rows"] == [{"code": "11", "name": "Cash", "balance": Decimal("700.00")}]
    assert sheet["liabilities"]["rows"] == []
    assert sheet["equity"]["total"] == Decimal("1000.00")
    assert sheet["period_result"] == Decimal("-300.00")
    assert sheet["total_assets"] == sheet["total_liabilities_and_equity"] == Decimal("700.00")
    assert sheet["is_balanced"] is True


def test_balance_sheet_as_of_date(entries):
    sheet = build_balance_sheet([{"code": "11", "name": "Cash"}], entries, date_to=date(2024, 1, 31))
    assert sheet["total_assets"] == Decimal("1000.00")
    assert sheet["period_result"] == Decimal("0.00")
