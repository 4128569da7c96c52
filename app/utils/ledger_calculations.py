"""
Double-entry book aggregation.

Everything here works on plain dict rows so it can be tested without a
database. An "entry row" is one journal line flattened with its document::

    {
        "document_id", "document_number", "document_date", "document_description",
        "entry_id", "account_code", "account_name", "description",
        "debit", "credit",
    }

Accounts are matched to entries by account-code string prefix, so a class
code "11" collects every "11xxxx" line.
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Dict, Any, Optional, Sequence

from app.utils.financial_calculations import money, as_date, ZERO
from app.utils.coding_utils import matches_prefix

BALANCE_TOLERANCE = Decimal("0.01")


def balance_nature(balance) -> str:
    b = money(balance)
    if b > 0:
        return "DEBIT"
    if b < 0:
        return "CREDIT"
    return "ZERO"


def document_number_key(number) -> tuple:
    n = str(number or "").strip()
    return (0, int(n), n) if n.isdigit() else (1, 0, n)


def entry_sort_key(row: Dict[str, Any]) -> tuple:
    return (
        as_date(row.get("document_date")) or date.min,
        document_number_key(row.get("document_number")),
        row.get("document_id") or 0,
        row.get("entry_id") or 0,
    )


# -------------------------------------------------
# Generic helpers
# -------------------------------------------------
def filter_by_date_range(rows: Iterable[Dict[str, Any]], date_from=None, date_to=None,
                         key: str = "document_date") -> List[Dict[str, Any]]:
    start = as_date(date_from)
    end = as_date(date_to)
    out = []
    for r in rows:
        d = as_date(r.get(key))
        if start and (d is None or d < start):
            continue
        if end and (d is None or d > end):
            continue
        out.append(r)
    return out


def running_balance(rows: Iterable[Dict[str, Any]], opening_balance=0,
                    nature: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Copy rows adding ``balance``.

    Without a nature (or DEBIT / DEBIT_CREDIT) the balance grows with debit;
    a CREDIT natured account grows with credit instead.
    """
    credit_natured = (nature or "").upper() == "CREDIT"
    balance = money(opening_balance)
    out = []
    for r in rows:
        debit = money(r.get("debit"))
        credit = money(r.get("credit"))
        if credit_natured:
            balance = money(balance + credit - debit)
        else:
            balance = money(balance + debit - credit)
        row = dict(r)
        row["balance"] = balance
        out.append(row)
    return out


def account_summary(rows: Iterable[Dict[str, Any]], opening_balance=0) -> Dict[str, Any]:
    total_debit = ZERO
    total_credit = ZERO
    for r in rows:
        total_debit += money(r.get("debit"))
        total_credit += money(r.get("credit"))

    opening = money(opening_balance)
    closing = money(opening + total_debit - total_credit)
    return {
        "opening_balance": opening,
        "total_debit": money(total_debit),
        "total_credit": money(total_credit),
        "closing_balance": closing,
        "balance_nature": balance_nature(closing),
    }


def validate_journal_balance(entries: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    total_debit = ZERO
    total_credit = ZERO
    for e in entries:
        total_debit += money(e.get("debit"))
        total_credit += money(e.get("credit"))

    difference = money(total_debit - total_credit)
    return {
        "is_balanced": abs(difference) <= BALANCE_TOLERANCE,
        "total_debit": money(total_debit),
        "total_credit": money(total_credit),
        "difference": difference,
    }


def validate_document_entries(entries: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Raise ValueError unless the lines form a valid balanced document."""
    if len(entries) < 2:
        raise ValueError("A document needs at least two entries")

    for idx, e in enumerate(entries, start=1):
        if not str(e.get("account_code") or "").strip():
            raise ValueError(f"Entry {idx}: account code is required")
        debit = money(e.get("debit"))
        credit = money(e.get("credit"))
        if debit < 0 or credit < 0:
            raise ValueError(f"Entry {idx}: amounts cannot be negative")
        if (debit > 0) == (credit > 0):
            raise ValueError(f"Entry {idx}: exactly one of debit or credit must be positive")

    result = validate_journal_balance(entries)
    if not result["is_balanced"]:
        raise ValueError(
            f"Total debit ({result['total_debit']}) must equal total credit ({result['total_credit']})"
        )
    return result


# -------------------------------------------------
# Books
# -------------------------------------------------
def opening_balance_for(entries: Iterable[Dict[str, Any]], prefixes: Sequence[str], date_from) -> Decimal:
    start = as_date(date_from)
    if start is None:
        return ZERO
    total = ZERO
    for e in entries:
        d = as_date(e.get("document_date"))
        if d is not None and d < start and matches_prefix(e.get("account_code"), prefixes):
            total += money(e.get("debit")) - money(e.get("credit"))
    return money(total)


def group_by_document(entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """One row per document summing its lines, ordered by date then number."""
    docs: "OrderedDict[Any, Dict[str, Any]]" = OrderedDict()
    for e in sorted(entries, key=entry_sort_key):
        doc_id = e.get("document_id")
        row = docs.get(doc_id)
        if row is None:
            row = {
                "document_id": doc_id,
                "document_number": e.get("document_number"),
                "document_date": as_date(e.get("document_date")),
                "description": e.get("document_description") or e.get("description"),
                "debit": ZERO,
                "credit": ZERO,
                "account_codes": [],
            }
            docs[doc_id] = row
        row["debit"] = money(row["debit"] + money(e.get("debit")))
        row["credit"] = money(row["credit"] + money(e.get("credit")))
        code = e.get("account_code")
        if code and code not in row["account_codes"]:
            row["account_codes"].append(code)
    return list(docs.values())


def build_ledger(entries: Sequence[Dict[str, Any]], prefixes: Sequence[str],
                 date_from=None, date_to=None) -> Dict[str, Any]:
    """
    Ledger for the accounts matching ``prefixes``: opening balance from lines
    before ``date_from``, one row per document in the period, running balance
    adding debit - credit.
    """
    prefixes = [p for p in prefixes if p]
    matching = [e for e in entries if matches_prefix(e.get("account_code"), prefixes)]

    opening = opening_balance_for(matching, prefixes, date_from)
    period = filter_by_date_range(matching, date_from, date_to)

    rows = running_balance(group_by_document(period), opening_balance=opening)
    summary = account_summary(rows, opening_balance=opening)

    return {
        "rows": rows,
        "opening_balance": summary["opening_balance"],
        "total_debit": summary["total_debit"],
        "total_credit": summary["total_credit"],
        "closing_balance": summary["closing_balance"],
        "balance_nature": summary["balance_nature"],
    }


def build_daybook(entries: Sequence[Dict[str, Any]], date_from=None, date_to=None) -> Dict[str, Any]:
    rows = sorted(filter_by_date_range(entries, date_from, date_to), key=entry_sort_key)
    check = validate_journal_balance(rows)
    return {
        "rows": [
            {
                "document_id": r.get("document_id"),
                "document_number": r.get("document_number"),
                "document_date": as_date(r.get("document_date")),
                "entry_id": r.get("entry_id"),
                "account_code": r.get("account_code"),
                "account_name": r.get("account_name"),
                "description": r.get("description") or r.get("document_description"),
                "debit": money(r.get("debit")),
                "credit": money(r.get("credit")),
            }
            for r in rows
        ],
        "total_debit": check["total_debit"],
        "total_credit": check["total_credit"],
        "is_balanced": check["is_balanced"],
    }


def _split(balance: Decimal):
    balance = money(balance)
    if balance >= 0:
        return balance, ZERO
    return ZERO, money(-balance)


def build_trial_balance(accounts: Sequence[Dict[str, Any]], entries: Sequence[Dict[str, Any]],
                        date_from=None, date_to=None, columns: int = 2,
                        include_zero: bool = False) -> Dict[str, Any]:
    """
    accounts: [{"code", "name"}] of one level (class, subclass or detail).

    Two columns: turnover up to ``date_to`` (opening included) and the net
    balance split into debit/credit. Four columns: opening, period and
    closing, each split into debit/credit.
    """
    if columns not in (2, 4):
        raise ValueError("columns must be 2 or 4")

    start = as_date(date_from)
    end = as_date(date_to)

    out = []
    totals: Dict[str, Decimal] = {}

    for acc in accounts:
        code = acc["code"]
        opening_debit = opening_credit = period_debit = period_credit = ZERO

        for e in entries:
            if not str(e.get("account_code") or "").startswith(code):
                continue
            d = as_date(e.get("document_date"))
            if end and d is not None and d > end:
                continue
            debit = money(e.get("debit"))
            credit = money(e.get("credit"))
            if start and d is not None and d < start:
                opening_debit += debit
                opening_credit += credit
            else:
                period_debit += debit
                period_credit += credit

        opening_net = money(opening_debit - opening_credit)
        closing_net = money(opening_net + period_debit - period_credit)

        if columns == 2:
            row = {
                "code": code,
                "name": acc.get("name"),
                "debit": money(opening_debit + period_debit),
                "credit": money(opening_credit + period_credit),
            }
            row["balance_debit"], row["balance_credit"] = _split(closing_net)
        else:
            row = {"code": code, "name": acc.get("name")}
            row["opening_debit"], row["opening_credit"] = _split(opening_net)
            row["period_debit"] = money(period_debit)
            row["period_credit"] = money(period_credit)
            row["closing_debit"], row["closing_credit"] = _split(closing_net)

        row["balance_nature"] = balance_nature(closing_net)

        amounts = [v for k, v in row.items() if k not in ("code", "name", "balance_nature")]
        if not include_zero and all(v == 0 for v in amounts):
            continue

        for k, v in row.items():
            if k in ("code", "name", "balance_nature"):
                continue
            totals[k] = money(totals.get(k, ZERO) + v)
        out.append(row)

    if columns == 2:
        is_balanced = abs(totals.get("debit", ZERO) - totals.get("credit", ZERO)) <= BALANCE_TOLERANCE
    else:
        is_balanced = abs(totals.get("closing_debit", ZERO) - totals.get("closing_credit", ZERO)) <= BALANCE_TOLERANCE

    return {"columns": columns, "rows": out, "totals": totals, "is_balanced": is_balanced}


# -------------------------------------------------
# Year end
# -------------------------------------------------
# groups 1-4 (assets, liabilities, equity) carry into the next fiscal year;
# everything else is closed at year end
CARRIED_FORWARD_GROUPS = ("1", "2", "3", "4")
RESULT_GROUPS = ("5", "6", "7", "8")


def is_carried_forward(account_code) -> bool:
    return str(account_code or "").strip()[:1] in CARRIED_FORWARD_GROUPS


def account_balances(entries: Iterable[Dict[str, Any]], date_to=None) -> List[Dict[str, Any]]:
    """Net debit - credit per account code up to ``date_to``; zero balances are dropped."""
    end = as_date(date_to)
    by_code: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    for e in sorted(entries, key=lambda r: str(r.get("account_code") or "")):
        d = as_date(e.get("document_date"))
        if end and d is not None and d > end:
            continue
        code = str(e.get("account_code") or "").strip()
        row = by_code.get(code)
        if row is None:
            row = {"account_code": code, "account_name": None, "debit": ZERO, "credit": ZERO}
            by_code[code] = row
        row["account_name"] = row["account_name"] or e.get("account_name")
        row["debit"] = money(row["debit"] + money(e.get("debit")))
        row["credit"] = money(row["credit"] + money(e.get("credit")))

    out = []
    for code, row in by_code.items():
        balance = money(row["debit"] - row["credit"])
        if balance == 0:
            continue
        row["balance"] = balance
        row["balance_nature"] = balance_nature(balance)
        row["carried_forward"] = is_carried_forward(code)
        out.append(row)
    return out


def closing_lines(balances: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Journal lines bringing every balance back to zero. Built from balanced
    documents, so the lines balance too.
    """
    lines = []
    for b in balances:
        balance = money(b.get("balance"))
        if balance == 0:
            continue
        name = b.get("account_name") or b.get("account_code")
        label = "Carried to next year" if is_carried_forward(b.get("account_code")) else "Account closed"
        lines.append({
            "account_code": b.get("account_code"),
            "account_name": b.get("account_name"),
            "description": f"{label}: {name}",
            "debit": ZERO if balance > 0 else money(-balance),
            "credit": balance if balance > 0 else ZERO,
        })
    return lines


def opening_lines(closing: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Reverse the carried-forward lines of a closing entry. The result of the
    closed year stays out, so the lines are unbalanced by that amount until
    it is posted to an equity account.
    """
    lines = []
    for c in closing:
        if not is_carried_forward(c.get("account_code")):
            continue
        name = c.get("account_name") or c.get("account_code")
        lines.append({
            "account_code": c.get("account_code"),
            "account_name": c.get("account_name"),
            "description": f"Opening balance: {name}",
            "debit": money(c.get("credit")),
            "credit": money(c.get("debit")),
        })
    return lines


BALANCE_SHEET_SECTIONS = (
    ("1", "current_assets"),
    ("2", "non_current_assets"),
    ("3", "liabilities"),
    ("4", "equity"),
)


def build_balance_sheet(accounts: Sequence[Dict[str, Any]], entries: Sequence[Dict[str, Any]],
                        date_to=None, include_zero: bool = False) -> Dict[str, Any]:
    """
    accounts: class level [{"code", "name"}]. Asset classes show debit - credit,
    liability and equity classes credit - debit. Result accounts (groups 5-8)
    not yet closed are reported as ``period_result`` inside equity.
    """
    end = as_date(date_to)
    rows = [
        e for e in entries
        if not (end and as_date(e.get("document_date")) and as_date(e.get("document_date")) > end)
    ]
    sections = {name: {"rows": [], "total": ZERO} for _, name in BALANCE_SHEET_SECTIONS}
    section_of = dict(BALANCE_SHEET_SECTIONS)

    for acc in accounts:
        code = acc["code"]
        section = section_of.get(code[:1])
        if section is None:
            continue
        net = ZERO
        for e in rows:
            if matches_prefix(e.get("account_code"), [code]):
                net += money(e.get("debit")) - money(e.get("credit"))
        amount = money(net if code[:1] in ("1", "2") else -net)
        if amount == 0 and not include_zero:
            continue
        sections[section]["rows"].append({"code": code, "name": acc.get("name"), "balance": amount})
        sections[section]["total"] = money(sections[section]["total"] + amount)

    result = ZERO
    for e in rows:
        if str(e.get("account_code") or "")[:1] in RESULT_GROUPS:
            result += money(e.get("credit")) - money(e.get("debit"))
    result = money(result)

    total_assets = money(sections["current_assets"]["total"] + sections["non_current_assets"]["total"])
    total_liabilities = sections["liabilities"]["total"]
    total_equity = money(sections["equity"]["total"] + result)
    liabilities_and_equity = money(total_liabilities + total_equity)

    return {
        **sections,
        "period_result": result,
        "total_assets": total_assets,
        "total_liabilities": total_liabilities,
        "total_equity": total_equity,
        "total_liabilities_and_equity": liabilities_and_equity,
        "is_balanced": abs(total_assets - liabilities_and_equity) <= BALANCE_TOLERANCE,
    }
