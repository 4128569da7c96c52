from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.utils.coding_utils import level_of
from app.utils.ledger_calculations import (
    build_ledger,
    build_daybook,
    build_trial_balance,
    build_balance_sheet,
)
from app.utils.accounting_ops import permanent_entry_rows, level_accounts, resolve_full_code
from app.models.user_model import User
from app.models.project_model import Project
from app.routers.accounting_documents_router import get_fiscal_year

router = APIRouter(prefix="/accounting/books", tags=["Accounting Books"])


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def _plain(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _check_project(db: Session, project_id: int, fiscal_year_id: Optional[int] = None):
    if not db.query(Project.project_id).filter(Project.project_id == project_id).first():
        raise HTTPException(404, "Project not found")
    get_fiscal_year(db, project_id, fiscal_year_id, writable=False)


def _check_range(date_from: Optional[date], date_to: Optional[date]):
    if date_from and date_to and date_from > date_to:
        raise HTTPException(400, "date_from must not be after date_to")


def _split_codes(codes: Optional[List[str]]) -> List[str]:
    out = []
    for raw in codes or []:
        out.extend(c.strip() for c in str(raw).split(",") if c.strip())
    return out


def _ledgers_for_level(db: Session, project_id: int, level: str, codes: List[str],
                       fiscal_year_id: Optional[int], date_from, date_to) -> list:
    entries = permanent_entry_rows(db, project_id, date_to, fiscal_year_id)
    accounts = {a["code"]: a for a in level_accounts(db, project_id, level, fiscal_year_id)}

    if codes:
        for c in codes:
            try:
                if level_of(c) != level:
                    raise ValueError
            except ValueError:
                raise HTTPException(400, f"'{c}' is not a {level} code")
        selected = [accounts.get(c, {"code": c, "name": None, "nature": None}) for c in codes]
    else:
        selected = list(accounts.values())

    out = []
    for acc in selected:
        ledger = build_ledger(entries, [acc["code"]], date_from, date_to)
        if not codes and not ledger["rows"] and ledger["opening_balance"] == 0:
            continue
        out.append({**acc, **ledger})
    return out


# =================================================
# 🔹 DAYBOOK
# =================================================
@router.get("/daybook")
def daybook(
        project_id: int = Query(...),
        fiscal_year_id: Optional[int] = Query(None),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _check_project(db, project_id, fiscal_year_id)
    _check_range(date_from, date_to)

    entries = permanent_entry_rows(db, project_id, date_to, fiscal_year_id)
    return _plain({"project_id": project_id, **build_daybook(entries, date_from, date_to)})


# =================================================
# 🔹 LEDGERS
# =================================================
@router.get("/general-ledger")
def general_ledger(
        project_id: int = Query(...),
        class_code: str = Query(..., min_length=2, max_length=2),
        fiscal_year_id: Optional[int] = Query(None),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """One row per document summing every line under the class code."""
    _check_project(db, project_id, fiscal_year_id)
    _check_range(date_from, date_to)
    if not class_code.isdigit():
        raise HTTPException(400, "class_code must be 2 digits")

    found = resolve_full_code(db, project_id, class_code, fiscal_year_id)

    entries = permanent_entry_rows(db, project_id, date_to, fiscal_year_id)
    ledger = build_ledger(entries, [class_code], date_from, date_to)

    subsidiaries = [
        {"code": a["code"], "name": a["name"]}
        for a in level_accounts(db, project_id, "subclass", fiscal_year_id)
        if a["code"].startswith(class_code)
    ]
    details = [
        {"code": a["code"], "name": a["name"]}
        for a in level_accounts(db, project_id, "detail", fiscal_year_id)
        if a["code"].startswith(class_code)
    ]

    return _plain({
        "project_id": project_id,
        "class_code": class_code,
        "class_name": found["name"] if found else None,
        "nature": found["nature"] if found else None,
        "subsidiaries": subsidiaries,
        "details": details,
        **ledger,
    })


@router.get("/subsidiary-ledger")
def subsidiary_ledger(
        project_id: int = Query(...),
        codes: Optional[List[str]] = Query(None),
        fiscal_year_id: Optional[int] = Query(None),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """4-digit subclass codes (repeat ?codes= or comma separate); all active ones when omitted."""
    _check_project(db, project_id, fiscal_year_id)
    _check_range(date_from, date_to)
    ledgers = _ledgers_for_level(
        db, project_id, "subclass", _split_codes(codes), fiscal_year_id, date_from, date_to
    )
    return _plain({"project_id": project_id, "ledgers": ledgers})


@router.get("/detail-ledger")
def detail_ledger(
        project_id: int = Query(...),
        codes: Optional[List[str]] = Query(None),
        fiscal_year_id: Optional[int] = Query(None),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _check_project(db, project_id, fiscal_year_id)
    _check_range(date_from, date_to)
    ledgers = _ledgers_for_level(
        db, project_id, "detail", _split_codes(codes), fiscal_year_id, date_from, date_to
    )
    return _plain({"project_id": project_id, "ledgers": ledgers})


# =================================================
# 🔹 TRIAL BALANCE
# =================================================
@router.get("/trial-balance")
def trial_balance(
        project_id: int = Query(...),
        level: str = Query("class", pattern="^(class|subclass|detail)$"),
        columns: int = Query(2),
        fiscal_year_id: Optional[int] = Query(None),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        include_zero: bool = Query(False),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _check_project(db, project_id, fiscal_year_id)
    _check_range(date_from, date_to)

    accounts = level_accounts(db, project_id, level, fiscal_year_id)
    entries = permanent_entry_rows(db, project_id, date_to, fiscal_year_id)
    try:
        result = build_trial_balance(accounts, entries, date_from, date_to, columns, include_zero)
    except ValueError as e:
        raise HTTPException(400, str(e))

    return _plain({"project_id": project_id, "level": level, **result})


# =================================================
# 🔹 BALANCE SHEET
# =================================================
@router.get("/balance-sheet")
def balance_sheet(
        project_id: int = Query(...),
        fiscal_year_id: Optional[int] = Query(None),
        date_to: Optional[date] = Query(None),
        include_zero: bool = Query(False),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Class balances of groups 1-4 with the unclosed result of groups 5-8 in equity."""
    _check_project(db, project_id, fiscal_year_id)

    accounts = level_accounts(db, project_id, "class", fiscal_year_id)
    entries = permanent_entry_rows(db, project_id, date_to, fiscal_year_id)
    result = build_balance_sheet(accounts, entries, date_to, include_zero)

    return _plain({"project_id": project_id, "date_to": date_to, **result})
