import logging
from datetime import timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.utils.activity_logger import log_activity
from app.utils.accounting_ops import permanent_entry_rows
from app.utils.ledger_calculations import (
    account_balances,
    closing_lines,
    opening_lines,
    validate_journal_balance,
)
from app.models.user_model import User
from app.models.project_model import Project, FiscalYear
from app.models.accounting_document_model import AccountingDocument
from app.routers.accounting_documents_router import (
    get_fiscal_year,
    build_entries,
    set_totals,
    next_document_number,
)
from app.schemas.accounting_schemas import (
    OpeningEntryIn,
    ClosingEntryIn,
    DocumentOut,
    EntryIn,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounting", tags=["Accounting Year End"])


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def _fiscal_year(db: Session, project_id: int, fiscal_year_id: int, writable: bool) -> FiscalYear:
    if not db.query(Project.project_id).filter(Project.project_id == project_id).first():
        raise HTTPException(404, "Project not found")
    return get_fiscal_year(db, project_id, fiscal_year_id, writable=writable)


def _check_date(fy: FiscalYear, document_date):
    if not (fy.start_date <= document_date <= fy.end_date):
        raise HTTPException(
            400, f"Document date must be within fiscal year {fy.start_date} .. {fy.end_date}"
        )


def _plain_lines(lines: List[dict]) -> List[dict]:
    return [{**l, "debit": float(l["debit"]), "credit": float(l["credit"])} for l in lines]


def _suggested_opening_lines(db: Session, fy: FiscalYear) -> tuple:
    previous = (
        db.query(FiscalYear)
        .filter(FiscalYear.project_id == fy.project_id, FiscalYear.end_date < fy.start_date)
        .order_by(FiscalYear.end_date.desc())
        .first()
    )

    closing_doc = None
    if previous is not None and previous.closing_document_id is not None:
        closing_doc = (
            db.query(AccountingDocument)
            .filter(AccountingDocument.document_id == previous.closing_document_id)
            .first()
        )

    if closing_doc is not None:
        source = [
            {
                "account_code": e.account_code,
                "account_name": e.account_name,
                "debit": e.debit,
                "credit": e.credit,
            }
            for e in closing_doc.entries
        ]
    else:
        # nothing closed yet: carry whatever stands before the year starts
        before = permanent_entry_rows(db, fy.project_id, fy.start_date - timedelta(days=1))
        source = closing_lines(account_balances(before))

    return previous, opening_lines(source)


def _post(db: Session, fy: FiscalYear, admin: User, entries: List[EntryIn],
          document_date, description: str) -> AccountingDocument:
    built = build_entries(db, fy.project_id, fy.fiscal_year_id, entries)
    doc = AccountingDocument(
        project_id=fy.project_id,
        fiscal_year_id=fy.fiscal_year_id,
        document_number=next_document_number(db, fy.project_id),
        document_date=document_date,
        description=description,
        status="PERMANENT",
        created_by=admin.user_id,
    )
    doc.entries.extend(built)
    set_totals(doc)
    db.add(doc)
    db.flush()
    return doc


# =================================================
# 🔹 OPENING ENTRY
# =================================================
@router.get("/opening-entry/balances")
def opening_entry_balances(
        project_id: int = Query(...),
        fiscal_year_id: int = Query(...),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Suggested opening lines: the carried-forward side of the previous closing entry."""
    fy = _fiscal_year(db, project_id, fiscal_year_id, writable=False)
    previous, lines = _suggested_opening_lines(db, fy)
    check = validate_journal_balance(lines)

    return {
        "project_id": project_id,
        "fiscal_year_id": fy.fiscal_year_id,
        "year": fy.year,
        "previous_fiscal_year_id": previous.fiscal_year_id if previous else None,
        "opening_document_id": fy.opening_document_id,
        "lines": _plain_lines(lines),
        "total_debit": float(check["total_debit"]),
        "total_credit": float(check["total_credit"]),
        "difference": float(check["difference"]),
        "is_balanced": check["is_balanced"],
    }


@router.post("/opening-entry", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
def create_opening_entry(
        payload: OpeningEntryIn,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    fy = _fiscal_year(db, payload.project_id, payload.fiscal_year_id, writable=True)
    if fy.opening_document_id is not None:
        raise HTTPException(status.HTTP_409_CONFLICT, f"Fiscal year {fy.year} already has an opening entry")

    document_date = payload.document_date or fy.start_date
    _check_date(fy, document_date)

    try:
        doc = _post(
            db, fy, admin, payload.entries, document_date,
            payload.description or f"Opening entry {fy.year}",
        )
        fy.opening_document_id = doc.document_id
        log_activity(
            db, admin.user_id, "OPENING_ENTRY", "FISCAL_YEAR", fy.fiscal_year_id,
            f"Opening entry {doc.document_number} for {fy.year} ({doc.total_debit})",
        )
        db.commit()
        db.refresh(doc)
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("Opening entry for fiscal_year_id=%s failed", fy.fiscal_year_id)
        raise

    logger.info("Opening entry %s posted for fiscal_year_id=%s", doc.document_number, fy.fiscal_year_id)
    return doc


# =================================================
# 🔹 CLOSING ENTRY
# =================================================
@router.get("/closing-entry/balances")
def closing_entry_balances(
        project_id: int = Query(...),
        fiscal_year_id: int = Query(...),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Balances at the end of the year and the lines that would close them."""
    fy = _fiscal_year(db, project_id, fiscal_year_id, writable=False)

    balances = account_balances(permanent_entry_rows(db, project_id, fy.end_date), fy.end_date)
    lines = closing_lines(balances)
    check = validate_journal_balance(lines)

    return {
        "project_id": project_id,
        "fiscal_year_id": fy.fiscal_year_id,
        "year": fy.year,
        "is_closed": fy.is_closed,
        "accounts": [
            {
                **b,
                "debit": float(b["debit"]),
                "credit": float(b["credit"]),
                "balance": float(b["balance"]),
            }
            for b in balances
        ],
        "lines": _plain_lines(lines),
        "total_debit": float(check["total_debit"]),
        "total_credit": float(check["total_credit"]),
        "is_balanced": check["is_balanced"],
    }


@router.post("/closing-entry", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
def create_closing_entry(
        payload: ClosingEntryIn,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Post a PERMANENT closing document and close the fiscal year."""
    fy = _fiscal_year(db, payload.project_id, payload.fiscal_year_id, writable=True)

    document_date = payload.document_date or fy.end_date
    _check_date(fy, document_date)

    entries = payload.entries
    if entries is None:
        balances = account_balances(permanent_entry_rows(db, fy.project_id, fy.end_date), fy.end_date)
        entries = [
            EntryIn(
                account_code=l["account_code"],
                account_name=l["account_name"],
                description=l["description"],
                debit=float(l["debit"]),
                credit=float(l["credit"]),
            )
            for l in closing_lines(balances)
        ]
        if not entries:
            raise HTTPException(400, "There are no balances to close")

    try:
        doc = _post(
            db, fy, admin, entries, document_date,
            payload.description or f"Closing entry {fy.year}",
        )
        fy.closing_document_id = doc.document_id
        fy.is_closed = True
        fy.is_active = False
        log_activity(
            db, admin.user_id, "CLOSING_ENTRY", "FISCAL_YEAR", fy.fiscal_year_id,
            f"Closing entry {doc.document_number}; fiscal year {fy.year} closed",
        )
        db.commit()
        db.refresh(doc)
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("Closing entry for fiscal_year_id=%s failed", fy.fiscal_year_id)
        raise

    logger.info("Fiscal year %s closed with document %s", fy.fiscal_year_id, doc.document_number)
    return doc
