import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.utils.activity_logger import log_activity
from app.utils.financial_calculations import money
from app.utils.ledger_calculations import validate_document_entries
from app.utils.accounting_ops import resolve_full_code
from app.models.user_model import User
from app.models.project_model import Project, FiscalYear
from app.models.accounting_document_model import AccountingDocument, AccountingEntry
from app.schemas.accounting_schemas import (
    DocumentCreate,
    DocumentUpdate,
    DocumentStatusIn,
    DocumentOut,
    EntryIn,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounting/documents", tags=["Accounting Documents"])


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def next_document_number(db: Session, project_id: int) -> str:
    numbers = (
        db.query(AccountingDocument.document_number)
        .filter(AccountingDocument.project_id == project_id)
        .all()
    )
    numeric = [int(n) for (n,) in numbers if str(n).strip().isdigit()]
    return str(max(numeric) + 1) if numeric else "1"


def get_fiscal_year(db: Session, project_id: int, fiscal_year_id: Optional[int],
                    writable: bool = True) -> Optional[FiscalYear]:
    if fiscal_year_id is None:
        return None
    fy = db.query(FiscalYear).filter(FiscalYear.fiscal_year_id == fiscal_year_id).first()
    if not fy or fy.project_id != project_id:
        raise HTTPException(400, "Fiscal year does not belong to this project")
    if writable and fy.is_closed:
        raise HTTPException(400, f"Fiscal year {fy.year} is closed")
    return fy


def _ensure_open(db: Session, doc: AccountingDocument):
    get_fiscal_year(db, doc.project_id, doc.fiscal_year_id, writable=True)


def _get_document(db: Session, document_id: int) -> AccountingDocument:
    doc = db.query(AccountingDocument).filter(AccountingDocument.document_id == document_id).first()
    if not doc:
        raise HTTPException(404, "Document not found")
    return doc


def build_entries(db: Session, project_id: int, fiscal_year_id: Optional[int],
                   entries: List[EntryIn]) -> List[AccountingEntry]:
    raw = [e.model_dump() for e in entries]
    try:
        validate_document_entries(raw)
    except ValueError as e:
        raise HTTPException(400, str(e))

    out = []
    for e in raw:
        code = e["account_code"].strip()
        name = (e.get("account_name") or "").strip() or None
        nature = None
        try:
            found = resolve_full_code(db, project_id, code, fiscal_year_id)
        except ValueError:
            found = None
        if found:
            name = name or found["name"]
            nature = found["nature"]

        out.append(
            AccountingEntry(
                account_code=code,
                account_name=name,
                description=e.get("description"),
                debit=money(e.get("debit")),
                credit=money(e.get("credit")),
                account_nature=nature,
            )
        )
    return out


def set_totals(doc: AccountingDocument):
    doc.total_debit = money(sum(money(e.debit) for e in doc.entries))
    doc.total_credit = money(sum(money(e.credit) for e in doc.entries))


# =================================================
# 🔹 STATIC ROUTES (ALWAYS FIRST)
# =================================================
@router.get("/next-number")
def get_next_number(
        project_id: int = Query(...),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    return {"project_id": project_id, "next_number": next_document_number(db, project_id)}


@router.get("", response_model=List[DocumentOut])
def list_documents(
        project_id: int = Query(...),
        status_filter: Optional[str] = Query(None, alias="status"),
        date_from: Optional[date] = Query(None),
        date_to: Optional[date] = Query(None),
        limit: int = Query(500, ge=1, le=5000),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    q = db.query(AccountingDocument).filter(AccountingDocument.project_id == project_id)
    if status_filter:
        q = q.filter(AccountingDocument.status == status_filter.upper())
    if date_from:
        q = q.filter(AccountingDocument.document_date >= date_from)
    if date_to:
        q = q.filter(AccountingDocument.document_date <= date_to)

    return (
        q.order_by(AccountingDocument.document_date.asc(), AccountingDocument.document_id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )


@router.post("", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
def create_document(
        payload: DocumentCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    if not db.query(Project.project_id).filter(Project.project_id == payload.project_id).first():
        raise HTTPException(404, "Project not found")

    get_fiscal_year(db, payload.project_id, payload.fiscal_year_id)
    entries = build_entries(db, payload.project_id, payload.fiscal_year_id, payload.entries)

    number = (payload.document_number or "").strip() or next_document_number(db, payload.project_id)
    exists = (
        db.query(AccountingDocument.document_id)
        .filter(
            AccountingDocument.project_id == payload.project_id,
            AccountingDocument.document_number == number,
        )
        .first()
    )
    if exists:
        raise HTTPException(status.HTTP_409_CONFLICT, f"Document number {number} already exists")

    doc = AccountingDocument(
        project_id=payload.project_id,
        fiscal_year_id=payload.fiscal_year_id,
        document_number=number,
        document_date=payload.document_date,
        description=payload.description,
        status=payload.status,
        created_by=admin.user_id,
    )
    doc.entries.extend(entries)
    set_totals(doc)

    try:
        db.add(doc)
        db.flush()
        log_activity(
            db, admin.user_id, "CREATE", "ACCOUNTING_DOCUMENT", doc.document_id,
            f"Document {number} ({doc.total_debit})",
        )
        db.commit()
        db.refresh(doc)
        return doc
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, f"Document number {number} already exists")
    except Exception:
        db.rollback()
        raise


# =================================================
# 🔹 DYNAMIC ROUTES (LAST)
# =================================================
@router.get("/{document_id}", response_model=DocumentOut)
def get_document(
        document_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    return _get_document(db, document_id)


@router.put("/{document_id}", response_model=DocumentOut)
def update_document(
        document_id: int,
        payload: DocumentUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    doc = _get_document(db, document_id)
    if doc.status != "TEMPORARY":
        raise HTTPException(400, "Only TEMPORARY documents can be edited")
    _ensure_open(db, doc)

    data = payload.model_dump(exclude_unset=True)

    if data.get("document_number"):
        number = data["document_number"].strip()
        clash = (
            db.query(AccountingDocument.document_id)
            .filter(
                AccountingDocument.project_id == doc.project_id,
                AccountingDocument.document_number == number,
                AccountingDocument.document_id != document_id,
            )
            .first()
        )
        if clash:
            raise HTTPException(status.HTTP_409_CONFLICT, f"Document number {number} already exists")
        doc.document_number = number

    if data.get("document_date"):
        doc.document_date = data["document_date"]
    if "description" in data:
        doc.description = data["description"]

    if payload.entries is not None:
        entries = build_entries(db, doc.project_id, doc.fiscal_year_id, payload.entries)
        doc.entries.clear()
        db.flush()
        doc.entries.extend(entries)
        set_totals(doc)

    try:
        log_activity(db, admin.user_id, "UPDATE", "ACCOUNTING_DOCUMENT", doc.document_id, f"Document {doc.document_number} updated")
        db.commit()
        db.refresh(doc)
        return doc
    except IntegrityError:
        db.rollback()
        raise HTTPException(status.HTTP_409_CONFLICT, "Document number already exists")
    except Exception:
        db.rollback()
        raise


@router.patch("/{document_id}/status", response_model=DocumentOut)
def change_document_status(
        document_id: int,
        payload: DocumentStatusIn,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    doc = _get_document(db, document_id)
    _ensure_open(db, doc)
    old = doc.status
    doc.status = payload.status

    log_activity(
        db, admin.user_id, "STATUS", "ACCOUNTING_DOCUMENT", doc.document_id,
        f"Document {doc.document_number}: {old} -> {doc.status}",
    )
    db.commit()
    db.refresh(doc)
    return doc


@router.delete("/{document_id}")
def delete_document(
        document_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    doc = _get_document(db, document_id)
    if doc.status != "TEMPORARY":
        raise HTTPException(400, "Only TEMPORARY documents can be deleted")
    _ensure_open(db, doc)

    number = doc.document_number
    db.query(FiscalYear).filter(FiscalYear.opening_document_id == document_id).update(
        {FiscalYear.opening_document_id: None}, synchronize_session=False
    )
    db.delete(doc)
    log_activity(db, admin.user_id, "DELETE", "ACCOUNTING_DOCUMENT", document_id, f"Document {number} deleted")
    db.commit()
    return {"message": "deleted", "document_id": document_id}
