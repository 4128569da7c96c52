"""
Database lookups shared by the accounting routers: chart-of-accounts
resolution and flattening PERMANENT documents into entry rows for
``ledger_calculations``.
"""
from typing import Optional, List, Dict, Any

from sqlalchemy.orm import Session

from app.models.accounting_coding_model import (
    AccountGroup,
    AccountClass,
    AccountSubClass,
    AccountDetail,
)
from app.models.accounting_document_model import AccountingDocument, AccountingEntry
from app.utils.coding_utils import split_full_code


def groups_query(db: Session, project_id: int, fiscal_year_id: Optional[int] = None):
    q = db.query(AccountGroup).filter(AccountGroup.project_id == project_id)
    if fiscal_year_id is None:
        q = q.filter(AccountGroup.fiscal_year_id.is_(None))
    else:
        q = q.filter(AccountGroup.fiscal_year_id == fiscal_year_id)
    return q


def resolve_full_code(db: Session, project_id: int, full_code: str,
                      fiscal_year_id: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """
    Walk the tree for a 1/2/4/6 digit code. Returns level, names along the
    path and the class nature, or None when any node is missing.
    Raises ValueError for a malformed code.
    """
    parts = split_full_code(full_code)

    group = groups_query(db, project_id, fiscal_year_id).filter(AccountGroup.code == parts["group"]).first()
    if group is None and fiscal_year_id is not None:
        group = groups_query(db, project_id, None).filter(AccountGroup.code == parts["group"]).first()
    if group is None:
        return None

    out = {
        "code": full_code,
        "level": parts["level"],
        "group_name": group.name,
        "class_name": None,
        "subclass_name": None,
        "detail_name": None,
        "nature": None,
        "name": group.name,
    }
    if "class" not in parts:
        return out

    cls = (
        db.query(AccountClass)
        .filter(AccountClass.group_id == group.group_id, AccountClass.code == parts["class"])
        .first()
    )
    if cls is None:
        return None
    out.update(class_name=cls.name, nature=cls.nature, name=cls.name)
    if "subclass" not in parts:
        return out

    sub = (
        db.query(AccountSubClass)
        .filter(AccountSubClass.class_id == cls.class_id, AccountSubClass.code == parts["subclass"])
        .first()
    )
    if sub is None:
        return None
    out.update(subclass_name=sub.name, name=sub.name)
    if "detail" not in parts:
        return out

    det = (
        db.query(AccountDetail)
        .filter(AccountDetail.sub_class_id == sub.sub_class_id, AccountDetail.code == parts["detail"])
        .first()
    )
    if det is None:
        return None
    out.update(detail_name=det.name, name=det.name)
    return out


def level_accounts(db: Session, project_id: int, level: str,
                   fiscal_year_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """Flat [{code, name, nature, ...}] list of one tree level with full codes."""
    out = []
    groups = groups_query(db, project_id, fiscal_year_id).order_by(AccountGroup.code.asc()).all()
    if not groups and fiscal_year_id is not None:
        groups = groups_query(db, project_id, None).order_by(AccountGroup.code.asc()).all()
    for g in groups:
        if level == "group":
            out.append({"code": g.full_code, "name": g.name, "nature": None})
            continue
        for c in g.classes:
            if level == "class":
                out.append({"code": c.full_code, "name": c.name, "nature": c.nature})
                continue
            for s in c.sub_classes:
                if level == "subclass":
                    out.append({
                        "code": s.full_code,
                        "name": s.name,
                        "nature": c.nature,
                        "class_code": c.full_code,
                        "class_name": c.name,
                    })
                    continue
                for d in s.details:
                    out.append({
                        "code": d.full_code,
                        "name": d.name,
                        "nature": c.nature,
                        "subclass_code": s.full_code,
                        "subclass_name": s.name,
                    })
    return out


def permanent_entry_rows(db: Session, project_id: int, date_to=None,
                         fiscal_year_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Every line of the project's PERMANENT documents up to ``date_to``,
    limited to one fiscal year when ``fiscal_year_id`` is given.
    Earlier lines are kept so opening balances can be derived.
    """
    q = (
        db.query(AccountingEntry, AccountingDocument)
        .join(AccountingDocument, AccountingEntry.document_id == AccountingDocument.document_id)
        .filter(AccountingDocument.project_id == project_id)
        .filter(AccountingDocument.status == "PERMANENT")
    )
    if date_to is not None:
        q = q.filter(AccountingDocument.document_date <= date_to)
    if fiscal_year_id is not None:
        q = q.filter(AccountingDocument.fiscal_year_id == fiscal_year_id)

    rows = []
    for entry, doc in q.all():
        rows.append({
            "document_id": doc.document_id,
            "document_number": doc.document_number,
            "document_date": doc.document_date,
            "document_description": doc.description,
            "entry_id": entry.entry_id,
            "account_code": entry.account_code,
            "account_name": entry.account_name,
            "description": entry.description,
            "debit": entry.debit,
            "credit": entry.credit,
        })
    return rows
