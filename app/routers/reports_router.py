from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text, bindparam, Date, func
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin, get_current_user, ensure_self_or_admin
from app.utils.financial_calculations import (
    money,
    installment_status,
    financial_summary,
    percentage,
    ZERO,
)
from app.utils.finance_ops import project_installments, installment_paid
from app.models.user_model import User
from app.models.project_model import Project
from app.models.unit_model import Unit
from app.models.installment_model import UserInstallment
from app.models.payment_model import Payment

router = APIRouter(prefix="/reports", tags=["Reports"])


def _installment_row(ui: UserInstallment, today: date) -> dict:
    share = money(ui.share_amount)
    paid = installment_paid(ui)
    penalty = ui.penalty
    return {
        "user_installment_id": ui.user_installment_id,
        "user_id": ui.user_id,
        "title": ui.effective_title,
        "due_date": ui.effective_due_date,
        "share_amount": share,
        "paid_amount": paid,
        "remaining_amount": max(share - paid, ZERO),
        "status": installment_status(share, paid, ui.effective_due_date, today=today),
        "penalty_amount": money(penalty.total_penalty) if penalty else ZERO,
        "days_late": int(penalty.days_late) if penalty else 0,
        "is_customized": bool(ui.is_customized),
    }


def _floats(row: dict) -> dict:
    return {k: float(v) if hasattr(v, "quantize") else v for k, v in row.items()}


def _project_totals(db: Session, project: Project, today: date) -> dict:
    rows = [_installment_row(ui, today) for ui in project_installments(db, project.project_id).all()]
    summary = financial_summary(rows)
    overdue = sum((r["remaining_amount"] for r in rows if r["status"] == "OVERDUE"), ZERO)
    members = db.query(Unit).filter(Unit.project_id == project.project_id).count()
    total_area = (
        db.query(func.coalesce(func.sum(Unit.area), 0))
        .filter(Unit.project_id == project.project_id)
        .scalar()
    )
    status_counts = {"PENDING": 0, "PARTIAL": 0, "PAID": 0, "OVERDUE": 0}
    for r in rows:
        status_counts[r["status"]] = status_counts.get(r["status"], 0) + 1

    return {
        "project_id": project.project_id,
        "project_name": project.name,
        "status": project.status,
        "member_count": members,
        "total_area": float(total_area or 0),
        "total_amount": summary["total_share"],
        "total_paid": summary["total_paid"],
        "total_remaining": summary["total_remaining"],
        "total_penalty": summary["total_penalty"],
        "overdue_amount": money(overdue),
        "installment_count": summary["installment_count"],
        "paid_installment_count": summary["paid_installment_count"],
        "payment_progress": summary["paid_percentage"],
        "status_counts": status_counts,
    }


# =================================================
# 🔹 MEMBER REPORT
# =================================================
@router.get("/projects/{project_id}/users/{user_id}")
def member_financial_report(
        project_id: int,
        user_id: int,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    ensure_self_or_admin(current_user, user_id)

    unit = (
        db.query(Unit)
        .filter(Unit.project_id == project_id, Unit.user_id == user_id)
        .first()
    )
    if not unit:
        raise HTTPException(404, "User is not a member of this project")

    today = date.today()
    installments = project_installments(db, project_id, user_id).all()
    rows = [_installment_row(ui, today) for ui in installments]
    rows.sort(key=lambda r: (r["due_date"] is None, r["due_date"], r["user_installment_id"]))

    ids = [ui.user_installment_id for ui in installments]
    recent = []
    if ids:
        recent = (
            db.query(Payment)
            .filter(Payment.user_installment_id.in_(ids))
            .order_by(Payment.payment_date.desc(), Payment.payment_id.desc())
            .limit(10)
            .all()
        )

    penalties = [
        {
            "penalty_id": ui.penalty.penalty_id,
            "user_installment_id": ui.user_installment_id,
            "title": ui.effective_title,
            "days_late": ui.penalty.days_late,
            "daily_rate": float(ui.penalty.daily_rate),
            "total_penalty": float(ui.penalty.total_penalty),
            "reason": ui.penalty.reason,
        }
        for ui in installments
        if ui.penalty is not None
    ]

    return {
        "project_id": project_id,
        "user": {
            "user_id": unit.user.user_id,
            "username": unit.user.username,
            "full_name": unit.user.full_name,
            "unit_number": unit.unit_number,
            "area": float(unit.area or 0),
        },
        "summary": _floats(financial_summary(rows)),
        "installments": [_floats(r) for r in rows],
        "recent_payments": [
            {
                "payment_id": p.payment_id,
                "user_installment_id": p.user_installment_id,
                "payment_date": p.payment_date,
                "amount": float(p.amount),
                "description": p.description,
                "receipt_image_path": p.receipt_image_path,
            }
            for p in recent
        ],
        "penalties": penalties,
    }


# =================================================
# 🔹 PROJECT SUMMARY / DASHBOARD
# =================================================
@router.get("/projects/{project_id}/summary")
def project_financial_summary(
        project_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    project = db.query(Project).filter(Project.project_id == project_id).first()
    if not project:
        raise HTTPException(404, "Project not found")
    return _floats(_project_totals(db, project, date.today()))


@router.get("/dashboard")
def dashboard_summary(
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Totals across active projects."""
    today = date.today()
    projects = (
        db.query(Project)
        .filter(Project.status == "ACTIVE")
        .order_by(Project.project_id.asc())
        .all()
    )

    per_project = [_project_totals(db, p, today) for p in projects]

    total_amount = sum((p["total_amount"] for p in per_project), ZERO)
    total_paid = sum((p["total_paid"] for p in per_project), ZERO)
    total_remaining = sum((p["total_remaining"] for p in per_project), ZERO)
    overdue = sum((p["overdue_amount"] for p in per_project), ZERO)
    installments = sum(p["installment_count"] for p in per_project)
    paid_installments = sum(p["paid_installment_count"] for p in per_project)

    active_users = (
        db.query(User)
        .filter(User.role != "ADMIN", User.is_active.is_(True))
        .count()
    )
    members = (
        db.query(func.count(func.distinct(Unit.user_id)))
        .join(Project, Project.project_id == Unit.project_id)
        .filter(Project.status == "ACTIVE")
        .scalar()
    ) or 0

    payment_count, payment_sum = (
        db.query(func.count(Payment.payment_id), func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.amount > 0, Payment.receipt_image_path.is_(None))
        .one()
    )

    return {
        "project_count": len(projects),
        "active_user_count": active_users,
        "member_count": int(members),
        "total_amount": float(money(total_amount)),
        "total_paid": float(money(total_paid)),
        "total_remaining": float(money(total_remaining)),
        "overdue_amount": float(money(overdue)),
        "payment_progress": percentage(total_paid, total_amount),
        "completion_rate": round(paid_installments * 100.0 / installments, 2) if installments else 0.0,
        "average_payment": float(money(money(payment_sum) / payment_count)) if payment_count else 0.0,
        "average_share_per_member": float(money(total_amount / members)) if members else 0.0,
        "projects": [
            {
                "project_id": p["project_id"],
                "project_name": p["project_name"],
                "member_count": p["member_count"],
                "total_amount": float(p["total_amount"]),
                "total_paid": float(p["total_paid"]),
                "overdue_amount": float(p["overdue_amount"]),
                "progress": p["payment_progress"],
            }
            for p in per_project
        ],
    }


# =================================================
# 🔹 OVERDUE
# =================================================
@router.get("/overdue")
def overdue_report(
        as_on: Optional[date] = Query(None),
        project_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    sql = """
         select ui.user_installment_id,
                ui.user_id,
                u.username,
                un.project_id,
                p.name                              as project_name,
                un.unit_number,
                coalesce(ui.title, d.title)         as title,
                coalesce(ui.due_date, d.due_date)   as due_date,
                ui.share_amount,
                coalesce(pay.paid, 0)               as paid
         from user_installments ui
                  join units un on un.unit_id = ui.unit_id
                  join users u on u.user_id = ui.user_id
                  join projects p on p.project_id = un.project_id
                  left join installment_definitions d on d.definition_id = ui.definition_id
                  left join (select user_installment_id, sum(amount) as paid
                             from payments
                             where amount > 0
                               and receipt_image_path is null
                             group by user_installment_id) pay
                            on pay.user_installment_id = ui.user_installment_id
         where ui.status <> 'PAID'
           and coalesce(ui.due_date, d.due_date) < :as_on
    """
    params = {"as_on": as_on or date.today()}
    if project_id is not None:
        sql += " and un.project_id = :pid"
        params["pid"] = project_id
    sql += " order by coalesce(ui.due_date, d.due_date) asc, ui.user_installment_id asc"

    rows = db.execute(
        text(sql).bindparams(bindparam("as_on", type_=Date)),
        params,
    ).mappings().all()

    out = []
    for r in rows:
        due_left = money(r["share_amount"]) - money(r["paid"])
        if due_left <= 0:
            continue
        out.append({
            "user_installment_id": r["user_installment_id"],
            "user_id": r["user_id"],
            "username": r["username"],
            "project_id": r["project_id"],
            "project_name": r["project_name"],
            "unit_number": r["unit_number"],
            "title": r["title"],
            "due_date": r["due_date"],
            "due_left": float(due_left),
        })
    return out
