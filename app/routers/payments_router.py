import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin, get_current_user, ensure_self_or_admin
from app.utils.activity_logger import log_activity
from app.utils.financial_calculations import money
from app.utils.finance_ops import apply_member_payment, refresh_status
from app.models.user_model import User
from app.models.project_model import Project
from app.models.unit_model import Unit
from app.models.installment_model import UserInstallment
from app.models.payment_model import Payment
from app.schemas import (
    MemberPaymentCreate,
    MemberPaymentResult,
    PaymentCreate,
    PaymentUpdate,
    PaymentOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/finance", tags=["Payments"])


def _get_payment(db: Session, payment_id: int) -> Payment:
    p = db.query(Payment).filter(Payment.payment_id == payment_id).first()
    if not p:
        raise HTTPException(404, "Payment not found")
    return p


# =================================================
# 🔹 APPLY PAYMENT TO A MEMBER (EARLIEST DUE FIRST)
# =================================================
@router.post("/projects/{project_id}/payments", response_model=MemberPaymentResult)
def pay_member_installments(
        project_id: int,
        payload: MemberPaymentCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    ensure_self_or_admin(current_user, payload.user_id)

    project = db.query(Project).filter(Project.project_id == project_id).first()
    if not project:
        raise HTTPException(404, "Project not found")

    unit = (
        db.query(Unit)
        .filter(Unit.project_id == project_id, Unit.user_id == payload.user_id)
        .first()
    )
    if not unit:
        raise HTTPException(404, "User is not a member of this project")

    amount = money(payload.amount)
    try:
        applied, leftover = apply_member_payment(
            db,
            project_id,
            payload.user_id,
            amount,
            payload.payment_date or date.today(),
            description=payload.description,
            created_by=current_user.user_id,
        )
        log_activity(
            db, current_user.user_id, "PAYMENT", "USER", payload.user_id,
            f"{amount} paid in project {project.name}: {len(applied)} installment(s), {leftover} left over",
        )
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(400, str(e))
    except Exception:
        db.rollback()
        raise

    return MemberPaymentResult(
        project_id=project_id,
        user_id=payload.user_id,
        amount=float(amount),
        applied_amount=float(money(amount - leftover)),
        remaining_amount=float(leftover),
        payments=[{**a, "amount": float(a["amount"])} for a in applied],
    )


# =================================================
# 🔹 PAYMENTS CRUD
# =================================================
@router.get("/payments", response_model=List[PaymentOut])
def list_payments(
        project_id: Optional[int] = Query(None),
        user_id: Optional[int] = Query(None),
        user_installment_id: Optional[int] = Query(None),
        limit: int = Query(500, ge=1, le=5000),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    if current_user.role != "ADMIN":
        user_id = current_user.user_id

    q = db.query(Payment).join(UserInstallment, Payment.user_installment_id == UserInstallment.user_installment_id)
    if project_id is not None:
        q = q.join(Unit, UserInstallment.unit_id == Unit.unit_id).filter(Unit.project_id == project_id)
    if user_id is not None:
        q = q.filter(UserInstallment.user_id == user_id)
    if user_installment_id is not None:
        q = q.filter(Payment.user_installment_id == user_installment_id)

    return (
        q.order_by(Payment.payment_date.desc(), Payment.payment_id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


@router.post("/payments", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def create_payment(
        payload: PaymentCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    ui = (
        db.query(UserInstallment)
        .filter(UserInstallment.user_installment_id == payload.user_installment_id)
        .first()
    )
    if not ui:
        raise HTTPException(404, "Installment not found")
    ensure_self_or_admin(current_user, ui.user_id)

    p = Payment(
        payment_date=payload.payment_date or date.today(),
        amount=money(payload.amount),
        description=payload.description,
        receipt_image_path=payload.receipt_image_path,
        created_by=current_user.user_id,
    )

    try:
        ui.payments.append(p)
        db.flush()
        refresh_status(ui)
        log_activity(
            db, current_user.user_id, "CREATE", "PAYMENT", p.payment_id,
            f"{p.amount} on installment {ui.user_installment_id}",
        )
        db.commit()
        db.refresh(p)
        return p
    except Exception:
        db.rollback()
        raise


@router.put("/payments/{payment_id}", response_model=PaymentOut)
def update_payment(
        payment_id: int,
        payload: PaymentUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    p = _get_payment(db, payment_id)
    data = payload.model_dump(exclude_unset=True)
    for required in ("amount", "payment_date"):
        if required in data and data[required] is None:
            data.pop(required)
    if "amount" in data:
        data["amount"] = money(data["amount"])

    for field, value in data.items():
        setattr(p, field, value)

    db.flush()
    refresh_status(p.user_installment)
    log_activity(db, admin.user_id, "UPDATE", "PAYMENT", p.payment_id, f"Payment {p.payment_id} updated")
    db.commit()
    db.refresh(p)
    return p


@router.delete("/payments/{payment_id}")
def delete_payment(
        payment_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    p = _get_payment(db, payment_id)
    ui = p.user_installment

    ui.payments.remove(p)
    db.delete(p)
    db.flush()
    refresh_status(ui)

    log_activity(db, admin.user_id, "DELETE", "PAYMENT", payment_id, f"Payment removed from installment {ui.user_installment_id}")
    db.commit()
    return {"message": "deleted", "payment_id": payment_id, "installment_status": ui.status}
