import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin, get_current_user
from app.utils.activity_logger import log_activity
from app.utils.financial_calculations import money
from app.models.user_model import User
from app.models.unit_model import Unit
from app.models.installment_model import UserInstallment
from app.models.penalty_model import Penalty
from app.schemas import PenaltyCreate, PenaltyUpdate, PenaltyOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/finance/penalties", tags=["Penalties"])


def _get_penalty(db: Session, penalty_id: int) -> Penalty:
    pen = db.query(Penalty).filter(Penalty.penalty_id == penalty_id).first()
    if not pen:
        raise HTTPException(404, "Penalty not found")
    return pen


@router.get("", response_model=List[PenaltyOut])
def list_penalties(
        project_id: Optional[int] = Query(None),
        user_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        current_user: User = Depends(get_current_user),
):
    """Members only ever see their own penalties."""
    if current_user.role != "ADMIN":
        user_id = current_user.user_id

    q = db.query(Penalty).join(
        UserInstallment, Penalty.user_installment_id == UserInstallment.user_installment_id
    )
    if project_id is not None:
        q = q.join(Unit, UserInstallment.unit_id == Unit.unit_id).filter(Unit.project_id == project_id)
    if user_id is not None:
        q = q.filter(UserInstallment.user_id == user_id)

    return q.order_by(Penalty.penalty_id.asc()).all()


@router.post("", response_model=PenaltyOut, status_code=status.HTTP_201_CREATED)
def create_penalty(
        payload: PenaltyCreate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    ui = (
        db.query(UserInstallment)
        .filter(UserInstallment.user_installment_id == payload.user_installment_id)
        .first()
    )
    if not ui:
        raise HTTPException(404, "Installment not found")

    if ui.penalty is not None:
        raise HTTPException(400, "This installment already has a penalty. Update it instead.")

    daily = money(payload.daily_rate)
    total = money(payload.total_penalty) if payload.total_penalty is not None else money(daily * payload.days_late)

    pen = Penalty(
        days_late=payload.days_late,
        daily_rate=daily,
        total_penalty=total,
        reason=payload.reason,
    )

    try:
        ui.penalty = pen
        db.flush()
        log_activity(db, admin.user_id, "CREATE", "PENALTY", pen.penalty_id, f"{total} on installment {ui.user_installment_id}")
        db.commit()
        db.refresh(pen)
        return pen
    except IntegrityError:
        db.rollback()
        raise HTTPException(400, "This installment already has a penalty. Update it instead.")
    except Exception:
        db.rollback()
        raise


@router.put("/{penalty_id}", response_model=PenaltyOut)
def update_penalty(
        penalty_id: int,
        payload: PenaltyUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    pen = _get_penalty(db, penalty_id)
    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k == "reason"}

    if "days_late" in data:
        pen.days_late = data["days_late"]
    if "daily_rate" in data:
        pen.daily_rate = money(data["daily_rate"])
    if "reason" in data:
        pen.reason = data["reason"]

    if "total_penalty" in data:
        pen.total_penalty = money(data["total_penalty"])
    elif "days_late" in data or "daily_rate" in data:
        pen.total_penalty = money(money(pen.daily_rate) * int(pen.days_late or 0))

    log_activity(db, admin.user_id, "UPDATE", "PENALTY", pen.penalty_id, f"total={pen.total_penalty}")
    db.commit()
    db.refresh(pen)
    return pen


@router.delete("/{penalty_id}")
def delete_penalty(
        penalty_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    pen = _get_penalty(db, penalty_id)
    db.delete(pen)
    log_activity(db, admin.user_id, "DELETE", "PENALTY", penalty_id, "Penalty deleted")
    db.commit()
    return {"message": "deleted", "penalty_id": penalty_id}
