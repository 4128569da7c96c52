import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.security import require_admin
from app.utils.activity_logger import log_activity
from app.utils.financial_calculations import money, ZERO
from app.utils.finance_ops import (
    create_installments_for_unit,
    recalculate_project_shares,
    installment_paid,
    resolve_penalty_settings,
    calculate_member_penalties,
    project_installments,
    refresh_status,
)
from app.models.user_model import User
from app.models.project_model import Project
from app.models.unit_model import Unit
from app.models.payment_model import Payment
from app.schemas import (
    MemberAdd,
    MemberUpdate,
    MemberOut,
    PenaltySettingsIn,
    PenaltySettingsOut,
    PenaltyCalculationRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/finance/projects", tags=["Project Members"])


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def _get_project(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.project_id == project_id).first()
    if not project:
        raise HTTPException(404, "Project not found")
    return project


def _get_member_unit(db: Session, project_id: int, user_id: int) -> Unit:
    unit = (
        db.query(Unit)
        .filter(Unit.project_id == project_id, Unit.user_id == user_id)
        .first()
    )
    if not unit:
        raise HTTPException(404, "User is not a member of this project")
    return unit


def _member_out(unit: Unit) -> MemberOut:
    share = paid = penalty = ZERO
    for ui in unit.user_installments:
        share += money(ui.share_amount)
        paid += installment_paid(ui)
        if ui.penalty is not None:
            penalty += money(ui.penalty.total_penalty)

    return MemberOut(
        unit_id=unit.unit_id,
        project_id=unit.project_id,
        user_id=unit.user_id,
        username=unit.user.username,
        full_name=unit.user.full_name,
        role=unit.user.role,
        unit_number=unit.unit_number,
        area=float(unit.area or 0),
        total_share=float(share),
        total_paid=float(paid),
        total_remaining=float(max(share - paid, ZERO)),
        total_penalty=float(penalty),
    )


# =================================================
# 🔹 MEMBERS
# =================================================
@router.get("/{project_id}/users", response_model=List[MemberOut])
def list_members(
        project_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _get_project(db, project_id)
    units = (
        db.query(Unit)
        .filter(Unit.project_id == project_id)
        .order_by(Unit.unit_number.asc())
        .all()
    )
    return [_member_out(u) for u in units]


@router.post("/{project_id}/users", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def add_member(
        project_id: int,
        payload: MemberAdd,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """
    Assign a user to the project with a unit.

    One user installment is created per installment definition, then every
    non-customized share in the project is re-derived since the total area
    changed.
    """
    project = _get_project(db, project_id)

    user = db.query(User).filter(User.user_id == payload.user_id).first()
    if not user:
        raise HTTPException(404, "User not found")
    if user.role == "ADMIN":
        raise HTTPException(400, "Admin users cannot hold units")
    if not user.is_active:
        raise HTTPException(400, "User is inactive")

    already = db.query(Unit).filter(Unit.project_id == project_id, Unit.user_id == user.user_id).first()
    if already:
        raise HTTPException(400, "User is already a member of this project")

    unit_number = payload.unit_number.strip()
    clash = db.query(Unit).filter(Unit.project_id == project_id, Unit.unit_number == unit_number).first()
    if clash:
        raise HTTPException(400, "Unit number already used in this project")

    try:
        unit = Unit(
            project=project,
            user=user,
            unit_number=unit_number,
            area=money(payload.area),
        )
        db.add(unit)
        db.flush()

        create_installments_for_unit(db, unit)
        recalculate_project_shares(db, project_id)

        log_activity(
            db, admin.user_id, "ADD_MEMBER", "PROJECT", project_id,
            f"{user.username} added to {project.name} with unit {unit_number}",
        )
        db.commit()
        db.refresh(unit)
    except IntegrityError:
        db.rollback()
        raise HTTPException(400, "Unit number already used in this project")
    except Exception:
        db.rollback()
        raise

    return _member_out(unit)


@router.put("/{project_id}/users/{user_id}", response_model=MemberOut)
def update_member(
        project_id: int,
        user_id: int,
        payload: MemberUpdate,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    unit = _get_member_unit(db, project_id, user_id)

    if payload.unit_number is not None:
        unit_number = payload.unit_number.strip()
        clash = (
            db.query(Unit)
            .filter(
                Unit.project_id == project_id,
                Unit.unit_number == unit_number,
                Unit.unit_id != unit.unit_id,
            )
            .first()
        )
        if clash:
            raise HTTPException(400, "Unit number already used in this project")
        unit.unit_number = unit_number

    if payload.area is not None:
        unit.area = money(payload.area)

    try:
        recalculate_project_shares(db, project_id)
        log_activity(db, admin.user_id, "UPDATE_MEMBER", "UNIT", unit.unit_id, f"Unit {unit.unit_number} updated")
        db.commit()
        db.refresh(unit)
    except Exception:
        db.rollback()
        raise

    return _member_out(unit)


@router.delete("/{project_id}/users/{user_id}")
def remove_member(
        project_id: int,
        user_id: int,
        force: bool = Query(False),
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    unit = _get_member_unit(db, project_id, user_id)

    payment_count = sum(len(ui.payments) for ui in unit.user_installments)
    if payment_count and not force:
        raise HTTPException(
            400,
            f"Member has {payment_count} payment(s). Pass force=true to remove anyway.",
        )

    unit_number = unit.unit_number
    try:
        db.delete(unit)
        db.flush()
        recalculate_project_shares(db, project_id)
        log_activity(
            db, admin.user_id, "REMOVE_MEMBER", "PROJECT", project_id,
            f"user_id={user_id} removed (unit {unit_number}, {payment_count} payment(s))",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"message": "removed", "project_id": project_id, "user_id": user_id, "deleted_payments": payment_count}


# =================================================
# 🔹 PENALTY SETTINGS
# =================================================
@router.get("/{project_id}/users/{user_id}/penalty-settings", response_model=PenaltySettingsOut)
def get_penalty_settings(
        project_id: int,
        user_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    unit = _get_member_unit(db, project_id, user_id)
    user = unit.user
    return PenaltySettingsOut(
        user_id=user.user_id,
        username=user.username,
        daily_penalty_amount=float(user.daily_penalty_amount or 0),
        penalty_grace_days=user.penalty_grace_days,
    )


@router.put("/{project_id}/users/{user_id}/penalty-settings", response_model=PenaltySettingsOut)
def put_penalty_settings(
        project_id: int,
        user_id: int,
        payload: PenaltySettingsIn,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    unit = _get_member_unit(db, project_id, user_id)
    user = unit.user

    user.daily_penalty_amount = money(payload.daily_penalty_amount)
    user.penalty_grace_days = payload.penalty_grace_days

    log_activity(
        db, admin.user_id, "UPDATE_PENALTY_SETTINGS", "USER", user.user_id,
        f"daily={user.daily_penalty_amount} grace={user.penalty_grace_days}",
    )
    db.commit()
    db.refresh(user)

    return PenaltySettingsOut(
        user_id=user.user_id,
        username=user.username,
        daily_penalty_amount=float(user.daily_penalty_amount),
        penalty_grace_days=user.penalty_grace_days,
    )


# =================================================
# 🔹 PENALTY CALCULATION
# =================================================
def _run_penalties(db: Session, project_id: int, user_id: int, payload: PenaltyCalculationRequest,
                   admin: User, only_open: bool, action: str):
    unit = _get_member_unit(db, project_id, user_id)
    user = unit.user

    daily, grace = resolve_penalty_settings(
        db, user, payload.daily_penalty_amount, payload.penalty_grace_days
    )

    try:
        result = calculate_member_penalties(
            db,
            project_id,
            user,
            daily,
            grace,
            include_unpaid=payload.include_unpaid,
            as_on=payload.as_on or date.today(),
            only_open=only_open,
        )
        log_activity(
            db, admin.user_id, action, "USER", user.user_id,
            f"{result['updated_penalties']} penalty row(s), total {result['total_penalty_amount']}",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {
        "user_id": user.user_id,
        "username": user.username,
        "daily_penalty_amount": float(result["daily_amount"]),
        "penalty_grace_days": result["grace_days"],
        "updated_penalties": result["updated_penalties"],
        "total_penalty_amount": float(result["total_penalty_amount"]),
        "items": [
            {**item, "total_penalty": float(item["total_penalty"])}
            for item in result["items"]
        ],
    }


@router.post("/{project_id}/users/{user_id}/calculate-penalties")
def calculate_penalties(
        project_id: int,
        user_id: int,
        payload: Optional[PenaltyCalculationRequest] = None,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Penalties for installments that are not fully paid yet."""
    return _run_penalties(db, project_id, user_id, payload or PenaltyCalculationRequest(), admin, True, "CALCULATE_PENALTIES")


@router.post("/{project_id}/users/{user_id}/recalculate-penalties")
def recalculate_penalties(
        project_id: int,
        user_id: int,
        payload: Optional[PenaltyCalculationRequest] = None,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    """Same as calculate, but walks every installment including paid ones."""
    return _run_penalties(db, project_id, user_id, payload or PenaltyCalculationRequest(), admin, False, "RECALCULATE_PENALTIES")


# =================================================
# 🔹 CLEAR PAYMENTS
# =================================================
@router.delete("/{project_id}/users/{user_id}/clear-payments")
def clear_payments(
        project_id: int,
        user_id: int,
        db: Session = Depends(get_db),
        admin: User = Depends(require_admin),
):
    _get_member_unit(db, project_id, user_id)

    installments = project_installments(db, project_id, user_id).all()
    ids = [ui.user_installment_id for ui in installments]

    try:
        deleted = 0
        if ids:
            deleted = (
                db.query(Payment)
                .filter(Payment.user_installment_id.in_(ids))
                .delete(synchronize_session=False)
            )
        db.expire_all()
        for ui in project_installments(db, project_id, user_id).all():
            refresh_status(ui)

        log_activity(db, admin.user_id, "CLEAR_PAYMENTS", "USER", user_id, f"{deleted} payment(s) removed")
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Cleared %s payment(s) for user_id=%s project_id=%s", deleted, user_id, project_id)
    return {"message": "cleared", "deleted_payments": deleted}
